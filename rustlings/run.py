"""Running a single exercise and resetting it."""

from __future__ import annotations

import subprocess

from rustlings.exercise import CompilationError, Exercise, Mode
from rustlings.ui import Spinner, success, warn
from rustlings.verify import ExerciseFailed, test


def run(exercise: Exercise, verbose: bool = False) -> None:
    """Build and run (or test) one exercise; raise ExerciseFailed on failure."""
    if exercise.mode in (Mode.TEST, Mode.BUILD_SCRIPT):
        test(exercise, verbose)
    else:
        _compile_and_run(exercise)


def reset(exercise: Exercise) -> subprocess.Popen:
    """Stash the changes made to the exercise file with git."""
    return subprocess.Popen(["git", "stash", "--", str(exercise.path)])


def _compile_and_run(exercise: Exercise) -> None:
    spinner = Spinner(f"Compiling {exercise}...")
    try:
        compiled = exercise.compile()
    except CompilationError as exc:
        spinner.finish_and_clear()
        warn(f"Compilation of {exercise} failed!, Compiler error message:\n")
        print(exc.output.stderr)
        raise ExerciseFailed(exercise) from exc

    spinner.set_message(f"Running {exercise}...")
    with compiled:
        output = compiled.run()
        spinner.finish_and_clear()

    if output.success:
        print(output.stdout)
        success(f"Successfully ran {exercise}")
        return
    print(output.stdout)
    print(output.stderr)
    warn(f"Ran {exercise} with errors")
    raise ExerciseFailed(exercise)
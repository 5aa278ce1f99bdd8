"""Checking exercises: compile, run or test them and report the outcome."""

from __future__ import annotations

import enum
import os
from collections.abc import Iterable

from rustlings.exercise import (
    CompilationError,
    CompiledExercise,
    Exercise,
    Mode,
)
from rustlings.ui import ProgressBar, Spinner, bold, separator, success, warn


class ExerciseFailed(Exception):
    """Raised when an exercise fails to build, run, test or is not yet done."""

    def __init__(self, exercise: Exercise) -> None:
        super().__init__(str(exercise))
        self.exercise = exercise


class RunMode(enum.Enum):
    """Whether a successful check is followed by the completion prompt."""

    INTERACTIVE = "interactive"
    NON_INTERACTIVE = "non-interactive"


def verify(
    exercises: Iterable[Exercise],
    progress: tuple[int, int],
    verbose: bool = False,
    success_hints: bool = False,
) -> None:
    """Check exercises in order; raise ExerciseFailed at the first one not passing."""
    num_done, total = progress
    bar = ProgressBar(total, num_done)
    for exercise in exercises:
        if exercise.mode in (Mode.TEST, Mode.BUILD_SCRIPT):
            passed = _compile_and_test(
                exercise, RunMode.INTERACTIVE, verbose, success_hints
            )
        elif exercise.mode is Mode.COMPILE:
            passed = _compile_and_run_interactively(exercise, success_hints)
        else:
            passed = _compile_only(exercise, success_hints)
        if not passed:
            raise ExerciseFailed(exercise)
        bar.inc()


def test(exercise: Exercise, verbose: bool = False) -> None:
    """Build and run the exercise's test harness; raise ExerciseFailed on failure."""
    _compile_and_test(exercise, RunMode.NON_INTERACTIVE, verbose, False)


def _compile(exercise: Exercise, spinner: Spinner) -> CompiledExercise:
    try:
        return exercise.compile()
    except CompilationError as exc:
        spinner.finish_and_clear()
        warn(f"Compiling of {exercise} failed! Please try again. Here's the output:")
        print(exc.output.stderr)
        raise ExerciseFailed(exercise) from exc


def _compile_only(exercise: Exercise, success_hints: bool) -> bool:
    spinner = Spinner(f"Compiling {exercise}...")
    _compile(exercise, spinner).close()
    spinner.finish_and_clear()
    return prompt_for_completion(exercise, None, success_hints)


def _compile_and_run_interactively(exercise: Exercise, success_hints: bool) -> bool:
    spinner = Spinner(f"Compiling {exercise}...")
    with _compile(exercise, spinner) as compiled:
        spinner.set_message(f"Running {exercise}...")
        output = compiled.run()
        spinner.finish_and_clear()
    if not output.success:
        warn(f"Ran {exercise} with errors")
        print(output.stdout)
        print(output.stderr)
        raise ExerciseFailed(exercise)
    return prompt_for_completion(exercise, output.stdout, success_hints)


def _compile_and_test(
    exercise: Exercise, run_mode: RunMode, verbose: bool, success_hints: bool
) -> bool:
    spinner = Spinner(f"Testing {exercise}...")
    with _compile(exercise, spinner) as compiled:
        output = compiled.run()
        spinner.finish_and_clear()
    if not output.success:
        warn(f"Testing of {exercise} failed! Please try again. Here's the output:")
        print(output.stdout)
        raise ExerciseFailed(exercise)
    if verbose:
        print(output.stdout)
    if run_mode is RunMode.INTERACTIVE:
        return prompt_for_completion(exercise, None, success_hints)
    return True


_SUCCESS_HEADLINES = {
    Mode.COMPILE: "Successfully ran {}!",
    Mode.TEST: "Successfully tested {}!",
    Mode.CLIPPY: "Successfully compiled {}!",
    Mode.BUILD_SCRIPT: "Successfully compiled {}!",
}


def _success_message(mode: Mode, no_emoji: bool) -> str:
    if mode is Mode.COMPILE:
        return "The code is compiling!"
    if mode is Mode.TEST:
        return "The code is compiling, and the tests pass!"
    if mode is Mode.CLIPPY:
        if no_emoji:
            return "The code is compiling, and Clippy is happy!"
        return "The code is compiling, and 📎 Clippy 📎 is happy!"
    return "Build script works!"


def prompt_for_completion(
    exercise: Exercise, prompt_output: str | None, success_hints: bool
) -> bool:
    """Return True when the exercise is done; otherwise show where the marker is."""
    state = exercise.state()
    if state.done:
        return True

    success(_SUCCESS_HEADLINES[exercise.mode].format(exercise))

    no_emoji = "NO_EMOJI" in os.environ
    message = _success_message(exercise.mode, no_emoji)
    print()
    if no_emoji:
        print(f"~*~ {message} ~*~")
    else:
        print(f"🎉 🎉  {message} 🎉 🎉")
    print()

    if prompt_output is not None:
        print("Output:")
        print(separator())
        print(prompt_output)
        print(separator())
        print()
    if success_hints:
        print("Hints:")
        print(separator())
        print(exercise.hint)
        print(separator())
        print()

    print("You can keep working on this exercise,")
    print(
        "or jump into the next one by removing the "
        f"{bold('`I AM NOT DONE`')} comment:"
    )
    print()
    for context_line in state.context:
        line = bold(context_line.line) if context_line.important else context_line.line
        print(f"{bold(f'{context_line.number:>2}')} |  {line}")

    return False
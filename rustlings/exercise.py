"""Exercises: loading the list, compiling, running and checking their state."""

from __future__ import annotations

import enum
import os
import re
import subprocess
import threading
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

RUSTC_COLOR_ARGS = ("--color", "always")
RUSTC_EDITION_ARGS = ("--edition", "2021")
I_AM_DONE_REGEX = re.compile(r"^\s*///?\s*I\s+AM\s+NOT\s+DONE", re.MULTILINE)
CONTEXT = 2
CLIPPY_CARGO_TOML_PATH = "./exercises/clippy/Cargo.toml"
BUILD_SCRIPT_CARGO_TOML_PATH = "./exercises/tests/Cargo.toml"


def temp_file_path() -> str:
    """Return the path of the binary built for the current process and thread."""
    return f"./temp_{os.getpid()}_{threading.get_ident()}"


def clean() -> None:
    """Remove the compiled binary, if there is one."""
    try:
        os.remove(temp_file_path())
    except OSError:
        pass


class Mode(enum.Enum):
    """How an exercise is checked."""

    COMPILE = "compile"
    TEST = "test"
    CLIPPY = "clippy"
    BUILD_SCRIPT = "buildscript"


@dataclass(frozen=True)
class ContextLine:
    """A source line shown around the ``I AM NOT DONE`` marker."""

    line: str
    number: int
    important: bool


@dataclass(frozen=True)
class ExerciseState:
    """Done when there is no context; pending otherwise."""

    context: tuple[ContextLine, ...] = ()

    @property
    def done(self) -> bool:
        return not self.context


@dataclass(frozen=True)
class ExerciseOutput:
    """Captured output of a command."""

    stdout: str
    stderr: str
    success: bool = True


class CompilationError(Exception):
    """Raised when an exercise fails to compile."""

    def __init__(self, output: ExerciseOutput) -> None:
        super().__init__(output.stderr)
        self.output = output


def _decode(data: bytes | None) -> str:
    return (data or b"").decode("utf-8", errors="replace")


def _execute(cmd: list[str], failure: str) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(cmd, capture_output=True)
    except OSError as exc:
        raise OSError(f"{failure}: {exc}") from exc


def _cargo_toml(name: str) -> str:
    return (
        "[package]\n"
        f'name = "{name}"\n'
        'version = "0.0.1"\n'
        'edition = "2021"\n'
        "[[bin]]\n"
        f'name = "{name}"\n'
        f'path = "{name}.rs"'
    )


def _write_cargo_toml(path: str, name: str) -> None:
    message = (
        "Failed to write Clippy Cargo.toml file."
        if "NO_EMOJI" in os.environ
        else "Failed to write 📎 Clippy 📎 Cargo.toml file."
    )
    try:
        Path(path).write_text(_cargo_toml(name))
    except OSError as exc:
        raise OSError(f"{message}: {exc}") from exc


def _lines(source: str) -> list[str]:
    parts = source.split("\n")
    if parts and parts[-1] == "":
        parts.pop()
    return [part.removesuffix("\r") for part in parts]


@dataclass
class Exercise:
    """One exercise as described in ``info.toml``."""

    name: str
    path: Path
    mode: Mode
    hint: str = ""

    def __post_init__(self) -> None:
        self.path = Path(self.path)
        self.mode = Mode(self.mode)

    def __str__(self) -> str:
        return str(self.path)

    def compile(self) -> CompiledExercise:
        """Build the exercise; raise CompilationError with the output on failure."""
        source = str(self.path)
        if self.mode is Mode.COMPILE:
            cmd = ["rustc", source, "-o", temp_file_path(), *RUSTC_COLOR_ARGS, *RUSTC_EDITION_ARGS]
        elif self.mode is Mode.TEST:
            cmd = [
                "rustc", "--test", source, "-o", temp_file_path(),
                *RUSTC_COLOR_ARGS, *RUSTC_EDITION_ARGS,
            ]
        elif self.mode is Mode.CLIPPY:
            _write_cargo_toml(CLIPPY_CARGO_TOML_PATH, self.name)
            # Build a binary too so clippy exercises can be run afterwards.
            _execute(
                ["rustc", source, "-o", temp_file_path(), *RUSTC_COLOR_ARGS, *RUSTC_EDITION_ARGS],
                "Failed to compile!",
            )
            # Clippy only reports every lint after a clean build.
            _execute(
                ["cargo", "clean", "--manifest-path", CLIPPY_CARGO_TOML_PATH, *RUSTC_COLOR_ARGS],
                "Failed to run 'cargo clean'",
            )
            cmd = [
                "cargo", "clippy", "--manifest-path", CLIPPY_CARGO_TOML_PATH,
                *RUSTC_COLOR_ARGS, "--", "-D", "warnings", "-D", "clippy::float_cmp",
            ]
        else:
            _write_cargo_toml(BUILD_SCRIPT_CARGO_TOML_PATH, self.name)
            cmd = ["cargo", "test", "--manifest-path", BUILD_SCRIPT_CARGO_TOML_PATH]

        result = _execute(cmd, "Failed to run 'compile' command.")
        if result.returncode == 0:
            return CompiledExercise(self)
        clean()
        raise CompilationError(
            ExerciseOutput(_decode(result.stdout), _decode(result.stderr), success=False)
        )

    def run(self) -> ExerciseOutput:
        """Run the compiled binary and capture its output."""
        if self.mode is Mode.BUILD_SCRIPT:
            return ExerciseOutput("", "")
        arg = "--show-output" if self.mode is Mode.TEST else ""
        result = _execute([temp_file_path(), arg], "Failed to run 'run' command")
        return ExerciseOutput(
            _decode(result.stdout), _decode(result.stderr), success=result.returncode == 0
        )

    def state(self) -> ExerciseState:
        """Return done, or pending with the lines around the first marker."""
        source = self.path.read_text(encoding="utf-8")
        if not I_AM_DONE_REGEX.search(source):
            return ExerciseState()
        lines = _lines(source)
        matched = next(
            (i for i, line in enumerate(lines) if I_AM_DONE_REGEX.search(line)), None
        )
        if matched is None:
            raise RuntimeError("This should not happen at all")
        low = max(matched - CONTEXT, 0)
        high = matched + CONTEXT
        return ExerciseState(
            tuple(
                ContextLine(line, i + 1, i == matched)
                for i, line in enumerate(lines)
                if low <= i <= high
            )
        )

    def looks_done(self) -> bool:
        """Whether the exercise no longer carries the ``I AM NOT DONE`` marker."""
        return self.state().done


@dataclass
class CompiledExercise:
    """A successfully built exercise; its binary is removed on close."""

    exercise: Exercise
    _closed: bool = field(default=False, repr=False)

    def run(self) -> ExerciseOutput:
        return self.exercise.run()

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            clean()

    def __enter__(self) -> CompiledExercise:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def __del__(self) -> None:
        self.close()


def parse_exercise_list(text: str) -> list[Exercise]:
    """Parse the TOML exercise list."""
    data = tomllib.loads(text)
    if "exercises" not in data:
        raise ValueError("missing field 'exercises'")
    exercises = []
    for entry in data["exercises"]:
        try:
            exercises.append(
                Exercise(
                    name=entry["name"],
                    path=Path(entry["path"]),
                    mode=Mode(entry["mode"]),
                    hint=entry["hint"],
                )
            )
        except KeyError as exc:
            raise ValueError(f"missing field {exc.args[0]!r} in exercise") from None
    return exercises


def load_exercises(path: str | os.PathLike) -> list[Exercise]:
    """Read and parse an exercise list file."""
    return parse_exercise_list(Path(path).read_text(encoding="utf-8"))
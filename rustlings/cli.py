"""Command line entry point: argument parsing, subcommand dispatch and watch mode."""

from __future__ import annotations

import argparse
import enum
import os
import queue
import subprocess
import sys
import threading
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from rustlings.commands import (
    ExerciseNotFound,
    cicv_verify,
    find_exercise,
    list_exercises,
)
from rustlings.exercise import Exercise, load_exercises
from rustlings.project import RustAnalyzerProject
from rustlings.run import reset, run
from rustlings.verify import ExerciseFailed, verify

VERSION = "5.5.1"
INFO_FILE = "info.toml"
EXERCISES_DIR = "./exercises"
_DEBOUNCE_SECONDS = 1.0
_POLL_SECONDS = 1.0

DEFAULT_OUT = """Thanks for installing Rustlings!

Is this your first time? Don't worry, Rustlings was made for beginners! We are
going to teach you a lot of things about Rust, but before we can get
started, here's a couple of notes about how Rustlings operates:

1. The central concept behind Rustlings is that you solve exercises. These
   exercises usually have some sort of syntax error in them, which will cause
   them to fail compilation or testing. Sometimes there's a logic error instead
   of a syntax error. No matter what error, it's your job to find it and fix it!
   You'll know when you fixed it because then, the exercise will compile and
   Rustlings will be able to move on to the next exercise.
2. If you run Rustlings in watch mode (which we recommend), it'll automatically
   start with the first exercise. Don't get confused by an error message popping
   up as soon as you run Rustlings! This is part of the exercise that you're
   supposed to solve, so open the exercise file in an editor and start your
   detective work!
3. If you're stuck on an exercise, there is a helpful hint you can view by typing
   'hint' (in watch mode), or running `rustlings hint exercise_name`.
4. If an exercise doesn't make sense to you, feel free to open an issue on the
   project's issue tracker. We look at every issue, and sometimes, other
   learners do too so you can help each other out!
5. If you want to use `rust-analyzer` with exercises, which provides features like
   autocompletion, run the command `rustlings lsp`.

Got all that? Great! To get started, run `rustlings watch` in order to get the first
exercise. Make sure to have your editor open!"""

FENISH_LINE = r"""+----------------------------------------------------+
|          You made it to the Fe-nish line!          |
+--------------------------  ------------------------+
                          \\/
     ▒▒          ▒▒▒▒▒▒▒▒      ▒▒▒▒▒▒▒▒          ▒▒
   ▒▒▒▒  ▒▒    ▒▒        ▒▒  ▒▒        ▒▒    ▒▒  ▒▒▒▒
   ▒▒▒▒  ▒▒  ▒▒            ▒▒            ▒▒  ▒▒  ▒▒▒▒
 ░░▒▒▒▒░░▒▒  ▒▒            ▒▒            ▒▒  ▒▒░░▒▒▒▒
   ▓▓▓▓▓▓▓▓  ▓▓      ▓▓██  ▓▓  ▓▓██      ▓▓  ▓▓▓▓▓▓▓▓
     ▒▒▒▒    ▒▒      ████  ▒▒  ████      ▒▒░░  ▒▒▒▒
       ▒▒  ▒▒▒▒▒▒        ▒▒▒▒▒▒        ▒▒▒▒▒▒  ▒▒
         ▒▒▒▒▒▒▒▒▒▒▓▓▓▓▓▓▒▒▒▒▒▒▒▒▓▓▒▒▓▓▒▒▒▒▒▒▒▒
           ▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒
             ▒▒▒▒▒▒▒▒▒▒██▒▒▒▒▒▒██▒▒▒▒▒▒▒▒▒▒
           ▒▒  ▒▒▒▒▒▒▒▒▒▒██████▒▒▒▒▒▒▒▒▒▒  ▒▒
         ▒▒    ▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒    ▒▒
       ▒▒    ▒▒    ▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒    ▒▒    ▒▒
       ▒▒  ▒▒    ▒▒                  ▒▒    ▒▒  ▒▒
           ▒▒  ▒▒                      ▒▒  ▒▒

We hope you enjoyed learning about the various aspects of Rust!
If you noticed any issues, please don't hesitate to report them to our repo.
You can also contribute your own exercises to help the greater community!

Before reporting an issue or contributing, please read our contributing guidelines."""

WELCOME = r"""       welcome to...
                 _   _ _
  _ __ _   _ ___| |_| (_)_ __   __ _ ___
 | '__| | | / __| __| | | '_ \ / _` / __|
 | |  | |_| \__ \ |_| | | | | | (_| \__ \
 |_|   \__,_|___/\__|_|_|_| |_|\__, |___/
                               |___/"""

_HELP_TEXT = """Commands available to you in watch mode:
  hint   - prints the current exercise's hint
  clear  - clears the screen
  quit   - quits watch mode
  !<cmd> - executes a command, like `!rustc --explain E0381`
  help   - displays this help message

Watch mode automatically re-evaluates the current exercise
when you edit a file's contents."""


class WatchStatus(enum.Enum):
    """How watch mode ended."""

    FINISHED = "finished"
    UNFINISHED = "unfinished"


class _Parser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        prefix = "the following arguments are required:"
        if message.startswith(prefix):
            missing = message.removeprefix(prefix).strip()
            message = f"Required positional arguments not provided:\n    {missing}"
        self.print_usage(sys.stderr)
        sys.stderr.write(f"{message}\n")
        raise SystemExit(1)


def _build_parser() -> argparse.ArgumentParser:
    parser = _Parser(
        prog="rustlings",
        description="Rustlings is a collection of small exercises to get you used "
        "to writing and reading Rust code",
    )
    parser.add_argument("--nocapture", action="store_true",
                        help="show outputs from the test exercises")
    parser.add_argument("-v", "--version", action="store_true",
                        help="show the executable version")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("verify", help="Verifies all exercises according to the recommended order")
    watch_parser = sub.add_parser("watch", help="Reruns `verify` when files were edited")
    watch_parser.add_argument("--success-hints", action="store_true",
                              help="show hints on success")
    for name, text in (
        ("run", "Runs/Tests a single exercise"),
        ("reset", 'Resets a single exercise using "git stash -- <filename>"'),
        ("hint", "Returns a hint for the given exercise"),
    ):
        command = sub.add_parser(name, help=text)
        command.add_argument("name", help="the name of the exercise")

    list_parser = sub.add_parser("list", help="Lists the exercises available in Rustlings")
    list_parser.add_argument("-p", "--paths", action="store_true",
                             help="show only the paths of the exercises")
    list_parser.add_argument("-n", "--names", action="store_true",
                             help="show only the names of the exercises")
    list_parser.add_argument("-f", "--filter", default=None,
                             help="comma separated patterns to match exercise names")
    list_parser.add_argument("-u", "--unsolved", action="store_true",
                             help="display only exercises not yet solved")
    list_parser.add_argument("-s", "--solved", action="store_true",
                             help="display only exercises that have been solved")

    sub.add_parser("lsp", help="Enable rust-analyzer for exercises")
    sub.add_parser("cicvverify", help="cicvverify")
    return parser


def rustc_exists() -> bool:
    """Whether ``rustc --version`` runs successfully."""
    try:
        result = subprocess.run(["rustc", "--version"], stdout=subprocess.DEVNULL)
    except OSError:
        return False
    return result.returncode == 0


def handle_shell_command(line: str, hint: str | None = None) -> bool:
    """Carry out one watch-mode shell command; return True when it asks to quit."""
    command = line.strip()
    if command == "hint":
        if hint is not None:
            print(hint)
    elif command == "clear":
        print("\x1b[2J\x1b[1;1H")
    elif command == "quit":
        print("Bye!")
        return True
    elif command == "help":
        print(_HELP_TEXT)
    elif command.startswith("!"):
        cmd = command.removeprefix("!")
        parts = cmd.split()
        if not parts:
            print("no command provided")
        else:
            try:
                subprocess.run(parts)
            except OSError as exc:
                print(f"failed to execute command `{cmd}`: {exc}")
    else:
        print(f"unknown command: {command}")
    return False


@dataclass
class _SharedHint:
    value: str | None = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def get(self) -> str | None:
        with self._lock:
            return self.value

    def set(self, value: str) -> None:
        with self._lock:
            self.value = value


def _spawn_watch_shell(hint: _SharedHint, should_quit: threading.Event) -> None:
    print("Welcome to watch mode! You can type 'help' to get an overview of "
          "the commands you can use here.")

    def loop() -> None:
        try:
            for line in sys.stdin:
                if handle_shell_command(line, hint.get()):
                    should_quit.set()
        except (OSError, ValueError) as exc:
            print(f"error reading command: {exc}")

    threading.Thread(target=loop, daemon=True).start()


def _clear_screen() -> None:
    print("\x1bc")


def _path_ends_with(path: Path, suffix: Path) -> bool:
    tail = Path(suffix).parts
    if not tail:
        return True
    return path.parts[-len(tail):] == tail


def _collect_changes(changes: queue.Queue) -> list[Path]:
    """Wait for a change, then gather distinct paths for the debounce window."""
    try:
        first = changes.get(timeout=_POLL_SECONDS)
    except queue.Empty:
        return []
    seen = {first: None}
    deadline = time.monotonic() + _DEBOUNCE_SECONDS
    while (remaining := deadline - time.monotonic()) > 0:
        try:
            seen.setdefault(changes.get(timeout=remaining), None)
        except queue.Empty:
            break
    return list(seen)


def watch(
    exercises: Sequence[Exercise], verbose: bool = False, success_hints: bool = False
) -> WatchStatus:
    """Verify exercises and re-verify them whenever an exercise file changes."""
    from watchdog.events import FileSystemEventHandler
    from watchdog.observers import Observer

    changes: queue.Queue[Path] = queue.Queue()

    class _ChangeHandler(FileSystemEventHandler):
        def on_any_event(self, event) -> None:
            if not event.is_directory and event.event_type in ("created", "modified"):
                changes.put(Path(os.fsdecode(event.src_path)))

    observer = Observer()
    observer.schedule(_ChangeHandler(), EXERCISES_DIR, recursive=True)
    observer.start()
    try:
        _clear_screen()
        should_quit = threading.Event()
        try:
            verify(exercises, (0, len(exercises)), verbose, success_hints)
            return WatchStatus.FINISHED
        except ExerciseFailed as failed:
            hint = _SharedHint(failed.exercise.hint)
        _spawn_watch_shell(hint, should_quit)

        while True:
            for changed in _collect_changes(changes):
                if changed.suffix != ".rs" or not changed.exists():
                    continue
                filepath = changed.resolve()
                current = next(
                    (e for e in exercises if _path_ends_with(filepath, e.path)), None
                )
                others = [
                    e for e in exercises
                    if not e.looks_done() and not _path_ends_with(filepath, e.path)
                ]
                pending = ([current] if current is not None else []) + others
                num_done = sum(1 for e in exercises if e.looks_done())
                _clear_screen()
                try:
                    verify(pending, (num_done, len(exercises)), verbose, success_hints)
                    return WatchStatus.FINISHED
                except ExerciseFailed as failed:
                    hint.set(failed.exercise.hint)
            if should_quit.is_set():
                return WatchStatus.UNFINISHED
    finally:
        observer.stop()
        observer.join()


def _lsp() -> int:
    project = RustAnalyzerProject()
    try:
        project.get_sysroot_src()
    except OSError:
        print("Couldn't find toolchain path, do you have `rustc` installed?")
        return 1
    project.exercises_to_json(EXERCISES_DIR)
    if not project.crates:
        print("Failed find any exercises, make sure you're in the `rustlings` folder")
        return 0
    try:
        project.write_to_disk()
    except OSError:
        print("Failed to write rust-project.json to disk for rust-analyzer")
        return 0
    print("Successfully generated rust-project.json")
    print("rust-analyzer will now parse exercises, restart your language server or editor")
    return 0


def _watch_command(exercises: Sequence[Exercise], verbose: bool, success_hints: bool) -> int:
    try:
        status = watch(exercises, verbose, success_hints)
    except OSError as exc:
        print(f"Error: Could not watch your progress. Error message was {exc!r}.")
        print("Most likely you've run out of disk space or your 'inotify limit' "
              "has been reached.")
        return 1
    if status is WatchStatus.FINISHED:
        emoji = "★" if "NO_EMOJI" in os.environ else "🎉"
        print(f"{emoji} All exercises completed! {emoji}")
        print(f"\n{FENISH_LINE}\n")
    else:
        print("We hope you're enjoying learning about Rust!")
        print("If you want to continue working on the exercises at a later point, "
              "you can simply run `rustlings watch` again")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line program and return its exit code."""
    try:
        args = _build_parser().parse_args(argv)
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 1

    if args.version:
        print(f"v{VERSION}")
        return 0

    if args.command is None:
        print(f"\n{WELCOME}\n")

    if not Path(INFO_FILE).exists():
        print(f"{sys.argv[0]} must be run from the rustlings directory")
        print("Try `cd rustlings/`!")
        return 1

    if not rustc_exists():
        print("We cannot find `rustc`.")
        print("Try running `rustc --version` to diagnose your problem.")
        print("For instructions on how to install Rust, check the README.")
        return 1

    exercises = load_exercises(INFO_FILE)
    verbose = args.nocapture

    if args.command is None:
        print(f"{DEFAULT_OUT}\n")
        return 0

    if args.command == "list":
        try:
            list_exercises(exercises, args.paths, args.names, args.filter,
                           args.unsolved, args.solved)
        except BrokenPipeError:
            return 0
        return 0

    if args.command in ("run", "reset", "hint"):
        try:
            exercise = find_exercise(args.name, exercises)
        except ExerciseNotFound as exc:
            print(exc)
            return 1
        if args.command == "run":
            try:
                run(exercise, verbose)
            except ExerciseFailed:
                return 1
        elif args.command == "reset":
            try:
                reset(exercise)
            except OSError:
                return 1
        else:
            print(exercise.hint)
        return 0

    if args.command == "verify":
        try:
            verify(exercises, (0, len(exercises)), verbose, False)
        except ExerciseFailed:
            return 1
        return 0

    if args.command == "cicvverify":
        cicv_verify(exercises)
        return 0

    if args.command == "lsp":
        return _lsp()

    return _watch_command(exercises, verbose, args.success_hints)


if __name__ == "__main__":
    sys.exit(main())
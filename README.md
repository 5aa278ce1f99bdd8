# rustlings

A command-line driver for a collection of small Rust exercises. It reads the
exercise list from `info.toml`, compiles and runs each exercise with `rustc`
(or `cargo` for Clippy and build-script exercises), and keeps track of which
ones you have finished.

## Installation

```
pip install .
```

You need `rustc` on your `PATH`, and `cargo` for Clippy and build-script
exercises. Every command other than `-v` checks that `rustc --version` runs
and exits with status 1 if it does not.

Run every command from the directory that holds `info.toml`; otherwise the
program says it must be run from the rustlings directory and exits with
status 1.

## What this package does not include

It ships no exercises and no `info.toml`. You supply an exercise directory
(`./exercises`) and an `info.toml` listing each exercise's `name`, `path`,
`mode` (`compile`, `test`, `clippy` or `buildscript`) and `hint`.

## Usage

```
rustlings                 # show the welcome text
rustlings -v              # print the version
rustlings watch           # re-verify exercises whenever a file changes
rustlings verify          # verify all exercises in the recommended order
rustlings run NAME        # compile and run (or test) one exercise
rustlings run next        # run the first exercise not yet done
rustlings hint NAME       # print the hint for an exercise
rustlings reset NAME      # run "git stash -- <path>" on an exercise file
rustlings list            # list exercises with their status
rustlings lsp             # write rust-project.json for rust-analyzer
rustlings cicvverify      # grade every exercise and write a JSON report
```

`--nocapture` prints the output of test exercises when they pass.

`verify` stops at the first exercise that fails to compile, fails its run or
tests, or still carries the "not done" marker, and then exits with status 1.
`run` exits with status 1 when the exercise fails or no exercise has that
name.

### Marking an exercise as done

An exercise counts as pending while its file still contains a line such as

```
// I AM NOT DONE
```

When a pending exercise passes, `verify` and `watch` print the lines around
that marker. Remove the line and the driver moves on to the next exercise.

### Listing

`rustlings list` accepts:

- `-p` / `--paths`: show only the paths
- `-n` / `--names`: show only the names
- `-f` / `--filter PATTERNS`: comma-separated substrings to match names or paths
- `-u` / `--unsolved`: only pending exercises
- `-s` / `--solved`: only finished exercises

It ends with a line giving how many exercises are done and the percentage.

### Watch mode

`rustlings watch` verifies the exercises, then watches `./exercises` and
re-verifies when a `.rs` file is created or changed, starting with the
changed exercise. While it runs, type one of these and press Enter:

- `hint`: print the hint for the exercise that last failed
- `clear`: clear the screen
- `quit`: leave watch mode
- `!<cmd>`: run a command, for example `!rustc --explain E0381`
- `help`: list these commands

`rustlings watch --success-hints` also prints an exercise's hint when it
passes but is still marked as not done.

### rust-analyzer

`rustlings lsp` writes `rust-project.json` with one crate for every `.rs`
file below `./exercises`. The standard library path is taken from
`RUST_SRC_PATH` when set, otherwise from `rustc --print sysroot`.

### Grading

`rustlings cicvverify` runs every exercise concurrently, prints progress as
it goes, and writes the per-exercise results, success and failure counts and
total time as JSON to `.github/result/check_result.json`. The
`.github/result` directory must already exist.

### Environment

- `NO_EMOJI`: replace emoji in messages with plain characters.
- `NO_COLOR`: turn off colours.
- `CLICOLOR_FORCE` (not `0`): force colours even when output is not a
  terminal.

## Use from Python

```python
from rustlings.exercise import load_exercises
from rustlings.commands import find_exercise, list_exercises

exercises = load_exercises("info.toml")
list_exercises(exercises, unsolved=True)
exercise = find_exercise("next", exercises)
print(exercise.state())
```

`rustlings.cli.main(argv)` runs the command line and returns its exit code.
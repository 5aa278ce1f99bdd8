import json
import subprocess
from unittest import mock

import pytest

from rustlings.cli import (
    WatchStatus,
    handle_shell_command,
    main,
    rustc_exists,
    watch,
)
from rustlings.exercise import load_exercises

SUCCESS = [
    ("compSuccess", "compSuccess.rs", "compile", "", "fn main() {\n}\n"),
    (
        "testSuccess",
        "testSuccess.rs",
        "test",
        "",
        '#[test]\nfn passing() {\n    println!("THIS TEST TOO SHALL PASS");\n'
        "    assert!(true);\n}\n",
    ),
]

FAILURE = [
    ("compFailure", "compFailure.rs", "compile", "", "fn main() {\n    let\n}\n"),
    ("compNoExercise", "compNoExercise.rs", "compile", "", "fn main() {\n}\n"),
    ("testFailure", "testFailure.rs", "test", "Hello!",
     "#[test]\nfn passing() {\n    asset!(true);\n}\n"),
    ("testNotPassed", "testNotPassed.rs", "test", "",
     "#[test]\nfn not_passing() {\n    assert!(false);\n}\n"),
]

STATE = [
    ("pending_exercise", "pending_exercise.rs", "compile", "",
     "// fake_exercise\n\n// I AM NOT DONE\n\nfn main() {\n\n}\n"),
    ("pending_test_exercise", "pending_test_exercise.rs", "test", "",
     "// I AM NOT DONE\n\n#[test]\nfn it_works() {}\n"),
    ("finished_exercise", "finished_exercise.rs", "compile", "",
     "// fake_exercise\n\nfn main() {\n\n}\n"),
]


def make_project(tmp_path, monkeypatch, entries):
    blocks = []
    for name, path, mode, hint, content in entries:
        (tmp_path / path).write_text(content)
        blocks.append(
            "[[exercises]]\n"
            f"name = {json.dumps(name)}\n"
            f"path = {json.dumps(path)}\n"
            f"mode = {json.dumps(mode)}\n"
            f"hint = {json.dumps(hint)}\n"
        )
    (tmp_path / "info.toml").write_text("\n".join(blocks))
    monkeypatch.chdir(tmp_path)


def fake_success(stdout=b""):
    def runner(cmd, *args, **kwargs):
        return subprocess.CompletedProcess(cmd, 0, stdout, b"")

    return runner


def fake_failure(cmd, *args, **kwargs):
    code = 0 if list(cmd[:2]) == ["rustc", "--version"] else 1
    return subprocess.CompletedProcess(cmd, code, b"", b"error: expected pattern")


def test_version(capsys):
    assert main(["--version"]) == 0
    assert capsys.readouterr().out == "v5.5.1\n"


def test_fails_when_in_wrong_dir(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert main([]) == 1
    assert "must be run from the rustlings directory" in capsys.readouterr().out


def test_rustc_exists_true():
    with mock.patch("subprocess.run", side_effect=fake_success()):
        assert rustc_exists() is True


def test_rustc_exists_false_on_failure_status():
    def failing(cmd, *args, **kwargs):
        return subprocess.CompletedProcess(cmd, 1, None, None)

    with mock.patch("subprocess.run", side_effect=failing):
        assert rustc_exists() is False


def test_rustc_exists_false_when_missing():
    with mock.patch("subprocess.run", side_effect=FileNotFoundError("rustc")):
        assert rustc_exists() is False


def test_missing_rustc_exits_with_one(tmp_path, monkeypatch, capsys):
    make_project(tmp_path, monkeypatch, SUCCESS)
    with mock.patch("subprocess.run", side_effect=FileNotFoundError("rustc")):
        assert main(["list"]) == 1
    assert "We cannot find `rustc`." in capsys.readouterr().out


def test_runs_without_arguments(tmp_path, monkeypatch, capsys):
    make_project(tmp_path, monkeypatch, SUCCESS)
    with mock.patch("subprocess.run", side_effect=fake_success()):
        assert main([]) == 0
    out = capsys.readouterr().out
    assert "welcome to..." in out
    assert "Thanks for installing Rustlings!" in out


def test_verify_all_success(tmp_path, monkeypatch):
    make_project(tmp_path, monkeypatch, SUCCESS)
    with mock.patch("subprocess.run", side_effect=fake_success()):
        assert main(["verify"]) == 0


def test_verify_fails_if_some_fails(tmp_path, monkeypatch, capsys):
    make_project(tmp_path, monkeypatch, FAILURE)
    with mock.patch("subprocess.run", side_effect=fake_failure):
        assert main(["verify"]) == 1
    assert "Compiling of compFailure.rs failed!" in capsys.readouterr().out


def test_run_single_compile_success(tmp_path, monkeypatch, capsys):
    make_project(tmp_path, monkeypatch, SUCCESS)
    with mock.patch("subprocess.run", side_effect=fake_success()):
        assert main(["run", "compSuccess"]) == 0
    assert "Successfully ran compSuccess.rs" in capsys.readouterr().out


def test_run_single_compile_failure(tmp_path, monkeypatch, capsys):
    make_project(tmp_path, monkeypatch, FAILURE)
    with mock.patch("subprocess.run", side_effect=fake_failure):
        assert main(["run", "compFailure"]) == 1
    assert "Compilation of compFailure.rs failed!" in capsys.readouterr().out


def test_run_single_test_failure(tmp_path, monkeypatch):
    make_project(tmp_path, monkeypatch, FAILURE)
    with mock.patch("subprocess.run", side_effect=fake_failure):
        assert main(["run", "testFailure"]) == 1


def test_run_single_test_not_passed(tmp_path, monkeypatch, capsys):
    make_project(tmp_path, monkeypatch, FAILURE)
    with mock.patch("subprocess.run", side_effect=fake_failure):
        assert main(["run", "testNotPassed.rs"]) == 1
    assert "No exercise found for 'testNotPassed.rs'!" in capsys.readouterr().out


def test_run_single_test_no_exercise(tmp_path, monkeypatch, capsys):
    make_project(tmp_path, monkeypatch, FAILURE)
    with mock.patch("subprocess.run", side_effect=fake_failure):
        assert main(["run", "compNoExercise.rs"]) == 1
    assert "No exercise found for 'compNoExercise.rs'!" in capsys.readouterr().out


def test_run_single_test_no_filename(capsys):
    assert main(["run"]) == 1
    assert "positional arguments not provided" in capsys.readouterr().err


def test_reset_no_exercise(capsys):
    assert main(["reset"]) == 1
    assert "positional arguments not provided" in capsys.readouterr().err


def test_run_next_when_all_done(tmp_path, monkeypatch, capsys):
    make_project(tmp_path, monkeypatch, SUCCESS)
    with mock.patch("subprocess.run", side_effect=fake_success()):
        assert main(["run", "next"]) == 1
    assert "There are no more exercises to do next!" in capsys.readouterr().out


def test_get_hint_for_single_test(tmp_path, monkeypatch, capsys):
    make_project(tmp_path, monkeypatch, FAILURE)
    with mock.patch("subprocess.run", side_effect=fake_success()):
        assert main(["hint", "testFailure"]) == 0
    assert capsys.readouterr().out == "Hello!\n"


def test_run_compile_exercise_does_not_prompt(tmp_path, monkeypatch, capsys):
    make_project(tmp_path, monkeypatch, STATE)
    with mock.patch("subprocess.run", side_effect=fake_success()):
        assert main(["run", "pending_exercise"]) == 0
    assert "I AM NOT DONE" not in capsys.readouterr().out


def test_run_test_exercise_does_not_prompt(tmp_path, monkeypatch, capsys):
    make_project(tmp_path, monkeypatch, STATE)
    with mock.patch("subprocess.run", side_effect=fake_success()):
        assert main(["run", "pending_test_exercise"]) == 0
    assert "I AM NOT DONE" not in capsys.readouterr().out


def test_run_single_test_success_with_output(tmp_path, monkeypatch, capsys):
    make_project(tmp_path, monkeypatch, SUCCESS)
    runner = fake_success(b"THIS TEST TOO SHALL PASS\n")
    with mock.patch("subprocess.run", side_effect=runner):
        assert main(["--nocapture", "run", "testSuccess"]) == 0
    assert "THIS TEST TOO SHALL PASS" in capsys.readouterr().out


def test_run_single_test_success_without_output(tmp_path, monkeypatch, capsys):
    make_project(tmp_path, monkeypatch, SUCCESS)
    runner = fake_success(b"THIS TEST TOO SHALL PASS\n")
    with mock.patch("subprocess.run", side_effect=runner):
        assert main(["run", "testSuccess"]) == 0
    assert "THIS TEST TOO SHALL PASS" not in capsys.readouterr().out


def test_list_no_pending(tmp_path, monkeypatch, capsys):
    make_project(tmp_path, monkeypatch, SUCCESS)
    with mock.patch("subprocess.run", side_effect=fake_success()):
        assert main(["list"]) == 0
    out = capsys.readouterr().out
    assert "Pending" not in out
    assert "Progress: You completed 2 / 2 exercises (100.0 %)." in out


def test_list_both_done_and_pending(tmp_path, monkeypatch, capsys):
    make_project(tmp_path, monkeypatch, STATE)
    with mock.patch("subprocess.run", side_effect=fake_success()):
        assert main(["list"]) == 0
    out = capsys.readouterr().out
    assert "Done" in out
    assert "Pending" in out


def test_list_without_pending(tmp_path, monkeypatch, capsys):
    make_project(tmp_path, monkeypatch, STATE)
    with mock.patch("subprocess.run", side_effect=fake_success()):
        assert main(["list", "--solved"]) == 0
    out = capsys.readouterr().out
    assert "Pending" not in out
    assert "finished_exercise" in out


def test_list_without_done(tmp_path, monkeypatch, capsys):
    make_project(tmp_path, monkeypatch, STATE)
    with mock.patch("subprocess.run", side_effect=fake_success()):
        assert main(["list", "--unsolved"]) == 0
    out = capsys.readouterr().out
    assert "Done" not in out
    assert "pending_exercise" in out


def test_cicvverify_all_pass(tmp_path, monkeypatch, capsys):
    make_project(tmp_path, monkeypatch, SUCCESS)
    (tmp_path / ".github" / "result").mkdir(parents=True)
    with mock.patch("subprocess.run", side_effect=fake_success()):
        assert main(["--nocapture", "cicvverify"]) == 0
    report = json.loads((tmp_path / ".github/result/check_result.json").read_text())
    assert report["statistics"]["total_exercations"] == 2
    assert report["statistics"]["total_succeeds"] == 2
    assert report["statistics"]["total_failures"] == 0
    assert sorted(e["name"] for e in report["exercises"]) == ["compSuccess", "testSuccess"]


def test_cicvverify_all_fail(tmp_path, monkeypatch):
    make_project(tmp_path, monkeypatch, FAILURE)
    (tmp_path / ".github" / "result").mkdir(parents=True)
    with mock.patch("subprocess.run", side_effect=fake_failure):
        assert main(["cicvverify"]) == 0
    report = json.loads((tmp_path / ".github/result/check_result.json").read_text())
    assert report["statistics"]["total_failures"] == 4
    assert all(e["result"] is False for e in report["exercises"])


def test_lsp_writes_project(tmp_path, monkeypatch, capsys):
    make_project(tmp_path, monkeypatch, SUCCESS)
    (tmp_path / "exercises" / "intro").mkdir(parents=True)
    (tmp_path / "exercises" / "intro" / "intro1.rs").write_text("fn main() {}\n")
    (tmp_path / "exercises" / "README.md").write_text("notes\n")
    monkeypatch.setenv("RUST_SRC_PATH", "/opt/rust/library")
    with mock.patch("subprocess.run", side_effect=fake_success()):
        assert main(["lsp"]) == 0
    data = json.loads((tmp_path / "rust-project.json").read_text())
    assert data["sysroot_src"] == "/opt/rust/library"
    assert [c["root_module"] for c in data["crates"]] == ["exercises/intro/intro1.rs"]
    assert "Successfully generated rust-project.json" in capsys.readouterr().out


def test_lsp_without_exercises(tmp_path, monkeypatch, capsys):
    make_project(tmp_path, monkeypatch, SUCCESS)
    monkeypatch.setenv("RUST_SRC_PATH", "/opt/rust/library")
    with mock.patch("subprocess.run", side_effect=fake_success()):
        assert main(["lsp"]) == 0
    assert "Failed find any exercises" in capsys.readouterr().out
    assert not (tmp_path / "rust-project.json").exists()


def test_shell_quit(capsys):
    assert handle_shell_command("quit\n") is True
    assert capsys.readouterr().out == "Bye!\n"


def test_shell_hint(capsys):
    assert handle_shell_command("  hint ", "Try harder") is False
    assert capsys.readouterr().out == "Try harder\n"


def test_shell_hint_without_hint(capsys):
    assert handle_shell_command("hint", None) is False
    assert capsys.readouterr().out == ""


def test_shell_clear(capsys):
    assert handle_shell_command("clear") is False
    assert capsys.readouterr().out == "\x1b[2J\x1b[1;1H\n"


def test_shell_help(capsys):
    assert handle_shell_command("help") is False
    out = capsys.readouterr().out
    assert out.startswith("Commands available to you in watch mode:")
    assert "quit   - quits watch mode" in out


def test_shell_unknown(capsys):
    assert handle_shell_command("dance") is False
    assert capsys.readouterr().out == "unknown command: dance\n"


def test_shell_empty_bang(capsys):
    assert handle_shell_command("!   ") is False
    assert capsys.readouterr().out == "no command provided\n"


def test_shell_missing_program(capsys):
    assert handle_shell_command("!definitely-not-a-real-program-xyz --flag") is False
    out = capsys.readouterr().out
    assert out.startswith(
        "failed to execute command `definitely-not-a-real-program-xyz --flag`:"
    )


def test_watch_finishes_when_all_exercises_pass(tmp_path, monkeypatch):
    make_project(tmp_path, monkeypatch, SUCCESS)
    (tmp_path / "exercises").mkdir()
    exercises = load_exercises(tmp_path / "info.toml")
    with mock.patch("subprocess.run", side_effect=fake_success()):
        assert watch(exercises, False, False) is WatchStatus.FINISHED
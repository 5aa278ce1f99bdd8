"""Subcommand logic: finding, listing and batch-checking exercises."""

from __future__ import annotations

import json
import sys
import threading
import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from typing import TextIO

from rustlings.exercise import Exercise
from rustlings.run import run
from rustlings.verify import ExerciseFailed

DEFAULT_RESULT_PATH = ".github/result/check_result.json"


class ExerciseNotFound(LookupError):
    """Raised when no exercise matches the requested name."""


@dataclass
class ExerciseResult:
    """Outcome of checking one exercise."""

    name: str
    result: bool


@dataclass
class ExerciseStatistics:
    """Totals over a batch check."""

    total_exercations: int
    total_succeeds: int = 0
    total_failures: int = 0
    total_time: int = 0


@dataclass
class ExerciseCheckList:
    """Report written after a batch check."""

    statistics: ExerciseStatistics
    exercises: list[ExerciseResult] = field(default_factory=list)
    user_name: str | None = None

    def to_json(self) -> str:
        """Return the report as pretty-printed JSON."""
        data = {
            "exercises": [asdict(result) for result in self.exercises],
            "user_name": self.user_name,
            "statistics": asdict(self.statistics),
        }
        return json.dumps(data, indent=2, ensure_ascii=False)


def find_exercise(name: str, exercises: Sequence[Exercise]) -> Exercise:
    """Return the exercise called ``name``, or the first pending one for ``next``."""
    if name == "next":
        found = next((e for e in exercises if not e.looks_done()), None)
        if found is None:
            raise ExerciseNotFound(
                "🎉 Congratulations! You have done all the exercises!\n"
                "🔚 There are no more exercises to do next!"
            )
        return found
    found = next((e for e in exercises if e.name == name), None)
    if found is None:
        raise ExerciseNotFound(f"No exercise found for '{name}'!")
    return found


def list_exercises(
    exercises: Sequence[Exercise],
    paths: bool = False,
    names: bool = False,
    pattern: str | None = None,
    unsolved: bool = False,
    solved: bool = False,
    out: TextIO | None = None,
) -> int:
    """Write the exercise table and progress line; return how many are done."""
    out = sys.stdout if out is None else out
    if not paths and not names:
        out.write(f"{'Name':<17}\t{'Path':<46}\t{'Status':<7}\n")

    filters = [f for f in (pattern or "").lower().split(",") if f.strip()]
    done_count = 0
    for exercise in exercises:
        fname = str(exercise.path)
        matches = any(f in exercise.name or f in fname for f in filters)
        done = exercise.looks_done()
        if done:
            done_count += 1
        status = "Done" if done else "Pending"
        wanted = (done and solved) or (not done and unsolved) or (not solved and not unsolved)
        if wanted and (matches or pattern is None):
            if paths:
                line = f"{fname}\n"
            elif names:
                line = f"{exercise.name}\n"
            else:
                line = f"{exercise.name:<17}\t{fname:<46}\t{status:<7}\n"
            out.write(line)

    total = len(exercises)
    percentage = "NaN" if total == 0 else f"{done_count / total * 100.0:.1f}"
    out.write(
        f"Progress: You completed {done_count} / {total} exercises ({percentage} %).\n"
    )
    return done_count


def cicv_verify(
    exercises: Sequence[Exercise], result_path: str = DEFAULT_RESULT_PATH
) -> ExerciseCheckList:
    """Run every exercise concurrently and write a JSON report to ``result_path``."""
    started = int(time.time())
    total = len(exercises)
    check_list = ExerciseCheckList(statistics=ExerciseStatistics(total_exercations=total))
    lock = threading.Lock()
    rights = 0

    def check(exercise: Exercise, task_start: int) -> None:
        nonlocal rights
        try:
            run(exercise, True)
            passed = True
        except ExerciseFailed:
            passed = False
        with lock:
            if passed:
                rights += 1
                print(f"{exercise.name}执行成功")
            else:
                print(f"{exercise.name}执行失败")
            print(f"总的题目数: {total}")
            print(f"当前做正确的题目数: {rights}")
            print(f"当前修改试卷耗时: {int(time.time()) - task_start} s")
            check_list.exercises.append(ExerciseResult(exercise.name, passed))
            if passed:
                check_list.statistics.total_succeeds += 1
            else:
                check_list.statistics.total_failures += 1

    with ThreadPoolExecutor() as pool:
        futures = [pool.submit(check, e, int(time.time())) for e in exercises]
        for future in futures:
            future.result()

    total_time = int(time.time()) - started
    print(
        "===============================试卷批改完成,总耗时: "
        f"{total_time} s; =================================="
    )
    check_list.statistics.total_time = total_time
    with open(result_path, "w", encoding="utf-8") as handle:
        handle.write(check_list.to_json())
    return check_list
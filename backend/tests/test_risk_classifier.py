from __future__ import annotations

import pytest

from study_insights.learning_records import ModuleProgress, Student
from study_insights.risk_classifier import (
    build_risk_profile,
    classify_risk_level,
    classify_students,
    completion_percentage,
)


def _row(student_id: str, module_id: str, **overrides) -> ModuleProgress:
    return ModuleProgress(student_id=student_id, module_id=module_id, **overrides)


@pytest.mark.parametrize(
    "overall, score, expected",
    [
        (25, 90, "high"),
        (80, 45, "high"),
        (50, 90, "medium"),
        (80, 65, "medium"),
        (60, 70, "low"),
        (100, 100, "low"),
        (0, 0, "high"),
    ],
)
def test_classify_risk_level_bands(overall: float, score: float, expected: str) -> None:
    assert classify_risk_level(overall, score) == expected


def test_risk_level_is_total_over_the_grid() -> None:
    for overall in range(0, 101, 5):
        for score in range(0, 101, 5):
            assert classify_risk_level(overall, score) in {"low", "medium", "high"}


def test_completion_percentage_ladder() -> None:
    assert completion_percentage(_row("s1", "m1", status="completed")) == 100
    assert completion_percentage(_row("s1", "m1", status="in_progress", passed=True)) == 90
    assert completion_percentage(_row("s1", "m1", status="in_progress", best_score=75)) == 80
    assert completion_percentage(_row("s1", "m1", status="in_progress", best_score=70)) == 50


def test_low_average_score_yields_medium_risk() -> None:
    student = Student(id="s1", name="Ada")
    rows = [
        _row("s1", "m1", passed=True, best_score=60),
        _row("s1", "m2", best_score=75),
        _row("s1", "m3", best_score=72),
    ]

    profile = build_risk_profile(student, rows)

    assert profile.overall_progress == 83
    assert profile.average_score == 69
    assert profile.risk_level == "medium"
    assert profile.engagement_level == 100
    assert profile.reasons == ["Average module score at 69%"]


def test_zero_scores_are_left_out_of_the_average() -> None:
    rows = [
        _row("s1", "m1", status="completed", best_score=90),
        _row("s1", "m2"),
    ]

    profile = build_risk_profile(Student(id="s1"), rows)

    assert profile.overall_progress == 75
    assert profile.average_score == 90
    assert profile.risk_level == "low"


def test_latest_score_stands_in_for_missing_best_score() -> None:
    row = _row("s1", "m1", latest_score=64)
    assert row.score == 64


def test_every_rostered_student_gets_a_profile() -> None:
    students = [Student(id="s1", name="Ada"), Student(id="s2", name="Grace")]
    progress = [_row("s1", "m1", status="completed", best_score=95)]

    profiles = classify_students(students, progress)

    assert [profile.student_id for profile in profiles] == ["s1", "s2"]
    assert profiles[0].risk_level == "low"
    idle = profiles[1]
    assert idle.risk_level == "high"
    assert idle.overall_progress == 0
    assert idle.engagement_level == 70
    assert idle.module_count == 0
    assert idle.reasons == ["No module progress recorded"]

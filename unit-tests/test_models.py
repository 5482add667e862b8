import dataclasses

import pytest

from libscraper.models import Contest, Problem, Submission


def test_columns_follow_field_order():
    assert Contest.columns() == (
        "id",
        "start_epoch_second",
        "duration_second",
        "title",
        "rate_change",
    )
    assert Problem.columns() == ("id", "contest_id", "title")
    assert Submission.columns()[0] == "id"
    assert Submission.columns()[-1] == "execution_time"
    assert len(Submission.columns()) == 10


def test_row_conversion():
    problem = Problem(id="arc001_a", contest_id="arc001", title="Problem 1")
    assert problem.to_row() == ("arc001_a", "arc001", "Problem 1")
    assert Problem.from_row(problem.to_row()) == problem

    row = (5, 1500000000, "abc001_a", "abc001", "user", "C++", 100.0, 512, "AC", None)
    submission = Submission.from_row(row)
    assert submission.execution_time is None
    assert submission.point == 100.0
    assert submission.to_row() == row


def test_execution_time_defaults_to_missing():
    submission = Submission(
        id=1,
        epoch_second=0,
        problem_id="",
        contest_id="",
        user_id="",
        language="",
        point=0.0,
        length=0,
        result="",
    )
    assert submission.execution_time is None


def test_records_are_immutable():
    contest = Contest(
        id="arc001", start_epoch_second=0, duration_second=0, title="Contest 1", rate_change="-"
    )
    with pytest.raises(dataclasses.FrozenInstanceError):
        contest.title = "other"

    # records are hashable values
    assert len({contest, dataclasses.replace(contest)}) == 1

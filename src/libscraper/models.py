import dataclasses
from typing import Optional


class _Row:
    """
    Mixin for records that map one-to-one onto a table row.
    Field declaration order is the column order used in SQL statements.
    """

    @classmethod
    def columns(cls) -> tuple[str, ...]:
        return tuple(field.name for field in dataclasses.fields(cls))

    @classmethod
    def from_row(cls, row: tuple):
        return cls(*row)

    def to_row(self) -> tuple:
        return dataclasses.astuple(self)


@dataclasses.dataclass(frozen=True)
class Contest(_Row):
    id: str
    start_epoch_second: int
    duration_second: int
    title: str
    rate_change: str


@dataclasses.dataclass(frozen=True)
class Problem(_Row):
    id: str
    contest_id: str
    title: str


@dataclasses.dataclass(frozen=True)
class Submission(_Row):
    """
    A single attempt of a user at a problem.

    Attributes:
        id: Submission id assigned by the contest site.
        epoch_second: Submission time as a unix timestamp.
        point: Score awarded for the submission.
        length: Source code length in bytes.
        result: Judge verdict, e.g. "AC" or "WA".
        execution_time: Execution time in milliseconds. Missing for
            submissions that never ran, e.g. compile errors.
    """

    id: int
    epoch_second: int
    problem_id: str
    contest_id: str
    user_id: str
    language: str
    point: float
    length: int
    result: str
    execution_time: Optional[int] = None

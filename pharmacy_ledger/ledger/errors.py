# pharmacy_ledger/ledger/errors.py
"""
Ledger error taxonomy. Every class here is recoverable at the UI boundary:
show the message, let the operator fix the input and retry.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional


class DomainError(Exception):
    """Domain-level error suitable for surfacing to the UI."""
    pass


@dataclass(frozen=True)
class LineIssue:
    line_no: int | None   # 1-based; None for header-level problems
    label: str            # item name / field the issue belongs to
    message: str

    def __str__(self) -> str:
        where = f"line {self.line_no} ({self.label})" if self.line_no is not None else self.label
        return f"{where}: {self.message}"


class ValidationError(DomainError):
    """Input rejected before anything was written."""

    def __init__(self, issues: Iterable[LineIssue] | str):
        if isinstance(issues, str):
            issues = [LineIssue(None, "input", issues)]
        self.issues: list[LineIssue] = list(issues)
        super().__init__("; ".join(str(i) for i in self.issues))

    @property
    def line_numbers(self) -> list[int]:
        return sorted({i.line_no for i in self.issues if i.line_no is not None})


class ReturnQuantityError(ValidationError):
    """Requested return quantity exceeds what can be returned."""
    pass


class NotFoundError(DomainError):
    """A referenced bill/batch/supplier/purchase/return does not exist."""
    pass


class PersistenceError(DomainError):
    """
    A database statement failed; the surrounding transaction has been rolled back.
    `step` names the statement group, `line_no` the 1-based line when per-line.
    """

    def __init__(self, step: str, cause: BaseException, *, line_no: Optional[int] = None, label: str | None = None):
        self.step = step
        self.line_no = line_no
        self.label = label
        self.cause = cause
        where = ""
        if line_no is not None:
            where = f" on line {line_no}" + (f" ({label})" if label else "")
        super().__init__(f"Failed to {step}{where}: {cause}")

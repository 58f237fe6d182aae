# src/markup_auditor/exceptions.py
from typing import Optional

from markup_auditor.model import SourceLocation


class AuditorError(Exception):
    """Base class for every error raised by the audit engine."""


class ParseError(AuditorError):
    """
    Raised when markup or a style sheet is structurally unrecoverable.
    Aborts model construction; no partial model is ever returned.
    """

    def __init__(self, message: str, location: Optional[SourceLocation] = None):
        self.message = message
        self.location = location
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.location is None:
            return self.message
        return f"{self.location}: {self.message}"

    def to_dict(self):
        return {
            "error": self.message,
            "location": self.location.model_dump() if self.location else None,
        }


class EvaluationError(AuditorError):
    """
    A single rule failed internally. Never propagates out of the evaluator;
    it is converted into an info-severity finding for that rule.
    """

    def __init__(self, rule_key: str, cause: BaseException):
        self.rule_key = rule_key
        self.cause = cause
        super().__init__(f"Rule '{rule_key}' failed: {type(cause).__name__}: {cause}")


class ConfigurationError(AuditorError):
    """Invalid static setup: duplicate rule keys, late registration, bad weights."""


class AuditCancelled(AuditorError):
    """Raised between pipeline phases when a run has been cancelled."""

    def __init__(self, phase: str):
        self.phase = phase
        super().__init__(f"Audit cancelled before phase '{phase}'")

"""
Non-fatal conditions met during a translation run.

A data problem with one piece of equipment never aborts the batch: the
translator records a `Diagnostic`, logs it, and carries on with the next
record.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Iterator
import logging

__all__ = ["DiagnosticKind", "Diagnostic", "DiagnosticLog"]

logger = logging.getLogger(__name__)


class DiagnosticKind(StrEnum):
    MISSING_TOPOLOGY = "missing topology"
    UNSUPPORTED_CONFIGURATION = "unsupported configuration"
    INCONSISTENT_WINDING_COUNT = "inconsistent winding count"
    POSITIONAL_TERMINAL_ORDER = "positional terminal order"
    MISSING_SPACING = "missing spacing"
    MISSING_SOURCE = "missing source"
    INVALID_VALUE = "invalid value"
    DUPLICATE_PHASES = "duplicate phases"


@dataclass(frozen=True)
class Diagnostic:
    kind: DiagnosticKind
    subject: str
    message: str

    def __str__(self) -> str:
        return f"{self.kind}: {self.subject}: {self.message}"


@dataclass
class DiagnosticLog:
    """Collects the diagnostics of one translation run in reporting order."""
    entries: list[Diagnostic] = field(default_factory=list)

    def report(self, kind: DiagnosticKind, subject: str, message: str) -> Diagnostic:
        d = Diagnostic(kind, subject, message)
        self.entries.append(d)
        logger.warning(str(d))
        return d

    def of_kind(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [d for d in self.entries if d.kind == kind]

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

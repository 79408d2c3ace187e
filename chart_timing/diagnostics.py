"""
Chart Timing Engine - Diagnostics

Recoverable problems found while parsing are recorded here instead of being
raised.  A :class:`Diagnostics` collector travels with every parse and ends
up attached to the resulting chart, so callers decide whether to log,
surface or ignore them.  Fatal problems raise :class:`ChartParseError`,
which carries the collector as it stood at the time of failure.
"""

from __future__ import annotations

from typing import Any

from loguru import logger


class Diagnostic:
    """Represents a single parse diagnostic."""

    WARNING = "warning"
    INFO = "info"

    def __init__(
        self,
        severity: str,
        code: str,
        message: str,
        line: int | None = None,
        section: str | None = None,
    ):
        self.severity = severity
        self.code = code
        self.message = message
        self.line = line
        self.section = section

    def __str__(self) -> str:
        sev_icon = {"warning": "⚠️", "info": "ℹ️"}.get(self.severity, "?")
        loc = f" (line {self.line})" if self.line else ""
        where = f" [{self.section}]" if self.section else ""
        return f"{sev_icon} [{self.code}]{where}{loc} {self.message}"

    def __repr__(self) -> str:
        return (
            f"Diagnostic({self.severity!r}, {self.code!r}, {self.message!r}, "
            f"line={self.line!r}, section={self.section!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity,
            "code": self.code,
            "message": self.message,
            "line": self.line,
            "section": self.section,
        }


class Diagnostics:
    """Accumulates diagnostics for one parse call."""

    def __init__(self) -> None:
        self.items: list[Diagnostic] = []

    def __iter__(self):
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    @property
    def has_warnings(self) -> bool:
        return any(d.severity == Diagnostic.WARNING for d in self.items)

    def add(
        self,
        severity: str,
        code: str,
        message: str,
        line: int | None = None,
        section: str | None = None,
    ) -> Diagnostic:
        diagnostic = Diagnostic(severity, code, message, line, section)
        self.items.append(diagnostic)
        logger.debug("{}", diagnostic)
        return diagnostic

    def warning(
        self,
        code: str,
        message: str,
        line: int | None = None,
        section: str | None = None,
    ) -> Diagnostic:
        return self.add(Diagnostic.WARNING, code, message, line, section)

    def info(
        self,
        code: str,
        message: str,
        line: int | None = None,
        section: str | None = None,
    ) -> Diagnostic:
        return self.add(Diagnostic.INFO, code, message, line, section)

    def codes(self) -> list[str]:
        """Return the diagnostic codes in the order they were recorded."""
        return [d.code for d in self.items]

    def summary(self) -> str:
        warnings = sum(1 for d in self.items if d.severity == Diagnostic.WARNING)
        info = sum(1 for d in self.items if d.severity == Diagnostic.INFO)
        return f"{warnings} warning(s), {info} info"

    def to_dict(self) -> dict[str, Any]:
        return {
            "warnings": sum(
                1 for d in self.items if d.severity == Diagnostic.WARNING
            ),
            "items": [d.to_dict() for d in self.items],
        }


class ChartParseError(ValueError):
    """Raised when a chart cannot be interpreted at all."""

    def __init__(
        self,
        code: str,
        message: str,
        diagnostics: Diagnostics | None = None,
        line: int | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.line = line
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()

    def __str__(self) -> str:
        loc = f" (line {self.line})" if self.line else ""
        return f"[{self.code}]{loc} {self.message}"

"""
Chart Timing Engine - Section Splitter & Line Grammars

The ``.chart`` format is a plain-text INI-like file with bracketed sections:

    [Song]
    {
      Resolution = 192
    }

Every body line is either a common ``KEY = VALUE`` line or a tick line
``TICK = REST``.  None of the helpers here raise on a bad line: they record
a diagnostic and return ``None`` so one malformed line never costs the rest
of the section.
"""

from __future__ import annotations

import re
from typing import NamedTuple, Sequence

from chart_timing.config import MIN_SECTION_SPAN
from chart_timing.diagnostics import Diagnostics

_RE_SECTION_HEADER = re.compile(r"^\[(.+)\]$")
# Split at the first " = " so values may themselves contain "="
_RE_COMMON_LINE = re.compile(r"^(.+?)\s+=\s+(.+)$")
_RE_TICK = re.compile(r"^\d+$")

_BRACES = ("{", "}")


class ChartLine(NamedTuple):
    """A trimmed, non-empty source line and its 1-based line number."""

    number: int
    text: str


class TickLine(NamedTuple):
    tick: int
    rest: str
    number: int | None
    text: str


def split_sections(
    text: str, diagnostics: Diagnostics
) -> dict[str, list[ChartLine]]:
    """
    Split a chart file's text into named sections.

    Returns a dict mapping section title to its body lines (trimmed,
    non-empty, brace delimiters excluded).  A section whose header-to-next-
    header span is shorter than ``MIN_SECTION_SPAN`` lines is dropped.
    """
    lines = [
        ChartLine(number, raw.strip())
        for number, raw in enumerate(text.splitlines(), start=1)
        if raw.strip()
    ]

    header_indices = [
        i for i, line in enumerate(lines) if _RE_SECTION_HEADER.match(line.text)
    ]

    sections: dict[str, list[ChartLine]] = {}
    for pos, start in enumerate(header_indices):
        end = header_indices[pos + 1] if pos + 1 < len(header_indices) else len(lines)
        header = lines[start]
        title = _RE_SECTION_HEADER.match(header.text).group(1)

        if end - start < MIN_SECTION_SPAN:
            diagnostics.info(
                "EMPTY_SECTION",
                f"Section [{title}] has no content and was ignored",
                header.number,
                title,
            )
            continue

        if title in sections:
            diagnostics.warning(
                "DUPLICATE_SECTION",
                f"Section [{title}] appears more than once; the last one wins",
                header.number,
                title,
            )

        sections[title] = [
            line for line in lines[start + 1 : end] if line.text not in _BRACES
        ]

    return sections


def parse_common_line(
    text: str,
    section: str,
    diagnostics: Diagnostics,
    line: int | None = None,
) -> tuple[str, str] | None:
    """Parse ``KEY = VALUE``; returns ``None`` (with a diagnostic) on mismatch."""
    m = _RE_COMMON_LINE.match(text.strip())
    if not m:
        diagnostics.warning(
            "BAD_LINE", f"Invalid [{section}] entry '{text}'", line, section
        )
        return None
    return m.group(1), m.group(2)


def parse_tick_line(
    text: str,
    section: str,
    diagnostics: Diagnostics,
    line: int | None = None,
) -> tuple[int, str] | None:
    """Parse ``TICK = REST`` where TICK is a non-negative integer."""
    parsed = parse_common_line(text, section, diagnostics, line)
    if parsed is None:
        return None
    key, rest = parsed
    if not _RE_TICK.match(key):
        diagnostics.warning(
            "BAD_TICK",
            f"Invalid tick '{key}' in [{section}] entry '{text}'",
            line,
            section,
        )
        return None
    return int(key), rest


def parse_and_sort_tick_lines(
    lines: Sequence[ChartLine], section: str, diagnostics: Diagnostics
) -> list[TickLine]:
    """Parse every tick line of a section and stable-sort them by tick."""
    result: list[TickLine] = []
    for line in lines:
        parsed = parse_tick_line(line.text, section, diagnostics, line.number)
        if parsed is not None:
            result.append(TickLine(parsed[0], parsed[1], line.number, line.text))
    return sorted(result, key=lambda t: t.tick)

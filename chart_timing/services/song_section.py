"""
Chart Timing Engine - [Song] Section Parser
"""

from __future__ import annotations

import math
from types import MappingProxyType
from typing import Sequence

from chart_timing.config import NUMERIC_SONG_FIELDS
from chart_timing.diagnostics import ChartParseError, Diagnostics
from chart_timing.models import SongMetadata
from chart_timing.services.sections import ChartLine, parse_common_line

SECTION = "Song"


def _unquote(value: str) -> str:
    if value.startswith('"'):
        value = value[1:]
    if value.endswith('"'):
        value = value[:-1]
    return value


def parse_song_section(
    lines: Sequence[ChartLine], diagnostics: Diagnostics
) -> SongMetadata:
    """
    Parse the [Song] section into :class:`SongMetadata`.

    Keys are lower-cased and quoted values unquoted.  Keys listed in
    ``NUMERIC_SONG_FIELDS`` are coerced to ``float``; a value that does not
    coerce drops just that key.

    Raises
    ------
    ChartParseError
        If ``resolution`` is missing or is not a positive integer.
    """
    fields: dict[str, str | float] = {}

    for line in lines:
        parsed = parse_common_line(line.text, SECTION, diagnostics, line.number)
        if parsed is None:
            continue
        key, raw_value = parsed
        key = key.lower()
        value = _unquote(raw_value)

        if key in NUMERIC_SONG_FIELDS:
            try:
                number = float(value)
            except ValueError:
                number = math.nan
            if not math.isfinite(number):
                diagnostics.warning(
                    "BAD_NUMBER",
                    f"Invalid numerical [Song] entry '{line.text}'",
                    line.number,
                    SECTION,
                )
                continue
            fields[key] = number
        else:
            fields[key] = value

    if "resolution" not in fields:
        raise ChartParseError(
            "MISSING_RESOLUTION",
            "Invalid [Song] section - missing 'resolution'",
            diagnostics,
        )

    resolution = fields["resolution"]
    if resolution <= 0 or not float(resolution).is_integer():
        raise ChartParseError(
            "BAD_RESOLUTION",
            f"Invalid [Song] section - resolution must be a positive integer, "
            f"got {resolution:g}",
            diagnostics,
        )
    fields["resolution"] = int(resolution)

    return SongMetadata(resolution=int(resolution), fields=MappingProxyType(fields))

"""
Chart Timing Engine - [SyncTrack] Section Parser

Tempo (``B``) and time-signature (``TS``) events:

    0 = B 120000        # 120 BPM, stored as thousandths
    0 = TS 4            # 4/4 (denominator exponent defaults to 2)
    768 = TS 6 3        # 6/8

The result always has exactly one BPM and one time signature at tick 0,
synthesised from the defaults when the chart omits them.
"""

from __future__ import annotations

import re
from typing import Sequence

from chart_timing.config import (
    DEFAULT_BPM,
    DEFAULT_TIME_SIGNATURE,
    DEFAULT_TS_EXPONENT,
    MAX_TS_EXPONENT,
)
from chart_timing.diagnostics import ChartParseError, Diagnostics
from chart_timing.models import Bpm, SyncEvent, SyncTrack, TimeSignature
from chart_timing.services.sections import (
    ChartLine,
    TickLine,
    parse_and_sort_tick_lines,
)

SECTION = "SyncTrack"

_RE_SYNC_EVENT = re.compile(r"^([A-Za-z]+)\s+(.+)$")


def _parse_int(token: str) -> int | None:
    try:
        return int(token)
    except ValueError:
        return None


def parse_sync_track_event(
    tick_line: TickLine, diagnostics: Diagnostics
) -> SyncEvent | None:
    """
    Parse the right-hand side of one sync-track tick line.

    Returns ``None`` (with a diagnostic) for a recognisable but unusable
    event.

    Raises
    ------
    ChartParseError
        If the text is not an event at all (no ``CODE args`` shape).
    """
    tick, frag = tick_line.tick, tick_line.rest
    m = _RE_SYNC_EVENT.match(frag.strip())
    if not m:
        raise ChartParseError(
            "BAD_SYNC_EVENT",
            f"Failed to parse sync track event '{frag}'",
            diagnostics,
            tick_line.number,
        )
    code, args = m.group(1), m.group(2).strip()

    if code == "B":
        parts = args.split()
        raw = _parse_int(parts[0])
        if raw is None or raw <= 0:
            diagnostics.warning(
                "BAD_BPM", f"Invalid BPM '{frag}'", tick_line.number, SECTION
            )
            return None
        if len(parts) > 1:
            diagnostics.warning(
                "EXTRA_SYNC_FIELDS",
                f"Ignoring extra fields after BPM in '{frag}'",
                tick_line.number,
                SECTION,
            )
        return Bpm(tick=tick, bpm=raw / 1000)

    if code == "TS":
        parts = args.split()
        numerator = _parse_int(parts[0])
        exponent = _parse_int(parts[1]) if len(parts) > 1 else DEFAULT_TS_EXPONENT
        if (
            len(parts) > 2
            or numerator is None
            or exponent is None
            or numerator <= 0
            or not 0 <= exponent <= MAX_TS_EXPONENT
        ):
            diagnostics.warning(
                "BAD_TIME_SIGNATURE",
                f"Invalid TS '{frag}'",
                tick_line.number,
                SECTION,
            )
            return None
        return TimeSignature(tick=tick, numerator=numerator, denominator=2**exponent)

    diagnostics.warning(
        "UNKNOWN_SYNC_EVENT",
        f"Unknown sync track event '{frag}'",
        tick_line.number,
        SECTION,
    )
    return None


def parse_sync_track(
    lines: Sequence[ChartLine], diagnostics: Diagnostics
) -> SyncTrack:
    """Parse the [SyncTrack] section into an (untimed) :class:`SyncTrack`."""
    parsed: list[SyncEvent] = []
    for tick_line in parse_and_sort_tick_lines(lines, SECTION, diagnostics):
        event = parse_sync_track_event(tick_line, diagnostics)
        if event is not None:
            parsed.append(event)

    # One event of each type per tick: the last one in the file wins
    latest: dict[tuple, int] = {}
    for index, event in enumerate(parsed):
        key = (event.event_type, event.tick)
        if key in latest:
            diagnostics.warning(
                "DUPLICATE_SYNC_EVENT",
                f"More than one {event.event_type.value.upper()} event at tick "
                f"{event.tick}; using the last one",
                section=SECTION,
            )
        latest[key] = index
    all_events = [
        event
        for index, event in enumerate(parsed)
        if latest[(event.event_type, event.tick)] == index
    ]

    bpms = [e for e in all_events if isinstance(e, Bpm)]
    time_signatures = [e for e in all_events if isinstance(e, TimeSignature)]

    if not any(e.tick == 0 for e in bpms):
        base_bpm = Bpm(tick=0, bpm=DEFAULT_BPM)
        bpms.insert(0, base_bpm)
        all_events.insert(0, base_bpm)
        diagnostics.info(
            "DEFAULT_BPM",
            f"No BPM at tick 0; assuming {DEFAULT_BPM:g}",
            section=SECTION,
        )

    if not any(e.tick == 0 for e in time_signatures):
        numerator, denominator = DEFAULT_TIME_SIGNATURE
        base_ts = TimeSignature(tick=0, numerator=numerator, denominator=denominator)
        time_signatures.insert(0, base_ts)
        all_events.insert(0, base_ts)
        diagnostics.info(
            "DEFAULT_TIME_SIGNATURE",
            f"No time signature at tick 0; assuming {numerator}/{denominator}",
            section=SECTION,
        )

    return SyncTrack(
        bpms=tuple(bpms),
        time_signatures=tuple(time_signatures),
        all_events=tuple(all_events),
    )

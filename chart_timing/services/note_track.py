"""
Chart Timing Engine - Instrument Track & [Events] Parsers

Instrument sections (``[ExpertSingle]``, ``[HardDoubleBass]``, ...) hold
three kinds of tick lines, tried in this order:

    768 = N 2 0         # note: lane, sustain length in ticks
    768 = S 2 1536      # star power phrase
    768 = E solo        # free-text event

Lanes 0-4 are frets, 7 is the open note.  Lanes 5 (forced) and 6 (tap) are
modifiers for the notes sharing their tick and never become notes.

Parsing runs in two passes:

1. Fold the sorted tick lines through a :class:`NoteBuffer`.  Notes and
   modifiers at the same tick collect in the buffer; when the tick changes
   the buffer is committed, which fixes ``is_chord``, ``forced`` and ``tap``
   for the whole group.
2. Walk the committed notes and set ``is_hopo`` from the chord/forced/tap
   flags and the distance to the last note seen on any *other* lane.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Callable, Sequence

from chart_timing.config import hopo_threshold
from chart_timing.diagnostics import Diagnostics
from chart_timing.models import (
    FORCED_LANE,
    LANE_COUNT,
    OPEN_LANE,
    PLAYABLE_LANES,
    TAP_LANE,
    NoteEvent,
    SimpleEvent,
    StarPowerEvent,
    TrackEvent,
)
from chart_timing.services.sections import (
    ChartLine,
    TickLine,
    parse_and_sort_tick_lines,
)
from chart_timing.services.tempo_map import TempoMap

_RE_NOTE = re.compile(r"^N\s+(\d+)\s+(\d+)")
_RE_STAR_POWER = re.compile(r"^S\s+2\s+(\d+)")
_RE_SIMPLE_EVENT = re.compile(r"^E\s+(.+)")


# ---------------------------------------------------------------------------
# Event shapes
# ---------------------------------------------------------------------------


def _unquote(value: str) -> str:
    value = value.strip()
    if value.startswith('"'):
        value = value[1:]
    if value.endswith('"'):
        value = value[:-1]
    return value


def parse_note_event(tick_line: TickLine) -> NoteEvent | None:
    """``N lane duration``; flags are filled in later."""
    m = _RE_NOTE.match(tick_line.rest)
    if not m:
        return None
    return NoteEvent(
        tick=tick_line.tick, note=int(m.group(1)), duration=int(m.group(2))
    )


def parse_star_power_event(tick_line: TickLine) -> StarPowerEvent | None:
    """``S 2 duration`` with a positive duration."""
    m = _RE_STAR_POWER.match(tick_line.rest)
    if not m:
        return None
    duration = int(m.group(1))
    if duration <= 0:
        return None
    return StarPowerEvent(tick=tick_line.tick, duration=duration)


def parse_simple_event(tick_line: TickLine) -> SimpleEvent | None:
    """``E value``, surrounding quotes removed."""
    m = _RE_SIMPLE_EVENT.match(tick_line.rest)
    if not m:
        return None
    return SimpleEvent(tick=tick_line.tick, value=_unquote(m.group(1)))


TRACK_EVENT_PARSERS: tuple[Callable[[TickLine], TrackEvent | None], ...] = (
    parse_note_event,
    parse_star_power_event,
    parse_simple_event,
)


def parse_track_event(tick_line: TickLine) -> TrackEvent | None:
    """Try each event shape in priority order; the first match wins."""
    for parser_fn in TRACK_EVENT_PARSERS:
        event = parser_fn(tick_line)
        if event is not None:
            return event
    return None


# ---------------------------------------------------------------------------
# Pass 1: same-tick grouping
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NoteBuffer:
    """Notes and modifiers seen at the current tick."""

    tick: int | None = None
    notes: tuple[NoteEvent, ...] = ()
    forced: bool = False
    tap: bool = False

    def add(self, note: NoteEvent) -> NoteBuffer:
        if note.note == FORCED_LANE:
            return replace(self, forced=True)
        if note.note == TAP_LANE:
            return replace(self, tap=True)
        return replace(self, notes=self.notes + (note,))

    def commit(self) -> list[NoteEvent]:
        """
        Finalise the buffered notes.

        Open notes do not count towards a chord, and a tap modifier cancels
        a forced one.
        """
        is_chord = sum(1 for n in self.notes if n.note != OPEN_LANE) > 1
        forced = self.forced and not self.tap
        return [
            replace(n, is_chord=is_chord, forced=forced, tap=self.tap)
            for n in self.notes
        ]


def advance(buffer: NoteBuffer, tick: int) -> tuple[list[NoteEvent], NoteBuffer]:
    """
    Move the buffer to *tick*, committing it first if the tick changed.

    Returns the committed notes (possibly none) and the new buffer.
    """
    if buffer.tick is None or buffer.tick == tick:
        return [], replace(buffer, tick=tick)
    return buffer.commit(), NoteBuffer(tick=tick)


# ---------------------------------------------------------------------------
# Pass 2: HOPO classification
# ---------------------------------------------------------------------------


def assign_hopo_flags(
    events: Sequence[TrackEvent], threshold: float
) -> list[TrackEvent]:
    """
    Set ``is_hopo`` on every note of a tick-ordered, committed track.

    Taps are never HOPOs and chords only when forced.  A single note is a
    natural HOPO when another lane was last played at most *threshold*
    ticks earlier; forcing inverts that.
    """
    last_seen: list[int | None] = [None] * LANE_COUNT
    result: list[TrackEvent] = []

    for event in events:
        if not isinstance(event, NoteEvent):
            result.append(event)
            continue

        if event.tap:
            is_hopo = False
        elif event.is_chord:
            is_hopo = event.forced
        else:
            natural = any(
                lane != event.note
                and seen is not None
                and event.tick - threshold <= seen < event.tick
                for lane, seen in enumerate(last_seen)
            )
            is_hopo = not natural if event.forced else natural

        last_seen[event.note] = event.tick
        result.append(replace(event, is_hopo=is_hopo))

    return result


# ---------------------------------------------------------------------------
# Section parsers
# ---------------------------------------------------------------------------


def parse_note_track(
    title: str,
    lines: Sequence[ChartLine],
    tempo_map: TempoMap,
    diagnostics: Diagnostics,
) -> tuple[TrackEvent, ...]:
    """Parse a 5-fret instrument section into timed, fully-flagged events."""
    events: list[TrackEvent] = []
    buffer = NoteBuffer()

    for tick_line in parse_and_sort_tick_lines(lines, title, diagnostics):
        committed, buffer = advance(buffer, tick_line.tick)
        events.extend(committed)

        event = parse_track_event(tick_line)
        if event is None:
            diagnostics.warning(
                "UNKNOWN_TRACK_EVENT",
                f"Invalid [{title}] entry '{tick_line.text}'",
                tick_line.number,
                title,
            )
        elif isinstance(event, NoteEvent):
            if event.note in PLAYABLE_LANES or event.note in (FORCED_LANE, TAP_LANE):
                buffer = buffer.add(event)
            else:
                diagnostics.warning(
                    "BAD_NOTE",
                    f"Note lane {event.note} out of range in [{title}] entry "
                    f"'{tick_line.text}'",
                    tick_line.number,
                    title,
                )
        else:
            events.append(event)

    events.extend(buffer.commit())

    flagged = assign_hopo_flags(events, hopo_threshold(tempo_map.resolution))
    return tempo_map.time_track(flagged)


def parse_events_section(
    title: str,
    lines: Sequence[ChartLine],
    tempo_map: TempoMap,
    diagnostics: Diagnostics,
) -> tuple[SimpleEvent, ...]:
    """Parse the global [Events] section (``E`` lines only)."""
    events: list[SimpleEvent] = []
    for tick_line in parse_and_sort_tick_lines(lines, title, diagnostics):
        event = parse_simple_event(tick_line)
        if event is None:
            diagnostics.warning(
                "UNKNOWN_TRACK_EVENT",
                f"Invalid [{title}] entry '{tick_line.text}'",
                tick_line.number,
                title,
            )
            continue
        events.append(event)
    return tempo_map.time_track(events)

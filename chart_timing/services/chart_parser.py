"""
Chart Timing Engine - Chart Parser Service

Parses Clone Hero ``notes.chart`` text into a :class:`ParsedChart` in which
every event carries both its ``tick`` and its playback ``assigned_time``.

    [Song]        – metadata key/value pairs (``Resolution`` is mandatory)
    [SyncTrack]   – tempo (B) and time-signature (TS) events
    [Events]      – section markers, lyrics, and other events
    [ExpertSingle] / [HardDoubleBass] / ...
                  – note data for each difficulty and instrument

This module provides:
    - The assembler tying the section parsers together
    - A file entry point with BOM-aware decoding
    - JSON-safe serialisation and a lightweight summary for listings
"""

from __future__ import annotations

from dataclasses import asdict
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Sequence

from loguru import logger

from chart_timing.config import (
    CHART_ENCODING,
    DIFFICULTIES,
    EVENTS_SECTION,
    FIVE_FRET_INSTRUMENTS,
    MAX_CHART_FILE_SIZE_BYTES,
    REQUIRED_SECTIONS,
)
from chart_timing.diagnostics import ChartParseError, Diagnostics
from chart_timing.models import (
    EventType,
    NoteEvent,
    ParsedChart,
    SimpleEvent,
    StarPowerEvent,
    SyncTrack,
)
from chart_timing.services.note_track import parse_events_section, parse_note_track
from chart_timing.services.sections import ChartLine, split_sections
from chart_timing.services.song_section import parse_song_section
from chart_timing.services.sync_track import parse_sync_track
from chart_timing.services.tempo_map import TempoMap

SectionParser = Callable[
    [str, Sequence[ChartLine], TempoMap, Diagnostics], tuple
]

# Section title → parser for every section besides [Song] and [SyncTrack]
SECTION_PARSERS: dict[str, SectionParser] = {EVENTS_SECTION: parse_events_section}
SECTION_PARSERS.update(
    {
        f"{difficulty}{instrument}": parse_note_track
        for instrument in FIVE_FRET_INSTRUMENTS
        for difficulty in DIFFICULTIES
    }
)


def get_section_parser(title: str) -> SectionParser | None:
    return SECTION_PARSERS.get(title)


# ---------------------------------------------------------------------------
# High-level chart parsing
# ---------------------------------------------------------------------------


def parse_chart(text: str) -> ParsedChart:
    """
    Parse chart text into a :class:`ParsedChart`.

    Recoverable problems are collected in ``chart.diagnostics``.

    Raises
    ------
    ChartParseError
        If the text is empty, [Song] or [SyncTrack] is missing, the
        resolution is missing/invalid, or a sync-track line is not an event.
    """
    diagnostics = Diagnostics()

    # Remove BOM if present
    if text.startswith("\ufeff"):
        text = text[1:]
    if not text.strip():
        raise ChartParseError("EMPTY_CHART", "Chart text is empty", diagnostics)

    sections = split_sections(text, diagnostics)

    for required in REQUIRED_SECTIONS:
        if required not in sections:
            raise ChartParseError(
                "MISSING_SECTION",
                f"Missing [{required}] section in chart",
                diagnostics,
            )

    # ── [Song] / [SyncTrack] ──
    song = parse_song_section(sections["Song"], diagnostics)
    sync = parse_sync_track(sections["SyncTrack"], diagnostics)

    tempo_map = TempoMap.from_sync_track(sync, song.resolution)
    sync_track = SyncTrack(
        bpms=tempo_map.bpms,
        time_signatures=tempo_map.time_track(sync.time_signatures),
        all_events=tempo_map.time_track(sync.all_events),
    )

    # ── [Events] and instrument tracks ──
    remaining = {t: l for t, l in sections.items() if t not in REQUIRED_SECTIONS}
    events: tuple[SimpleEvent, ...] | None = None
    tracks: dict[str, tuple] = {}

    for title, lines in remaining.items():
        parser_fn = get_section_parser(title)
        if parser_fn is None:
            diagnostics.warning(
                "UNSUPPORTED_SECTION",
                f"Unsupported chart section '[{title}]'",
                section=title,
            )
            continue
        parsed = parser_fn(title, lines, tempo_map, diagnostics)
        if title == EVENTS_SECTION:
            events = parsed
        else:
            tracks[title] = parsed

    chart = ParsedChart(
        song=song,
        sync_track=sync_track,
        tempo_map=tempo_map,
        events=events,
        tracks=MappingProxyType(tracks),
        diagnostics=diagnostics,
    )

    logger.info(
        "📊 Parsed chart: {} | resolution={} | {} tempo markers | tracks: {} | "
        "{} | ~{:.1f}s",
        song.name or "untitled",
        song.resolution,
        len(sync_track.bpms),
        ", ".join(tracks) or "none",
        diagnostics.summary(),
        chart_duration(chart),
    )
    return chart


def parse_chart_file(path: str | Path) -> ParsedChart:
    """
    Parse a Clone Hero ``.chart`` file.

    Raises
    ------
    FileNotFoundError
        If the chart file does not exist.
    ChartParseError
        If the file is too large or cannot be parsed at all.
    """
    chart_path = Path(path)
    if not chart_path.exists():
        raise FileNotFoundError(f"Chart file not found: {path}")

    size = chart_path.stat().st_size
    if size > MAX_CHART_FILE_SIZE_BYTES:
        raise ChartParseError(
            "FILE_TOO_LARGE",
            f"Chart file is {size} bytes; limit is {MAX_CHART_FILE_SIZE_BYTES}",
        )

    # Read with BOM-aware encoding
    text = chart_path.read_text(encoding=CHART_ENCODING, errors="replace")

    try:
        return parse_chart(text)
    except ChartParseError as e:
        logger.error("❌ Failed to parse chart file {}: {}", chart_path, e)
        raise


# ---------------------------------------------------------------------------
# Derived values
# ---------------------------------------------------------------------------


def chart_duration(chart: ParsedChart) -> float:
    """Time in seconds at which the last note or star-power phrase ends."""
    max_tick = 0
    for events in chart.tracks.values():
        for event in events:
            if isinstance(event, (NoteEvent, StarPowerEvent)):
                max_tick = max(max_tick, event.end_tick)
    return chart.tick_to_time(max_tick) if max_tick > 0 else 0.0


# ---------------------------------------------------------------------------
# JSON-safe serialisation
# ---------------------------------------------------------------------------


def event_to_dict(event: Any) -> dict[str, Any]:
    """Flatten a timed event into a plain dict with a ``type`` discriminant."""
    data = asdict(event)
    data["type"] = data.pop("event_type").value
    if isinstance(event, SimpleEvent):
        data["kind"] = event.kind
    elif isinstance(event, NoteEvent):
        data["lane_name"] = event.lane_name
    return data


def chart_to_json(chart: ParsedChart) -> dict[str, Any]:
    """
    Convert a :class:`ParsedChart` into a fully JSON-serialisable dict.

    The tempo map is replaced with a plain dict of its markers.
    """
    sync = chart.sync_track
    return {
        "song": chart.song.to_dict(),
        "sync_track": {
            "bpms": [event_to_dict(e) for e in sync.bpms],
            "time_signatures": [event_to_dict(e) for e in sync.time_signatures],
            "all_events": [event_to_dict(e) for e in sync.all_events],
        },
        "events": (
            [event_to_dict(e) for e in chart.events]
            if chart.events is not None
            else None
        ),
        "tracks": {
            title: [event_to_dict(e) for e in events]
            for title, events in chart.tracks.items()
        },
        "tempo_map": chart.tempo_map.to_dict(),
        "duration_s": round(chart_duration(chart), 3),
        "diagnostics": chart.diagnostics.to_dict(),
    }


# ---------------------------------------------------------------------------
# Convenience / summary helpers
# ---------------------------------------------------------------------------


def get_chart_summary(chart: ParsedChart) -> dict[str, Any]:
    """
    Return a lightweight summary of a parsed chart (no note data).

    Useful for listing charts without shipping full note arrays.
    """
    song = chart.song
    events = chart.events or ()

    track_summary = {}
    for title, track in chart.tracks.items():
        notes = [e for e in track if e.event_type is EventType.NOTE]
        track_summary[title] = {
            "note_count": len(notes),
            "chord_notes": sum(1 for n in notes if n.is_chord),
            "hopo_count": sum(1 for n in notes if n.is_hopo),
            "tap_count": sum(1 for n in notes if n.tap),
            "star_power_phrases": sum(
                1 for e in track if e.event_type is EventType.STAR_POWER
            ),
        }

    bpms = [b.bpm for b in chart.sync_track.bpms]

    return {
        "name": song.name or "Unknown",
        "artist": song.artist or "Unknown",
        "album": song.album or "",
        "charter": song.charter or "",
        "genre": song.genre or "",
        "resolution": song.resolution,
        "duration_s": round(chart_duration(chart), 3),
        "has_lyrics": any(e.kind in ("lyric", "phrase_start") for e in events),
        "sections": [e.text for e in events if e.kind == "section"],
        "tracks": track_summary,
        "bpm_range": {
            "min": round(min(bpms), 1),
            "max": round(max(bpms), 1),
            "primary": round(bpms[0], 1),
        },
        "warnings": sum(1 for d in chart.diagnostics if d.severity == "warning"),
    }

"""
Chart Timing Engine

Parses Clone Hero ``.chart`` text into a time-annotated structure and
converts between ticks and seconds under tempo and meter changes.
"""

from chart_timing.diagnostics import ChartParseError, Diagnostic, Diagnostics
from chart_timing.models import (
    Bpm,
    EventType,
    NoteEvent,
    ParsedChart,
    SimpleEvent,
    SongMetadata,
    StarPowerEvent,
    SyncTrack,
    TimeSignature,
)
from chart_timing.services.chart_parser import (
    chart_to_json,
    get_chart_summary,
    parse_chart,
    parse_chart_file,
)
from chart_timing.services.tempo_map import TempoMap, find_last_tick_event, iter_beats

__version__ = "1.0.0"

__all__ = [
    "Bpm",
    "ChartParseError",
    "Diagnostic",
    "Diagnostics",
    "EventType",
    "NoteEvent",
    "ParsedChart",
    "SimpleEvent",
    "SongMetadata",
    "StarPowerEvent",
    "SyncTrack",
    "TempoMap",
    "TimeSignature",
    "chart_to_json",
    "find_last_tick_event",
    "get_chart_summary",
    "iter_beats",
    "parse_chart",
    "parse_chart_file",
]

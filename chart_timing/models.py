"""
Chart Timing Engine - Data Model

Every parsed entity is a frozen dataclass tagged with an :class:`EventType`
discriminant.  Events start life untimed (``assigned_time is None``) and are
copied with their playback time by the tempo map; nothing is mutated after a
parse returns.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping, Optional, Union

if TYPE_CHECKING:
    from chart_timing.services.tempo_map import TempoMap


class EventType(str, Enum):
    """Discriminant shared by every tick-bearing record."""

    BPM = "bpm"
    TIME_SIGNATURE = "ts"
    NOTE = "note"
    STAR_POWER = "starpower"
    EVENT = "event"


# Lane names for display
LANE_NAMES: dict[int, str] = {
    0: "Green",
    1: "Red",
    2: "Yellow",
    3: "Blue",
    4: "Orange",
    5: "Force",
    6: "Tap",
    7: "Open",
}

FORCED_LANE = 5
TAP_LANE = 6
OPEN_LANE = 7
PLAYABLE_LANES = frozenset({0, 1, 2, 3, 4, OPEN_LANE})
LANE_COUNT = 8


class _Timed:
    """Helpers shared by the event dataclasses."""

    assigned_time: Optional[float]

    @property
    def is_timed(self) -> bool:
        return self.assigned_time is not None

    def with_time(self, seconds: float):
        """Return a copy of this event carrying its playback time."""
        return replace(self, assigned_time=seconds)


@dataclass(frozen=True)
class Bpm(_Timed):
    """A tempo change; *bpm* is real beats per minute (raw value / 1000)."""

    tick: int
    bpm: float
    assigned_time: Optional[float] = None
    event_type: EventType = field(default=EventType.BPM, init=False)


@dataclass(frozen=True)
class TimeSignature(_Timed):
    """A meter change; *denominator* is already expanded from its exponent."""

    tick: int
    numerator: int
    denominator: int
    assigned_time: Optional[float] = None
    event_type: EventType = field(default=EventType.TIME_SIGNATURE, init=False)

    def beat_ticks(self, resolution: int) -> float:
        """Length of one beat of this meter in ticks."""
        return resolution * 4 / self.denominator


@dataclass(frozen=True)
class NoteEvent(_Timed):
    """A playable note.  Flags are final once the note leaves the parser."""

    tick: int
    note: int
    duration: int = 0
    is_hopo: bool = False
    is_chord: bool = False
    forced: bool = False
    tap: bool = False
    assigned_time: Optional[float] = None
    event_type: EventType = field(default=EventType.NOTE, init=False)

    @property
    def lane_name(self) -> str:
        return LANE_NAMES.get(self.note, f"Lane {self.note}")

    @property
    def is_open(self) -> bool:
        return self.note == OPEN_LANE

    @property
    def end_tick(self) -> int:
        return self.tick + self.duration


@dataclass(frozen=True)
class StarPowerEvent(_Timed):
    tick: int
    duration: int
    assigned_time: Optional[float] = None
    event_type: EventType = field(default=EventType.STAR_POWER, init=False)

    @property
    def end_tick(self) -> int:
        return self.tick + self.duration


@dataclass(frozen=True)
class SimpleEvent(_Timed):
    """A free-text marker (section name, lyric, phrase boundary, ...)."""

    tick: int
    value: str
    assigned_time: Optional[float] = None
    event_type: EventType = field(default=EventType.EVENT, init=False)

    @property
    def kind(self) -> str:
        return event_kind(self.value)[0]

    @property
    def text(self) -> str:
        return event_kind(self.value)[1]


SyncEvent = Union[Bpm, TimeSignature]
TrackEvent = Union[NoteEvent, StarPowerEvent, SimpleEvent]


def event_kind(value: str) -> tuple[str, str]:
    """
    Classify an ``E`` event value.

    Returns ``(kind, text)`` where *kind* is one of ``section``, ``lyric``,
    ``phrase_start``, ``phrase_end`` or ``other`` and *text* is the payload
    with the keyword removed.
    """
    raw = value.strip()
    if raw.startswith("section "):
        return "section", raw[len("section ") :]
    if raw == "phrase_start":
        return "phrase_start", ""
    if raw == "phrase_end":
        return "phrase_end", ""
    if raw.startswith("lyric "):
        return "lyric", raw[len("lyric ") :]
    return "other", raw


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SyncTrack:
    """Tempo and meter changes, each sequence ordered by tick."""

    bpms: tuple[Bpm, ...]
    time_signatures: tuple[TimeSignature, ...]
    all_events: tuple[SyncEvent, ...]


@dataclass(frozen=True)
class SongMetadata:
    """
    The ``[Song]`` section.

    *fields* holds every parsed key lower-cased; numeric keys are floats,
    everything else is the unquoted string.  ``resolution`` is promoted to a
    positive ``int`` because nothing can be timed without it.
    """

    resolution: int
    fields: Mapping[str, Union[str, float]] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.fields.get(key.lower(), default)

    def __getitem__(self, key: str) -> Union[str, float]:
        return self.fields[key.lower()]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self.fields

    @property
    def name(self) -> Optional[str]:
        return self.get("name")

    @property
    def artist(self) -> Optional[str]:
        return self.get("artist")

    @property
    def album(self) -> Optional[str]:
        return self.get("album")

    @property
    def charter(self) -> Optional[str]:
        return self.get("charter")

    @property
    def year(self) -> Optional[str]:
        return self.get("year")

    @property
    def genre(self) -> Optional[str]:
        return self.get("genre")

    @property
    def offset(self) -> float:
        return self.get("offset", 0.0)

    def to_dict(self) -> dict[str, Any]:
        result = dict(self.fields)
        result["resolution"] = self.resolution
        return result


@dataclass(frozen=True)
class ParsedChart:
    """
    The assembled chart.

    ``tracks`` maps an instrument section title (e.g. ``ExpertSingle``) to its
    timed events in tick order.  ``tempo_map`` answers further tick/time
    queries for the same chart.
    """

    song: SongMetadata
    sync_track: SyncTrack
    tempo_map: "TempoMap"
    events: Optional[tuple[SimpleEvent, ...]]
    tracks: Mapping[str, tuple[TrackEvent, ...]]
    diagnostics: Any

    @property
    def resolution(self) -> int:
        return self.song.resolution

    def track(self, difficulty: str, instrument: str = "Single") -> Optional[tuple]:
        return self.tracks.get(f"{difficulty}{instrument}")

    def notes(self, title: str) -> list[NoteEvent]:
        """Only the notes of track *title* (empty if the track is absent)."""
        return [
            e for e in self.tracks.get(title, ()) if e.event_type is EventType.NOTE
        ]

    def tick_to_time(self, tick: int) -> float:
        return self.tempo_map.tick_to_time(tick)

    def time_to_tick(self, seconds: float) -> int:
        return self.tempo_map.time_to_tick(seconds)

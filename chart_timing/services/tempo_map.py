"""
Chart Timing Engine - Tick ↔ Time Conversion

A :class:`TempoMap` is built once per chart from its BPM events.  Each BPM
marker is assigned the cumulative playback time at which it takes effect;
every later conversion is a binary search over those markers plus a linear
step inside the found tempo segment:

    seconds = (tick_delta / resolution) * 60 / bpm

All sections get their ``assigned_time`` through :meth:`TempoMap.time_track`.
"""

from __future__ import annotations

from bisect import bisect_left, bisect_right
from typing import Any, Iterable, Iterator, NamedTuple, Sequence, TypeVar

from chart_timing.config import DEFAULT_BPM, DEFAULT_TIME_SIGNATURE
from chart_timing.models import Bpm, SyncTrack, TimeSignature

SECONDS_PER_MINUTE = 60.0

T = TypeVar("T")


class TempoMap:
    """
    Maintains the timed BPM markers of a chart and provides tick ↔ time
    conversion.

    *bpms* are :class:`Bpm` events with real beats-per-minute values.  They
    are stable-sorted by tick and a default marker is added at tick 0 when
    none is present.
    """

    resolution: int

    def __init__(self, bpms: Sequence[Bpm], resolution: int):
        if resolution <= 0:
            raise ValueError(f"Resolution must be positive, got {resolution}")
        markers = sorted(bpms, key=lambda b: b.tick)
        if not markers or markers[0].tick != 0:
            markers.insert(0, Bpm(tick=0, bpm=DEFAULT_BPM))
        for marker in markers:
            if marker.bpm <= 0:
                raise ValueError(f"BPM must be positive, got {marker.bpm} at tick {marker.tick}")

        self.resolution = resolution

        # Pre-compute cumulative time at each marker for fast lookup
        timed: list[Bpm] = []
        elapsed = 0.0
        prev = markers[0]
        for marker in markers:
            elapsed += self._ticks_to_seconds(marker.tick - prev.tick, prev.bpm)
            timed.append(marker.with_time(elapsed))
            prev = marker

        self.bpms: tuple[Bpm, ...] = tuple(timed)
        self._ticks: list[int] = [b.tick for b in timed]
        self._times: list[float] = [b.assigned_time for b in timed]

    @classmethod
    def from_sync_track(cls, sync_track: SyncTrack, resolution: int) -> TempoMap:
        return cls(sync_track.bpms, resolution)

    def __repr__(self) -> str:
        return f"TempoMap(resolution={self.resolution}, markers={len(self.bpms)})"

    def _ticks_to_seconds(self, ticks: float, bpm: float) -> float:
        """Convert a tick delta to seconds at the given BPM."""
        beats = ticks / self.resolution
        return beats * (SECONDS_PER_MINUTE / bpm)

    def _segment_for_tick(self, tick: float) -> int:
        # Latest marker whose tick <= target; ticks before 0 use the first
        return max(bisect_right(self._ticks, tick) - 1, 0)

    def tick_to_time(self, tick: float) -> float:
        """Convert an absolute tick position to a time in seconds."""
        seg = self.bpms[self._segment_for_tick(tick)]
        return seg.assigned_time + self._ticks_to_seconds(tick - seg.tick, seg.bpm)

    def time_to_tick(self, seconds: float) -> int:
        """Convert a time in seconds to the nearest absolute tick (>= 0)."""
        if seconds <= 0:
            return 0

        # Last marker that starts strictly before the requested time
        seg = self.bpms[bisect_left(self._times, seconds) - 1]
        beats = (seconds - seg.assigned_time) * seg.bpm / SECONDS_PER_MINUTE
        return seg.tick + int(round(beats * self.resolution))

    def bpm_at_tick(self, tick: float) -> float:
        """Return the BPM in effect at the given tick."""
        return self.bpms[self._segment_for_tick(tick)].bpm

    def time_track(self, events: Iterable[T]) -> tuple[T, ...]:
        """Return copies of tick-bearing *events* with ``assigned_time`` set."""
        return tuple(e.with_time(self.tick_to_time(e.tick)) for e in events)

    @property
    def total_time(self) -> float:
        """Time of the last tempo marker (not the length of the song)."""
        return self._times[-1]

    def to_dict(self) -> dict[str, Any]:
        return {
            "resolution": self.resolution,
            "markers": [
                {
                    "tick": b.tick,
                    "bpm": round(b.bpm, 3),
                    "assigned_time": round(b.assigned_time, 6),
                }
                for b in self.bpms
            ],
        }


# ---------------------------------------------------------------------------
# Sequence helpers
# ---------------------------------------------------------------------------


def find_last_tick_event(tick: float, events: Sequence[T]) -> T | None:
    """
    Return the latest event with ``event.tick <= tick`` from a tick-sorted
    sequence, or ``None`` if there is none.
    """
    lo, hi = 0, len(events) - 1
    found: T | None = None
    while lo <= hi:
        mid = (lo + hi) // 2
        if events[mid].tick <= tick:
            found = events[mid]
            lo = mid + 1
        else:
            hi = mid - 1
    return found


class Beat(NamedTuple):
    tick: float
    index: int  # beat number within the bar, from 0
    is_bar_start: bool


def iter_beats(
    time_signatures: Sequence[TimeSignature],
    resolution: int,
    end_tick: float,
) -> Iterator[Beat]:
    """
    Yield the beat grid from tick 0 up to and including *end_tick*.

    A beat lasts ``resolution * 4 / denominator`` ticks.  Each time
    signature starts a new bar at its own tick, even if the previous bar was
    incomplete.
    """
    signatures = sorted(time_signatures, key=lambda ts: ts.tick)
    if not signatures or signatures[0].tick != 0:
        numerator, denominator = DEFAULT_TIME_SIGNATURE
        signatures.insert(0, TimeSignature(0, numerator, denominator))

    for i, ts in enumerate(signatures):
        next_start = signatures[i + 1].tick if i + 1 < len(signatures) else None
        beat_len = ts.beat_ticks(resolution)
        n = 0
        while True:
            tick = ts.tick + n * beat_len
            if tick > end_tick:
                return
            if next_start is not None and tick >= next_start:
                break
            yield Beat(tick, n % ts.numerator, n % ts.numerator == 0)
            n += 1

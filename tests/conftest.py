"""
Chart Timing Engine - Pytest Configuration & Shared Fixtures

Provides reusable fixtures and helpers for:
- Sample chart text (valid, multi-tempo, and broken variants)
- Building minimal charts around a handful of track lines
- Turning plain strings into numbered section lines
- Writing chart files to a temporary song folder
"""

from pathlib import Path
from typing import Iterable, List

import pytest

from chart_timing.diagnostics import Diagnostics
from chart_timing.models import Bpm
from chart_timing.services.sections import ChartLine
from chart_timing.services.tempo_map import TempoMap

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def chart_lines(*texts: str) -> List[ChartLine]:
    """Number plain strings the way the section splitter would."""
    return [ChartLine(i, text) for i, text in enumerate(texts, start=1)]


def build_chart(
    track_lines: Iterable[str],
    title: str = "ExpertSingle",
    resolution: int = 192,
    sync_lines: Iterable[str] = ("0 = TS 4", "0 = B 120000"),
) -> str:
    """Wrap *track_lines* in a minimal chart with one instrument section."""
    sync_body = "\n".join(f"  {line}" for line in sync_lines)
    track_body = "\n".join(f"  {line}" for line in track_lines)
    return (
        "[Song]\n{\n"
        f"  Name = \"Built Chart\"\n  Resolution = {resolution}\n"
        "}\n"
        f"[SyncTrack]\n{{\n{sync_body}\n}}\n"
        f"[{title}]\n{{\n{track_body}\n}}\n"
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def diagnostics() -> Diagnostics:
    """Provide a fresh diagnostics collector for each test."""
    return Diagnostics()


@pytest.fixture
def tempo_map_120() -> TempoMap:
    """A constant 120 BPM tempo map at resolution 192 (0.5s per beat)."""
    return TempoMap([Bpm(tick=0, bpm=120.0)], 192)


@pytest.fixture
def tempo_map_two_tempos() -> TempoMap:
    """120 BPM for the first bar, then 240 BPM from tick 768 (t = 2.0s)."""
    return TempoMap([Bpm(tick=0, bpm=120.0), Bpm(tick=768, bpm=240.0)], 192)


@pytest.fixture
def song_folder(tmp_path: Path) -> Path:
    """
    Create a song folder containing a valid notes.chart written with the
    UTF-8 BOM Clone Hero uses.
    """
    folder = tmp_path / "Test Artist - Test Song"
    folder.mkdir()
    (folder / "notes.chart").write_text(SAMPLE_CHART_VALID, encoding="utf-8-sig")
    return folder


@pytest.fixture
def chart_file(song_folder: Path) -> Path:
    return song_folder / "notes.chart"


# ---------------------------------------------------------------------------
# Sample chart content
# ---------------------------------------------------------------------------

# Tempo: 120 BPM until tick 768 (2.0s), then 240 BPM; 3/8 from tick 1536 (3.0s)
SAMPLE_CHART_VALID = """\
[Song]
{
  Name = "Test Song"
  Artist = "Test Artist"
  Album = "Test Album"
  Year = ", 2024"
  Charter = "testcharter"
  Offset = 0
  Resolution = 192
  Player2 = bass
  Difficulty = 0
  PreviewStart = 0
  PreviewEnd = 0
  Genre = "rock"
  MediaType = "cd"
  MusicStream = "song.ogg"
}
[SyncTrack]
{
  0 = TS 4
  0 = B 120000
  768 = B 240000
  1536 = TS 3 3
}
[Events]
{
  0 = E "section Intro"
  768 = E "section Verse 1"
  960 = E "phrase_start"
  960 = E "lyric Hel-"
  1008 = E "lyric lo"
  1152 = E "phrase_end"
}
[ExpertSingle]
{
  0 = N 0 0
  192 = N 1 0
  240 = N 2 0
  384 = N 0 0
  384 = N 1 0
  768 = N 4 96
  768 = S 2 384
  960 = N 7 0
  1008 = N 3 0
  1008 = N 6 0
  1536 = N 2 192
  1536 = E solo
}
[HardSingle]
{
  0 = N 0 0
  384 = N 1 0
}
[ExpertDrums]
{
  0 = N 0 0
}
"""

# The minimal chart from the format documentation
SAMPLE_CHART_MINIMAL = """\
[Song]
{
Resolution = 192
}
[SyncTrack]
{
0 = B 120000
0 = TS 4
}
[ExpertSingle]
{
0 = N 0 0
192 = N 1 0
}"""

SAMPLE_CHART_NO_SYNC = """\
[Song]
{
  Resolution = 192
}
[ExpertSingle]
{
  0 = N 0 0
}
"""

SAMPLE_CHART_NO_RESOLUTION = """\
[Song]
{
  Name = "No Resolution"
}
[SyncTrack]
{
  0 = B 120000
}
"""

"""
Chart Timing Engine - Configuration
Tunable settings loaded from environment variables with sensible defaults,
plus the fixed constants of the ``.chart`` format.

Parsing itself is a pure function of the input text; nothing here is
mutated at runtime.
"""

import os

from dotenv import load_dotenv

# Load environment variables from .env file
_ = load_dotenv()

# ---------------------------------------------------------------------------
# Logging (the library never installs sinks; the CLI does)
# ---------------------------------------------------------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
DEBUG = os.getenv("DEBUG", "false").lower() == "true"

# ---------------------------------------------------------------------------
# File input
# ---------------------------------------------------------------------------
# Clone Hero charts are conventionally written as UTF-8 with a BOM
CHART_ENCODING = os.getenv("CHART_ENCODING", "utf-8-sig")

MAX_CHART_FILE_SIZE_MB = int(os.getenv("MAX_CHART_FILE_SIZE_MB", "50"))
MAX_CHART_FILE_SIZE_BYTES = MAX_CHART_FILE_SIZE_MB * 1024 * 1024

# ---------------------------------------------------------------------------
# Timing / note classification
# ---------------------------------------------------------------------------
REFERENCE_RESOLUTION = 192  # ticks per quarter note the HOPO window is quoted at

# HOPO window in ticks at REFERENCE_RESOLUTION; scaled to the chart's own
# resolution at parse time.
HOPO_THRESHOLD_TICKS = float(os.getenv("HOPO_THRESHOLD_TICKS", "65"))

DEFAULT_BPM = 120.0
DEFAULT_TIME_SIGNATURE = (4, 4)  # (numerator, denominator)
DEFAULT_TS_EXPONENT = 2  # "TS 4" means 4/(2**2)
# Largest accepted denominator exponent: "TS n 6" is n/64
MAX_TS_EXPONENT = 6

# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------
# header, "{", at least one body line, "}"
MIN_SECTION_SPAN = 4

REQUIRED_SECTIONS = ("Song", "SyncTrack")
EVENTS_SECTION = "Events"

DIFFICULTIES = ("Easy", "Medium", "Hard", "Expert")

# 5-fret tracks that share the N/S/E note grammar
FIVE_FRET_INSTRUMENTS = (
    "Single",
    "DoubleGuitar",
    "DoubleBass",
    "DoubleRhythm",
    "Keyboard",
)

# [Song] keys coerced to numbers (keys are compared lower-cased)
NUMERIC_SONG_FIELDS = (
    "resolution",
    "offset",
    "difficulty",
    "previewstart",
    "previewend",
)


def hopo_threshold(resolution: int) -> float:
    """Return the HOPO proximity window in ticks for *resolution*."""
    return HOPO_THRESHOLD_TICKS / REFERENCE_RESOLUTION * resolution

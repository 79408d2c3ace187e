#!/usr/bin/env python3
"""
parse_chart.py — Parse a Clone Hero .chart file and report its timing

Prints a summary of the chart (tracks, tempo range, duration) and any
diagnostics recorded while parsing, or the full time-annotated chart as
JSON.

Usage:
    python scripts/parse_chart.py "songs/Go To Sleep/notes.chart"
    python scripts/parse_chart.py --json notes.chart
    python scripts/parse_chart.py --track ExpertSingle notes.chart
    python scripts/parse_chart.py --tick 768 --time 12.5 notes.chart

Flags:
    --json      Output the parsed chart as JSON
    --track     Limit note listing / JSON tracks to one section title
    --tick      Convert a tick to seconds (repeatable)
    --time      Convert seconds to a tick (repeatable)
    --verbose   Show info-level diagnostics and debug logging
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger

from chart_timing.config import DEBUG, LOG_LEVEL
from chart_timing.diagnostics import ChartParseError, Diagnostic
from chart_timing.services.chart_parser import (
    chart_to_json,
    get_chart_summary,
    parse_chart_file,
)


def _setup_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if (DEBUG or verbose) else LOG_LEVEL,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        colorize=True,
    )


def _resolve_chart_path(target: str) -> Optional[Path]:
    target_path = Path(target)
    if target_path.is_dir():
        return target_path / "notes.chart"
    if target_path.suffix == ".chart":
        return target_path
    return None


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Parse a Clone Hero .chart file and report its timing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("path", help="Song directory or notes.chart file")
    parser.add_argument("--json", action="store_true", help="Output chart as JSON")
    parser.add_argument("--track", help="Only include this track (e.g. ExpertSingle)")
    parser.add_argument(
        "--tick", type=int, action="append", default=[], help="Tick to convert"
    )
    parser.add_argument(
        "--time", type=float, action="append", default=[], help="Seconds to convert"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show all diagnostic messages including info-level",
    )

    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    chart_path = _resolve_chart_path(args.path)
    if chart_path is None:
        print(f"❌ Not a valid target: {args.path}")
        return 1

    try:
        chart = parse_chart_file(chart_path)
    except FileNotFoundError as e:
        print(f"❌ {e}")
        return 1
    except ChartParseError as e:
        print(f"❌ {e}")
        return 1

    if args.track and args.track not in chart.tracks:
        print(f"❌ Track [{args.track}] not found in {chart_path}")
        return 1

    if args.json:
        output = chart_to_json(chart)
        if args.track:
            output["tracks"] = {args.track: output["tracks"][args.track]}
        output["conversions"] = {
            "ticks": {str(t): chart.tick_to_time(t) for t in args.tick},
            "times": {str(s): chart.time_to_tick(s) for s in args.time},
        }
        print(json.dumps(output, indent=2, ensure_ascii=False))
        return 0

    summary = get_chart_summary(chart)
    print()
    print("=" * 60)
    print(f"✅ {summary['artist']} - {summary['name']} ({chart_path})")
    print("-" * 60)
    print(f"  Resolution : {summary['resolution']}")
    bpm_range = summary["bpm_range"]
    print(f"  BPM        : {bpm_range['min']} - {bpm_range['max']}")
    print(f"  Duration   : {summary['duration_s']:.3f}s")
    if summary["sections"]:
        print(f"  Sections   : {', '.join(summary['sections'])}")
    for title, info in summary["tracks"].items():
        if args.track and title != args.track:
            continue
        print(
            f"  [{title}] {info['note_count']} notes, {info['hopo_count']} HOPOs, "
            f"{info['tap_count']} taps, {info['star_power_phrases']} star power"
        )

    for tick in args.tick:
        print(f"  tick {tick} -> {chart.tick_to_time(tick):.6f}s")
    for seconds in args.time:
        print(f"  {seconds}s -> tick {chart.time_to_tick(seconds)}")

    shown = [
        d
        for d in chart.diagnostics
        if args.verbose or d.severity != Diagnostic.INFO
    ]
    if shown:
        print()
        print(f"  Diagnostics ({chart.diagnostics.summary()}):")
        for diagnostic in shown:
            print(f"    {diagnostic}")
    print()
    return 0


if __name__ == "__main__":
    sys.exit(main())

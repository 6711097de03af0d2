"""Argument helpers shared by the heatmap and clip CLIs."""

from __future__ import annotations

import argparse
from pathlib import Path

from .filters import ContentFilters, EventFilters, filter_library
from .ingest import LibraryData
from .types import MentionEvent


def resolve_path(data_dir: str | None, explicit: str | None, filename: str) -> str:
    if explicit:
        return explicit
    if data_dir:
        return str(Path(data_dir) / filename)
    raise ValueError(f"Missing required path for {filename}")


def parse_csv(value: str | None) -> set[str]:
    if not value:
        return set()
    return {item.strip() for item in value.split(",") if item.strip()}


def add_input_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--data-dir", default=None, help="Directory containing library.json")
    parser.add_argument("--library", default=None, help="Library JSON path (defaults to data-dir/library.json)")
    parser.add_argument("--config", default=None, help="Optional heatmap config JSON")
    parser.add_argument("--num-buckets", type=int, default=None)


def add_filter_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--min-duration-sec", type=float, default=None, help="Drop events shorter than this")
    parser.add_argument("--window-start", type=float, default=0.0)
    parser.add_argument("--window-end", type=float, default=None)
    parser.add_argument("--subjects", default=None, help="Comma-separated subject allow-list")
    parser.add_argument("--creators", default=None, help="Comma-separated creator filter")
    parser.add_argument("--formats", default=None, help="Comma-separated format filter (horizontal,vertical)")
    parser.add_argument("--regions", default=None, help="Comma-separated region filter")


def filtered_events(
    args: argparse.Namespace,
    data: LibraryData,
    min_duration_sec: float,
) -> tuple[dict[str, list[MentionEvent]], EventFilters]:
    """
    Events that survive the command-line filters, keyed by content id.
    Every view and every click resolves against this same set.
    """
    event_filters = EventFilters(
        subjects=parse_csv(args.subjects),
        min_duration_sec=min_duration_sec,
        window_start=float(args.window_start),
        window_end=float(args.window_end) if args.window_end is not None else None,
    )
    content_filters = ContentFilters(
        creators=parse_csv(args.creators),
        formats=parse_csv(args.formats),
        regions=parse_csv(args.regions),
    )
    return filter_library(data.events, data.items, content_filters, event_filters), event_filters

from __future__ import annotations

import argparse
import json
from typing import Any

from .cli_args import add_filter_args, add_input_args, filtered_events, resolve_path
from .config import HeatmapConfig, load_config
from .heatmap import aggregate_library, aggregate_per_item, column_headers, effective_duration, with_total_row
from .ingest import load_library
from .playback import resolve_playback
from .tracing import StderrTracer, Tracer
from .types import Row


def _add_common(parser: argparse.ArgumentParser) -> None:
    add_input_args(parser)
    add_filter_args(parser)
    parser.add_argument("--trace", action="store_true", help="Print aggregation trace lines to stderr")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Build brand mention heatmaps and resolve clicked cells")
    sub = parser.add_subparsers(dest="command", required=True)

    library = sub.add_parser("library", help="One row per video across the library")
    _add_common(library)
    library.add_argument("--policy", default=None, choices=["summed", "exclusive"])

    per_item = sub.add_parser("per-item", help="One row per subject for a single video")
    _add_common(per_item)
    per_item.add_argument("--content-id", required=True)
    per_item.add_argument("--group-by", default=None, choices=["subject", "secondary_label"])

    click = sub.add_parser("click", help="Resolve a clicked per-item cell to a playback window")
    _add_common(click)
    click.add_argument("--content-id", required=True)
    click.add_argument("--subject", required=True, help="Row id of the clicked subject row")
    click.add_argument("--column", type=int, required=True, help="Clicked column index")
    click.add_argument("--group-by", default=None, choices=["subject", "secondary_label"])

    return parser


def _build_config(args: argparse.Namespace) -> HeatmapConfig:
    cfg = load_config(args.config)
    if args.num_buckets is not None:
        cfg.num_buckets = int(args.num_buckets)
    if args.min_duration_sec is not None:
        cfg.min_duration_sec = float(args.min_duration_sec)
    if getattr(args, "policy", None):
        cfg.library_policy = str(args.policy)
    if getattr(args, "group_by", None):
        cfg.group_by = str(args.group_by)
    cfg.validate()
    return cfg


def _matrix_payload(view: str, rows: list[Row], num_buckets: int, **extra: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {"view": view, "num_buckets": num_buckets, **extra}
    payload["columns"] = column_headers(num_buckets)
    payload["rows"] = [row.to_dict() for row in rows]
    return payload


def main() -> int:
    args = build_parser().parse_args()
    cfg = _build_config(args)
    data = load_library(resolve_path(args.data_dir, args.library, "library.json"))
    tracer: Tracer | None = StderrTracer("heatmap") if args.trace else None
    events_by_content, event_filters = filtered_events(args, data, cfg.min_duration_sec)

    if args.command == "library":
        rows = aggregate_library(
            events_by_content,
            data.durations(),
            cfg.num_buckets,
            subjects=event_filters.subjects or None,
            labels=data.labels(),
            policy=cfg.library_policy,
            tracer=tracer,
        )
        rows = with_total_row(rows, cfg.num_buckets, include_when_empty=True)
        payload = _matrix_payload("library", rows, cfg.num_buckets, policy=cfg.library_policy)
        print(json.dumps(payload, indent=2, ensure_ascii=True))
        return 0

    content_id = str(args.content_id)
    item = data.items.get(content_id)
    events = events_by_content.get(content_id, [])
    duration = effective_duration(item.duration_sec or None if item is not None else None, events)

    if args.command == "per-item":
        rows = aggregate_per_item(
            events,
            cfg.num_buckets,
            duration=duration,
            group_by=cfg.group_by,
            tracer=tracer,
        )
        rows = with_total_row(rows, cfg.num_buckets)
        payload = _matrix_payload("per-item", rows, cfg.num_buckets, content_id=content_id)
        print(json.dumps(payload, indent=2, ensure_ascii=True))
        return 0

    if args.command == "click":
        window = resolve_playback(
            events,
            content_id=content_id,
            subject=str(args.subject),
            column_index=int(args.column),
            content_duration=duration,
            num_buckets=cfg.num_buckets,
            group_by=cfg.group_by,
            config=cfg.playback,
            tracer=tracer,
        )
        print(json.dumps(window.to_dict() if window is not None else None, indent=2, ensure_ascii=True))
        return 0

    raise ValueError(f"Unsupported command: {args.command}")


if __name__ == "__main__":
    raise SystemExit(main())

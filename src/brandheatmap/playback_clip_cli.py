from __future__ import annotations

import argparse
import json

from .cli_args import add_filter_args, add_input_args, filtered_events, resolve_path
from .config import load_config
from .heatmap import effective_duration
from .ingest import load_library
from .playback import resolve_playback
from .playback_clip import ClipExportConfig, export_playback_clip


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Export the playback window behind a clicked heatmap cell as an MP4")
    add_input_args(parser)
    add_filter_args(parser)
    parser.add_argument("--video", default=None, help="Input video path (defaults to the record's video_path)")
    parser.add_argument("--content-id", required=True)
    parser.add_argument("--subject", required=True, help="Row id of the clicked subject row")
    parser.add_argument("--column", type=int, required=True, help="Clicked column index")
    parser.add_argument("--group-by", default=None, choices=["subject", "secondary_label"])
    parser.add_argument("--out-dir", required=True, help="Output directory for the MP4 clip and summary JSON")
    parser.add_argument("--padding-sec", type=float, default=0.0, help="Seconds to pad before/after the window")
    parser.add_argument("--no-overlay-label", action="store_true", help="Disable the caption overlay")
    parser.add_argument("--font-scale", type=float, default=0.5)
    parser.add_argument("--codec", default="mp4v")
    parser.add_argument("--log-every-frames", type=int, default=120)
    return parser


def main() -> int:
    args = build_parser().parse_args()
    heatmap_cfg = load_config(args.config)
    if args.num_buckets is not None:
        heatmap_cfg.num_buckets = int(args.num_buckets)
    if args.min_duration_sec is not None:
        heatmap_cfg.min_duration_sec = float(args.min_duration_sec)
    if args.group_by:
        heatmap_cfg.group_by = str(args.group_by)
    heatmap_cfg.validate()

    data = load_library(resolve_path(args.data_dir, args.library, "library.json"))
    content_id = str(args.content_id)
    item = data.items.get(content_id)
    video_path = args.video or (item.video_path if item is not None else None)
    if not video_path:
        raise ValueError(f"No video path known for {content_id}; pass --video")

    # Resolve against the same filtered events the per-item grid is drawn from.
    events_by_content, _ = filtered_events(args, data, heatmap_cfg.min_duration_sec)
    events = events_by_content.get(content_id, [])
    window = resolve_playback(
        events,
        content_id=content_id,
        subject=str(args.subject),
        column_index=int(args.column),
        content_duration=effective_duration(item.duration_sec or None if item is not None else None, events),
        num_buckets=heatmap_cfg.num_buckets,
        group_by=heatmap_cfg.group_by,
        config=heatmap_cfg.playback,
    )
    if window is None:
        print(json.dumps(None))
        return 1

    cfg = ClipExportConfig(
        codec=str(args.codec),
        padding_sec=float(args.padding_sec),
        overlay_label=not bool(args.no_overlay_label),
        font_scale=float(args.font_scale),
        log_every_frames=int(args.log_every_frames),
    )
    cfg.validate()
    result = export_playback_clip(
        video_path=video_path,
        window=window,
        output_dir=args.out_dir,
        config=cfg,
    )
    print(json.dumps(result, indent=2, ensure_ascii=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

"""Cut a resolved playback window out of a local video file."""

from __future__ import annotations

import json
import re
import sys
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from .types import PlaybackWindow


def _ensure_cv2() -> Any:
    try:
        import cv2  # type: ignore
    except ImportError as exc:
        raise ImportError(
            "opencv-python-headless is required to export playback clips. "
            "Install with: pip install -e '.[video]'"
        ) from exc
    return cv2


@dataclass(slots=True)
class ClipExportConfig:
    codec: str = "mp4v"
    padding_sec: float = 0.0
    overlay_label: bool = True
    font_scale: float = 0.5
    log_every_frames: int = 120

    def validate(self) -> None:
        if len(self.codec.strip()) != 4:
            raise ValueError("codec must be a four character code")
        if self.padding_sec < 0:
            raise ValueError("padding_sec cannot be negative")
        if self.font_scale <= 0:
            raise ValueError("font_scale must be positive")
        if self.log_every_frames < 1:
            raise ValueError("log_every_frames must be at least 1")


@dataclass(slots=True)
class VideoProbe:
    fps: float
    width: int
    height: int
    frame_count: int

    @property
    def duration_sec(self) -> float:
        return self.frame_count / self.fps if self.frame_count > 0 else 0.0


def _probe(cap: Any, cv2: Any) -> VideoProbe:
    fps = float(cap.get(cv2.CAP_PROP_FPS) or 0.0)
    return VideoProbe(
        # Some containers report no rate; assume 30 fps.
        fps=fps if fps > 0 else 30.0,
        width=int(cap.get(cv2.CAP_PROP_FRAME_WIDTH) or 0),
        height=int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT) or 0),
        frame_count=int(cap.get(cv2.CAP_PROP_FRAME_COUNT) or 0),
    )


def _seconds_token(value: float) -> str:
    return f"{value:.3f}".replace(".", "p")


def _slug(text: str, *, max_len: int = 48) -> str:
    cleaned = re.sub(r"[^a-z0-9]+", "-", text.strip().lower()).strip("-")
    return (cleaned or "clip")[:max_len]


def clip_filename(window: PlaybackWindow) -> str:
    return f"{_slug(window.subject or window.label)}_{_seconds_token(window.start)}_{_seconds_token(window.end)}.mp4"


def padded_range(window: PlaybackWindow, *, padding_sec: float, duration_sec: float) -> tuple[float, float]:
    start = max(0.0, window.start - padding_sec)
    end = window.end + padding_sec
    if duration_sec > 0:
        end = min(duration_sec, end)
    return start, max(start, end)


def _frame_range(start_sec: float, end_sec: float, probe: VideoProbe) -> tuple[int, int]:
    first = max(0, int(start_sec * probe.fps))
    last = max(first, int(end_sec * probe.fps))
    if probe.frame_count > 0:
        last = min(last, probe.frame_count - 1)
    return first, last


def _draw_caption(cv2: Any, frame: Any, text: str, font_scale: float) -> None:
    # Light text over a dark outline stays readable on any background.
    for color, thickness in (((20, 20, 20), 3), ((255, 255, 255), 1)):
        cv2.putText(frame, text, (12, 24), cv2.FONT_HERSHEY_SIMPLEX, font_scale, color, thickness, cv2.LINE_AA)


def export_playback_clip(
    *,
    video_path: str | Path,
    window: PlaybackWindow,
    output_dir: str | Path,
    config: ClipExportConfig | None = None,
) -> dict[str, Any]:
    """
    Write `window` (plus optional padding) to an MP4 next to a JSON summary.
    Returns the summary.
    """
    cfg = config or ClipExportConfig()
    cfg.validate()
    cv2 = _ensure_cv2()

    cap = cv2.VideoCapture(str(video_path))
    if not cap.isOpened():
        raise RuntimeError(f"Could not open video: {video_path}")

    writer = None
    try:
        probe = _probe(cap, cv2)
        clip_start, clip_end = padded_range(window, padding_sec=cfg.padding_sec, duration_sec=probe.duration_sec)
        first, last = _frame_range(clip_start, clip_end, probe)

        target_dir = Path(output_dir)
        target_dir.mkdir(parents=True, exist_ok=True)
        clip_path = target_dir / clip_filename(window)
        fourcc = cv2.VideoWriter_fourcc(*cfg.codec.strip())
        writer = cv2.VideoWriter(str(clip_path), fourcc, probe.fps, (probe.width, probe.height))
        if not writer.isOpened():
            raise RuntimeError(f"Could not open clip writer: {clip_path}")

        cap.set(cv2.CAP_PROP_POS_FRAMES, first)
        expected = last - first + 1
        written = 0
        for frame_idx in range(first, last + 1):
            ok, frame = cap.read()
            if not ok:
                break
            if cfg.overlay_label:
                _draw_caption(cv2, frame, f"{window.label}  {frame_idx / probe.fps:.2f}s", cfg.font_scale)
            writer.write(frame)
            written += 1
            if written == 1 or written % cfg.log_every_frames == 0:
                print(f"[playback_clip] {clip_path.name} {written}/{expected} frames", file=sys.stderr, flush=True)
    finally:
        if writer is not None:
            writer.release()
        cap.release()

    summary: dict[str, Any] = {
        "video_path": str(video_path),
        "clip_path": str(clip_path),
        "window": window.to_dict(),
        "padded_start": clip_start,
        "padded_end": clip_end,
        "frames": {"first": first, "last": last, "written": written},
        "video": asdict(probe),
        "config": asdict(cfg),
    }
    summary_path = clip_path.with_suffix(".json")
    summary_path.write_text(json.dumps(summary, indent=2, ensure_ascii=True), encoding="utf-8")
    summary["summary_path"] = str(summary_path)
    return summary

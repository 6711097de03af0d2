from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from .heatmap import DEFAULT_NUM_BUCKETS, GROUP_KEYS, LIBRARY_POLICIES
from .playback import PlaybackConfig


@dataclass(slots=True)
class HeatmapConfig:
    num_buckets: int = DEFAULT_NUM_BUCKETS
    min_duration_sec: float = 0.5
    library_policy: str = "summed"
    group_by: str = "subject"
    playback: PlaybackConfig = field(default_factory=PlaybackConfig)

    def validate(self) -> None:
        if self.num_buckets <= 0:
            raise ValueError("num_buckets must be > 0")
        if self.min_duration_sec < 0:
            raise ValueError("min_duration_sec must be >= 0")
        if self.library_policy not in LIBRARY_POLICIES:
            raise ValueError(f"library_policy must be one of {', '.join(LIBRARY_POLICIES)}")
        if self.group_by not in GROUP_KEYS:
            raise ValueError(f"group_by must be one of {', '.join(GROUP_KEYS)}")
        self.playback.validate()

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "HeatmapConfig":
        raw_playback = data.get("playback", {})
        playback_values = raw_playback if isinstance(raw_playback, Mapping) else {}
        playback = PlaybackConfig(
            wide_event_ratio=float(playback_values.get("wide_event_ratio", 0.8)),
            narrow_bucket_ratio=float(playback_values.get("narrow_bucket_ratio", 0.3)),
            centered_window_sec=float(playback_values.get("centered_window_sec", 10.0)),
        )
        config = HeatmapConfig(
            num_buckets=int(data.get("num_buckets", DEFAULT_NUM_BUCKETS)),
            min_duration_sec=float(data.get("min_duration_sec", 0.5)),
            library_policy=str(data.get("library_policy", "summed")),
            group_by=str(data.get("group_by", "subject")),
            playback=playback,
        )
        config.validate()
        return config


def load_config(config_path: str | Path | None) -> HeatmapConfig:
    if config_path is None or not Path(config_path).exists():
        config = HeatmapConfig()
        config.validate()
        return config
    raw = json.loads(Path(config_path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("Config file must be a JSON object")
    return HeatmapConfig.from_dict(raw)

from __future__ import annotations

import contextlib
import io
import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from brandheatmap import playback_clip_cli


LIBRARY = {
    "videos": [{"_id": "vid-1", "system_metadata": {"duration": 100}, "video_path": "vid-1.mp4"}],
    "events": {
        "vid-1": [
            {"brand": "Acme", "product_name": "Sticker", "timeline": [21, 21.3]},
            {"brand": "Acme", "product_name": "Soda", "timeline": [22, 28]},
        ],
    },
}


class PlaybackClipCliTest(unittest.TestCase):
    def _exported_window(self, *extra: str) -> tuple[float, float]:
        with tempfile.TemporaryDirectory() as tmp:
            Path(tmp, "library.json").write_text(json.dumps(LIBRARY), encoding="utf-8")
            args = [
                "brandheatmap-clip",
                "--data-dir",
                tmp,
                "--content-id",
                "vid-1",
                "--column",
                "2",
                "--num-buckets",
                "10",
                "--out-dir",
                str(Path(tmp) / "clips"),
                *extra,
            ]
            with mock.patch("sys.argv", args), mock.patch.object(
                playback_clip_cli, "export_playback_clip", return_value={"output_path": "clip.mp4"}
            ) as export, contextlib.redirect_stdout(io.StringIO()):
                code = playback_clip_cli.main()
        self.assertEqual(code, 0)
        window = export.call_args.kwargs["window"]
        self.assertEqual(export.call_args.kwargs["video_path"], "vid-1.mp4")
        return window.start, window.end

    def test_click_ignores_events_below_duration_threshold(self) -> None:
        self.assertEqual(self._exported_window("--subject", "Acme"), (22.0, 28.0))

    def test_threshold_flag_matches_heatmap_view(self) -> None:
        window = self._exported_window("--subject", "Acme", "--min-duration-sec", "0")
        self.assertEqual(window, (21.0, 21.3))

    def test_product_row_click(self) -> None:
        window = self._exported_window("--subject", "Soda", "--group-by", "secondary_label")
        self.assertEqual(window, (22.0, 28.0))


if __name__ == "__main__":
    unittest.main()

from __future__ import annotations

import contextlib
import io
import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from brandheatmap import heatmap_cli


LIBRARY = {
    "videos": [
        {"_id": "vid-1", "system_metadata": {"duration": 100, "video_title": "Unboxing"}},
        {"_id": "vid-2", "system_metadata": {"duration": 50}},
    ],
    "events": {
        "vid-1": [
            {"brand": "Acme", "product_name": "Soda", "timeline": [22, 28]},
            {"brand": "Bolt", "timeline": [71, 71.2]},
        ],
        "vid-2": [{"brand": "Bolt", "timeline": [0, 10]}],
    },
}


class HeatmapCliTest(unittest.TestCase):
    def _run(self, *argv: str) -> tuple[int, object]:
        with tempfile.TemporaryDirectory() as tmp:
            Path(tmp, "library.json").write_text(json.dumps(LIBRARY), encoding="utf-8")
            out = io.StringIO()
            args = ["brandheatmap", argv[0], "--data-dir", tmp, "--num-buckets", "10", *argv[1:]]
            with mock.patch("sys.argv", args), contextlib.redirect_stdout(out):
                code = heatmap_cli.main()
        return code, json.loads(out.getvalue())

    def test_library_view(self) -> None:
        code, payload = self._run("library")
        self.assertEqual(code, 0)
        assert isinstance(payload, dict)
        self.assertEqual(payload["policy"], "summed")
        self.assertEqual(len(payload["columns"]), 10)
        ids = [row["id"] for row in payload["rows"]]
        self.assertEqual(ids, ["__TOTAL__", "vid-2", "vid-1"])
        self.assertEqual(payload["rows"][2]["label"], "Unboxing")

    def test_per_item_view_applies_duration_threshold(self) -> None:
        code, payload = self._run("per-item", "--content-id", "vid-1")
        self.assertEqual(code, 0)
        assert isinstance(payload, dict)
        rows = payload["rows"]
        self.assertEqual([row["id"] for row in rows], ["__TOTAL__", "Acme"])
        self.assertAlmostEqual(rows[1]["cells"][2]["value"], 6.0)

    def test_click(self) -> None:
        code, payload = self._run("click", "--content-id", "vid-1", "--subject", "Acme", "--column", "2")
        self.assertEqual(code, 0)
        assert isinstance(payload, dict)
        self.assertEqual((payload["start"], payload["end"]), (22.0, 28.0))
        self.assertEqual(payload["label"], "Acme: Soda")

        _, empty = self._run("click", "--content-id", "vid-1", "--subject", "Acme", "--column", "7")
        self.assertIsNone(empty)

    def test_click_on_product_row(self) -> None:
        code, payload = self._run(
            "click", "--content-id", "vid-1", "--subject", "Soda", "--column", "2", "--group-by", "secondary_label"
        )
        self.assertEqual(code, 0)
        assert isinstance(payload, dict)
        self.assertEqual(payload["secondary_label"], "Soda")
        self.assertEqual((payload["start"], payload["end"]), (22.0, 28.0))


if __name__ == "__main__":
    unittest.main()

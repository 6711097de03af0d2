from __future__ import annotations

import unittest

from brandheatmap.heatmap import aggregate_per_item
from brandheatmap.playback import PlaybackConfig, match_subject_events, resolve_playback
from brandheatmap.tracing import RecordingTracer
from brandheatmap.types import TOTAL_ROW_ID, MentionEvent


def _event(
    subject: str,
    start: float,
    end: float,
    *,
    content_id: str = "vid-1",
    product: str = "",
    description: str = "",
) -> MentionEvent:
    return MentionEvent(
        content_id=content_id,
        subject=subject,
        start_sec=start,
        end_sec=end,
        secondary_label=product,
        description=description,
    )


class ResolvePlaybackTest(unittest.TestCase):
    def test_click_recovers_the_event_that_filled_the_cell(self) -> None:
        events = [_event("Acme", 22.0, 28.0, product="Soda", description="Can on the desk")]
        rows = aggregate_per_item(events, 10, duration=100.0)
        self.assertAlmostEqual(rows[0].cells[2].value, 6.0)

        window = resolve_playback(
            events,
            content_id="vid-1",
            subject="Acme",
            column_index=2,
            content_duration=100.0,
            num_buckets=10,
        )
        self.assertIsNotNone(window)
        assert window is not None
        self.assertEqual((window.start, window.end), (22.0, 28.0))
        self.assertEqual(window.strategy, "event")
        self.assertEqual(window.label, "Acme: Soda")
        self.assertEqual(window.description, "Can on the desk")
        self.assertEqual(window.content_id, "vid-1")

    def test_wide_event_uses_centered_window(self) -> None:
        events = [_event("Acme", 2.5, 97.5)]
        window = resolve_playback(
            events,
            content_id="vid-1",
            subject="Acme",
            column_index=1,
            content_duration=100.0,
            num_buckets=10,
        )
        assert window is not None
        self.assertEqual(window.strategy, "centered")
        self.assertAlmostEqual(window.start, 10.0)
        self.assertAlmostEqual(window.end, 20.0)

    def test_wide_event_window_is_clamped_to_content(self) -> None:
        events = [_event("Acme", 0.0, 95.0)]
        window = resolve_playback(
            events,
            content_id="vid-1",
            subject="Acme",
            column_index=0,
            content_duration=100.0,
            num_buckets=50,
        )
        assert window is not None
        self.assertEqual(window.strategy, "centered")
        self.assertEqual(window.start, 0.0)
        self.assertAlmostEqual(window.end, 6.0)
        self.assertLessEqual(window.end - window.start, 10.0)

    def test_narrow_bucket_plays_the_bucket(self) -> None:
        events = [_event("Acme", 10.0, 30.0)]
        window = resolve_playback(
            events,
            content_id="vid-1",
            subject="Acme",
            column_index=5,
            content_duration=100.0,
            num_buckets=50,
        )
        assert window is not None
        self.assertEqual(window.strategy, "bucket")
        self.assertAlmostEqual(window.start, 10.0)
        self.assertAlmostEqual(window.end, 12.0)

    def test_collision_resolves_to_first_event_in_input_order(self) -> None:
        events = [_event("Acme", 25.0, 27.0), _event("Acme", 21.0, 23.0)]
        window = resolve_playback(
            events,
            content_id="vid-1",
            subject="Acme",
            column_index=2,
            content_duration=100.0,
            num_buckets=10,
        )
        assert window is not None
        self.assertEqual((window.start, window.end), (25.0, 27.0))

    def test_clicks_that_map_to_nothing(self) -> None:
        events = [_event("Acme", 22.0, 28.0)]
        common = {"content_id": "vid-1", "num_buckets": 10}
        self.assertIsNone(resolve_playback(events, subject=TOTAL_ROW_ID, column_index=2, content_duration=100.0, **common))
        self.assertIsNone(resolve_playback(events, subject="Acme", column_index=0, content_duration=100.0, **common))
        self.assertIsNone(resolve_playback(events, subject="Acme", column_index=10, content_duration=100.0, **common))
        self.assertIsNone(resolve_playback(events, subject="Acme", column_index=-1, content_duration=100.0, **common))
        self.assertIsNone(resolve_playback(events, subject="Acme", column_index=2, content_duration=0.0, **common))
        self.assertIsNone(resolve_playback(events, subject="Acme", column_index=2, content_duration=None, **common))
        self.assertIsNone(resolve_playback(events, subject="Zenith", column_index=2, content_duration=100.0, **common))
        self.assertIsNone(resolve_playback([], subject="Acme", column_index=2, content_duration=100.0, **common))

    def test_events_from_other_content_are_ignored(self) -> None:
        events = [_event("Acme", 22.0, 28.0, content_id="vid-2")]
        window = resolve_playback(
            events,
            content_id="vid-1",
            subject="Acme",
            column_index=2,
            content_duration=100.0,
            num_buckets=10,
        )
        self.assertIsNone(window)

    def test_custom_config(self) -> None:
        events = [_event("Acme", 0.0, 90.0)]
        window = resolve_playback(
            events,
            content_id="vid-1",
            subject="Acme",
            column_index=4,
            content_duration=100.0,
            num_buckets=10,
            config=PlaybackConfig(centered_window_sec=4.0),
        )
        assert window is None
        window = resolve_playback(
            events,
            content_id="vid-1",
            subject="Acme",
            column_index=0,
            content_duration=100.0,
            num_buckets=10,
            config=PlaybackConfig(centered_window_sec=4.0),
        )
        assert window is not None
        self.assertAlmostEqual(window.start, 3.0)
        self.assertAlmostEqual(window.end, 7.0)
        with self.assertRaises(ValueError):
            resolve_playback(
                events,
                content_id="vid-1",
                subject="Acme",
                column_index=0,
                content_duration=100.0,
                config=PlaybackConfig(wide_event_ratio=0.0),
            )

    def test_tracer_reports_resolution_and_noops(self) -> None:
        tracer = RecordingTracer()
        events = [_event("Acme", 22.0, 28.0)]
        resolve_playback(events, content_id="vid-1", subject="Acme", column_index=2, content_duration=100.0, num_buckets=10, tracer=tracer)
        resolve_playback(events, content_id="vid-1", subject=TOTAL_ROW_ID, column_index=2, content_duration=100.0, num_buckets=10, tracer=tracer)
        resolve_playback(events, content_id="vid-1", subject="Acme", column_index=3, content_duration=100.0, num_buckets=10, tracer=tracer)
        resolved = tracer.of("playback_resolved")
        self.assertEqual(len(resolved), 1)
        self.assertEqual(resolved[0]["strategy"], "event")
        reasons = [record["reason"] for record in tracer.of("playback_noop")]
        self.assertEqual(reasons, ["total_row", "no_event_in_bucket"])


class ProductRowPlaybackTest(unittest.TestCase):
    def test_product_row_click_matches_the_drawn_cell(self) -> None:
        events = [
            _event("Acme", 21.0, 23.0, product="Diet Soda"),
            _event("Acme", 22.0, 28.0, product="Soda"),
        ]
        rows = aggregate_per_item(events, 10, duration=100.0, group_by="secondary_label")
        soda = next(row for row in rows if row.id == "Soda")
        self.assertAlmostEqual(soda.cells[2].value, 6.0)

        window = resolve_playback(
            events,
            content_id="vid-1",
            subject="Soda",
            column_index=2,
            content_duration=100.0,
            num_buckets=10,
            group_by="secondary_label",
        )
        assert window is not None
        self.assertEqual(window.secondary_label, "Soda")
        self.assertEqual((window.start, window.end), (22.0, 28.0))

    def test_match_on_secondary_label(self) -> None:
        events = [_event("Acme", 1.0, 2.0, product="Diet Soda"), _event("Acme", 3.0, 4.0, product="Soda")]
        self.assertEqual(match_subject_events(events, "Soda", group_by="secondary_label"), [events[1]])
        self.assertEqual(match_subject_events(events, "soda", group_by="secondary_label"), events)
        with self.assertRaises(ValueError):
            match_subject_events(events, "Soda", group_by="creator")


class MatchSubjectEventsTest(unittest.TestCase):
    def test_exact_match_wins(self) -> None:
        events = [_event("Acme", 1.0, 2.0), _event("Acme Corp", 3.0, 4.0)]
        self.assertEqual(match_subject_events(events, "Acme"), [events[0]])

    def test_loose_match_on_name_and_label(self) -> None:
        events = [
            _event("Acme Corp", 1.0, 2.0),
            _event("Bolt", 3.0, 4.0, product="acme energy drink"),
            _event("Zenith", 5.0, 6.0),
        ]
        self.assertEqual(match_subject_events(events, "acme"), events[:2])
        self.assertEqual(match_subject_events(events, "  "), [])

    def test_loose_match_resolves_playback(self) -> None:
        events = [_event("ACME", 22.0, 28.0)]
        window = resolve_playback(
            events,
            content_id="vid-1",
            subject="Acme",
            column_index=2,
            content_duration=100.0,
            num_buckets=10,
        )
        assert window is not None
        self.assertEqual(window.subject, "ACME")


class PlaybackConfigTest(unittest.TestCase):
    def test_validation(self) -> None:
        PlaybackConfig().validate()
        with self.assertRaises(ValueError):
            PlaybackConfig(wide_event_ratio=1.5).validate()
        with self.assertRaises(ValueError):
            PlaybackConfig(narrow_bucket_ratio=0.0).validate()
        with self.assertRaises(ValueError):
            PlaybackConfig(centered_window_sec=-1.0).validate()


if __name__ == "__main__":
    unittest.main()

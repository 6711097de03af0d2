from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .heatmap import DEFAULT_NUM_BUCKETS, GROUP_KEYS, assign_best_buckets, group_key, usable_duration
from .intervals import build_columns, column_midpoint_sec
from .tracing import Tracer, emit
from .types import TOTAL_ROW_ID, MentionEvent, PlaybackWindow


@dataclass(slots=True)
class PlaybackConfig:
    wide_event_ratio: float = 0.8
    narrow_bucket_ratio: float = 0.3
    centered_window_sec: float = 10.0

    def validate(self) -> None:
        if not (0.0 < self.wide_event_ratio <= 1.0):
            raise ValueError("wide_event_ratio must be in (0, 1]")
        if self.narrow_bucket_ratio <= 0:
            raise ValueError("narrow_bucket_ratio must be > 0")
        if self.centered_window_sec <= 0:
            raise ValueError("centered_window_sec must be > 0")


def match_subject_events(
    events: Sequence[MentionEvent],
    subject: str,
    *,
    content_id: str | None = None,
    group_by: str = "subject",
) -> list[MentionEvent]:
    """
    Events behind the row `subject`, matched on the same key the rows were
    grouped by. Falls back to a loose match when labels drifted between
    extraction calls.
    """
    if group_by not in GROUP_KEYS:
        raise ValueError(f"group_by must be one of {', '.join(GROUP_KEYS)}")
    scoped = [event for event in events if content_id is None or event.content_id == content_id]
    exact = [event for event in scoped if group_key(event, group_by) == subject]
    if exact:
        return exact

    needle = subject.strip().lower()
    if not needle:
        return []
    loose: list[MentionEvent] = []
    for event in scoped:
        name = group_key(event, group_by).strip().lower()
        if needle in name or (name and name in needle):
            loose.append(event)
        elif group_by == "subject" and needle in event.secondary_label.strip().lower():
            loose.append(event)
    return loose


def _display_label(event: MentionEvent) -> str:
    if event.secondary_label:
        return f"{event.subject}: {event.secondary_label}"
    return event.subject


def resolve_playback(
    events: Sequence[MentionEvent],
    *,
    content_id: str,
    subject: str,
    column_index: int,
    content_duration: float | None,
    num_buckets: int = DEFAULT_NUM_BUCKETS,
    group_by: str = "subject",
    config: PlaybackConfig | None = None,
    tracer: Tracer | None = None,
) -> PlaybackWindow | None:
    """
    Turn a click on (subject row, column) into a playable window.

    The event is found with the same best-bucket assignment the per-item view
    used to draw the cell, so `group_by` must match the grouping of the
    clicked row. The window then depends on how the event length compares
    with the content and with the bucket:

    - longer than `wide_event_ratio` of the content: a fixed window centered on
      the bucket, clamped to the content;
    - bucket shorter than `narrow_bucket_ratio` of the event: the bucket itself;
    - otherwise: the event as extracted.

    Returns None for clicks that map to nothing.
    """
    cfg = config or PlaybackConfig()
    cfg.validate()

    if subject == TOTAL_ROW_ID:
        emit(tracer, "playback_noop", reason="total_row", column=column_index)
        return None
    duration = usable_duration(content_duration)
    if duration is None:
        emit(tracer, "playback_noop", reason="no_duration", column=column_index)
        return None
    columns = build_columns(num_buckets, duration)
    if not (0 <= column_index < len(columns)):
        emit(tracer, "playback_noop", reason="column_out_of_range", column=column_index)
        return None

    subject_events = match_subject_events(events, subject, content_id=content_id, group_by=group_by)
    if not subject_events:
        emit(tracer, "playback_noop", reason="no_events", subject=subject, column=column_index)
        return None

    assignment = assign_best_buckets(subject_events, columns, tracer=tracer)
    # Collisions resolve to the first event in input order.
    event = next(
        (subject_events[idx] for idx, bucket in sorted(assignment.items()) if bucket == column_index),
        None,
    )
    if event is None:
        emit(tracer, "playback_noop", reason="no_event_in_bucket", subject=subject, column=column_index)
        return None

    column = columns[column_index]
    bucket_duration = column.duration_sec
    event_duration = event.duration_sec

    if event_duration > cfg.wide_event_ratio * duration:
        center = column_midpoint_sec(column)
        half = cfg.centered_window_sec / 2.0
        start = max(0.0, center - half)
        end = min(duration, center + half)
        strategy = "centered"
    elif bucket_duration < cfg.narrow_bucket_ratio * event_duration:
        start = float(column.start_sec or 0.0)
        end = float(column.end_sec or 0.0)
        strategy = "bucket"
    else:
        start = event.start_sec
        end = event.end_sec
        strategy = "event"

    window = PlaybackWindow(
        content_id=content_id,
        start=start,
        end=end,
        label=_display_label(event),
        description=event.description,
        subject=event.subject,
        secondary_label=event.secondary_label,
        location=event.location,
        strategy=strategy,
    )
    emit(
        tracer,
        "playback_resolved",
        subject=event.subject,
        column=column_index,
        start=start,
        end=end,
        strategy=strategy,
    )
    return window

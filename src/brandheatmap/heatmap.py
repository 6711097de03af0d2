from __future__ import annotations

from collections import defaultdict
from dataclasses import replace
import math
from typing import Iterable, Mapping, Sequence

import numpy as np

from .intervals import build_columns, overlap
from .tracing import Tracer, emit
from .types import TOTAL_ROW_ID, TOTAL_ROW_LABEL, Cell, Column, MentionEvent, Row


DEFAULT_NUM_BUCKETS = 50
GROUP_KEYS = ("subject", "secondary_label")
LIBRARY_POLICIES = ("summed", "exclusive")


def _require_buckets(num_buckets: int) -> None:
    if num_buckets <= 0:
        raise ValueError("Number of buckets must be greater than zero")


def usable_duration(value: float | None) -> float | None:
    """Return the duration when it can anchor a grid, else None."""
    if value is None:
        return None
    try:
        duration = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(duration) or duration <= 0:
        return None
    return duration


def effective_duration(duration: float | None, events: Sequence[MentionEvent]) -> float | None:
    """The content duration, or the latest event end when none is known."""
    if duration is None and events:
        duration = max(event.end_sec for event in events)
    return usable_duration(duration)


def _column_seconds(column: Column) -> tuple[float, float]:
    if column.start_sec is None or column.end_sec is None:
        raise ValueError("columns must be built against a duration")
    return column.start_sec, column.end_sec


def group_key(event: MentionEvent, group_by: str) -> str:
    if group_by == "secondary_label":
        return event.secondary_label
    return event.subject


def assign_best_buckets(
    events: Sequence[MentionEvent],
    columns: Sequence[Column],
    *,
    tracer: Tracer | None = None,
) -> dict[int, int]:
    """
    Map each event index to the column it overlaps most.
    Ties keep the lowest column index; events that overlap no column are left out.
    """
    assignment: dict[int, int] = {}
    for event_idx, event in enumerate(events):
        best_idx = -1
        best_overlap = 0.0
        for column in columns:
            start_sec, end_sec = _column_seconds(column)
            amount = overlap(event.start_sec, event.end_sec, start_sec, end_sec)
            if amount > best_overlap:
                best_overlap = amount
                best_idx = column.index
        if best_idx < 0:
            continue
        assignment[event_idx] = best_idx
        emit(
            tracer,
            "bucket_assigned",
            subject=event.subject,
            start=event.start_sec,
            end=event.end_sec,
            bucket=best_idx,
            overlap=best_overlap,
        )
    return assignment


def _exclusive_cells(
    events: Sequence[MentionEvent],
    columns: Sequence[Column],
    *,
    with_subjects: bool,
    key: str,
    tracer: Tracer | None,
) -> list[Cell]:
    assignment = assign_best_buckets(events, columns, tracer=tracer)
    by_bucket: dict[int, list[int]] = defaultdict(list)
    for event_idx, bucket_idx in assignment.items():
        by_bucket[bucket_idx].append(event_idx)

    cells: list[Cell] = []
    for column in columns:
        assigned = by_bucket.get(column.index, [])
        if not assigned:
            value = 0.0
        elif len(assigned) == 1:
            value = events[assigned[0]].duration_sec
        else:
            # Collisions switch the unit from seconds to an event count so
            # closely spaced mentions read as density instead of vanishing.
            value = float(len(assigned))
            emit(tracer, "bucket_collision", key=key, bucket=column.index, events=len(assigned))
        subjects = frozenset(events[idx].subject for idx in assigned) if with_subjects else None
        cells.append(Cell(value=value, subjects=subjects))
    return cells


def _summed_cells(events: Sequence[MentionEvent], columns: Sequence[Column]) -> list[Cell]:
    cells: list[Cell] = []
    for column in columns:
        start_sec, end_sec = _column_seconds(column)
        value = 0.0
        subjects: set[str] = set()
        for event in events:
            amount = overlap(event.start_sec, event.end_sec, start_sec, end_sec)
            if amount <= 0:
                continue
            value += amount
            subjects.add(event.subject)
        cells.append(Cell(value=value, subjects=frozenset(subjects)))
    return cells


def _empty_cells(num_buckets: int, *, with_subjects: bool) -> list[Cell]:
    return [Cell(value=0.0, subjects=frozenset() if with_subjects else None) for _ in range(num_buckets)]


def _sort_by_exposure(rows: list[Row]) -> list[Row]:
    rows.sort(key=lambda row: row.total, reverse=True)
    return rows


def aggregate_per_item(
    events: Sequence[MentionEvent],
    num_buckets: int = DEFAULT_NUM_BUCKETS,
    *,
    duration: float | None = None,
    group_by: str = "subject",
    tracer: Tracer | None = None,
) -> list[Row]:
    """
    Build one row per subject for a single content item.

    Every event is assigned to the one bucket it overlaps most. A bucket holding
    a single event carries that event's duration in seconds; a bucket holding
    several carries the number of events instead.

    When `duration` is omitted the latest event end stands in for it.
    """
    _require_buckets(num_buckets)
    if group_by not in GROUP_KEYS:
        raise ValueError(f"group_by must be one of {', '.join(GROUP_KEYS)}")
    if not events:
        return []

    resolved = effective_duration(duration, events)
    if resolved is None:
        return []

    columns = build_columns(num_buckets, resolved)
    emit(
        tracer,
        "per_item_grid",
        duration=resolved,
        num_buckets=num_buckets,
        bucket_duration=resolved / num_buckets,
        events=len(events),
    )

    grouped: dict[str, list[MentionEvent]] = {}
    for event in events:
        grouped.setdefault(group_key(event, group_by), []).append(event)

    rows: list[Row] = []
    for key, group_events in grouped.items():
        cells = _exclusive_cells(group_events, columns, with_subjects=False, key=key, tracer=tracer)
        row = Row(id=key, label=key, cells=cells, content_duration=resolved)
        emit(tracer, "row_built", key=key, events=len(group_events), total=row.total)
        rows.append(row)
    return _sort_by_exposure(rows)


def aggregate_library(
    events_by_content: Mapping[str, Sequence[MentionEvent]],
    durations: Mapping[str, float],
    num_buckets: int = DEFAULT_NUM_BUCKETS,
    *,
    subjects: Iterable[str] | None = None,
    labels: Mapping[str, str] | None = None,
    policy: str = "summed",
    tracer: Tracer | None = None,
) -> list[Row]:
    """
    Build one row per content item, each bucketed over its own duration.

    policy="summed" lets an event add its overlap seconds to every bucket it
    spans. policy="exclusive" applies the per-item rule instead (best bucket
    only, event count on collision); both are kept until the library view
    settles on one.
    """
    _require_buckets(num_buckets)
    if policy not in LIBRARY_POLICIES:
        raise ValueError(f"policy must be one of {', '.join(LIBRARY_POLICIES)}")

    allow = {str(item) for item in subjects} if subjects else None
    label_map = labels or {}
    rows: list[Row] = []
    for content_id, content_events in events_by_content.items():
        events = list(content_events or [])
        if allow:
            events = [event for event in events if event.subject in allow]
        duration = usable_duration(durations.get(content_id))

        if duration is None or not events:
            cells = _empty_cells(num_buckets, with_subjects=True)
        else:
            columns = build_columns(num_buckets, duration)
            if policy == "summed":
                cells = _summed_cells(events, columns)
            else:
                cells = _exclusive_cells(events, columns, with_subjects=True, key=content_id, tracer=tracer)

        row = Row(
            id=content_id,
            label=str(label_map.get(content_id) or content_id),
            cells=cells,
            content_duration=duration,
        )
        emit(
            tracer,
            "library_row_built",
            content_id=content_id,
            duration=duration if duration is not None else 0.0,
            events=len(events),
            total=row.total,
            policy=policy,
        )
        rows.append(row)
    return _sort_by_exposure(rows)


def synthesize_total_row(rows: Sequence[Row], num_buckets: int = DEFAULT_NUM_BUCKETS) -> Row:
    _require_buckets(num_buckets)
    sources = [row for row in rows if not row.is_total]
    for row in sources:
        if len(row.cells) != num_buckets:
            raise ValueError(f"Row {row.id!r} has {len(row.cells)} cells, expected {num_buckets}")

    cells: list[Cell] = []
    for idx in range(num_buckets):
        value = sum((row.cells[idx].value for row in sources), 0.0)
        subject_sets = [row.cells[idx].subjects for row in sources if row.cells[idx].subjects is not None]
        subjects = frozenset().union(*subject_sets) if subject_sets else None
        cells.append(Cell(value=value, subjects=subjects))
    return Row(id=TOTAL_ROW_ID, label=TOTAL_ROW_LABEL, cells=cells, is_total=True)


def with_total_row(
    rows: Sequence[Row],
    num_buckets: int = DEFAULT_NUM_BUCKETS,
    *,
    include_when_empty: bool = False,
) -> list[Row]:
    if not rows and not include_when_empty:
        return []
    return [synthesize_total_row(rows, num_buckets), *[row for row in rows if not row.is_total]]


def rows_to_matrix(rows: Sequence[Row]) -> np.ndarray:
    if not rows:
        return np.zeros((0, 0), dtype=np.float64)
    return np.array([row.values() for row in rows], dtype=np.float64)


def normalize_rows(rows: Sequence[Row]) -> list[Row]:
    """Scale every value by the largest value across all rows."""
    matrix = rows_to_matrix(rows)
    peak = float(matrix.max()) if matrix.size else 0.0
    if peak <= 0:
        return list(rows)
    return [
        replace(row, cells=[replace(cell, value=cell.value / peak) for cell in row.cells])
        for row in rows
    ]


def row_intensities(row: Row, *, floor: float = 0.1) -> list[float]:
    """
    Colour intensities in [0, 1] scaled by this row's own maximum, with `floor`
    keeping near-empty rows pale. Rows are deliberately not comparable with
    each other here; use `normalize_rows` for a library-wide scale.
    """
    values = np.asarray(row.values(), dtype=np.float64)
    if values.size == 0:
        return []
    peak = max(float(values.max()), floor)
    return [float(v) for v in np.clip(values / peak, 0.0, 1.0)]


def column_headers(num_buckets: int) -> list[str]:
    _require_buckets(num_buckets)
    return [f"{round(idx / num_buckets * 100)}%" for idx in range(num_buckets)]

"""Interval overlap and bucket grid helpers.

Columns live in percentage space so rows built over content of different
lengths stay column-comparable; seconds are attached only when a concrete
duration is supplied.
"""

from __future__ import annotations

from .types import Column


def overlap(a_start: float, a_end: float, b_start: float, b_end: float) -> float:
    """Length of the intersection of [a_start, a_end) and [b_start, b_end).

    Inverted intervals are treated as empty and yield 0.
    """
    return max(0.0, min(a_end, b_end) - max(a_start, b_start))


def build_columns(num_buckets: int, duration: float | None = None) -> list[Column]:
    if num_buckets <= 0:
        raise ValueError("Number of buckets must be greater than zero")

    width = 100.0 / num_buckets
    columns: list[Column] = []
    for idx in range(num_buckets):
        start_pct = idx * width
        # Pin the final edge so the grid covers exactly [0, 100).
        end_pct = 100.0 if idx == num_buckets - 1 else (idx + 1) * width
        start_sec: float | None = None
        end_sec: float | None = None
        if duration is not None:
            start_sec = (start_pct / 100.0) * duration
            end_sec = (end_pct / 100.0) * duration
        columns.append(
            Column(
                index=idx,
                start_pct=start_pct,
                end_pct=end_pct,
                start_sec=start_sec,
                end_sec=end_sec,
            )
        )
    return columns


def column_midpoint_sec(column: Column) -> float:
    if column.start_sec is None or column.end_sec is None:
        raise ValueError("column has no seconds attached; build it with a duration")
    return 0.5 * (column.start_sec + column.end_sec)


__all__ = [
    "overlap",
    "build_columns",
    "column_midpoint_sec",
]

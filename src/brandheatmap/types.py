from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


TOTAL_ROW_ID = "__TOTAL__"
TOTAL_ROW_LABEL = "Total Exposure"

ContentDuration = dict[str, float]


@dataclass(slots=True, frozen=True)
class MentionEvent:
    content_id: str
    subject: str
    start_sec: float
    end_sec: float
    secondary_label: str = ""
    description: str = ""
    location: str = ""

    @property
    def duration_sec(self) -> float:
        return self.end_sec - self.start_sec

    def to_dict(self) -> dict[str, Any]:
        return {
            "content_id": self.content_id,
            "subject": self.subject,
            "secondary_label": self.secondary_label,
            "start_sec": self.start_sec,
            "end_sec": self.end_sec,
            "description": self.description,
            "location": self.location,
        }


@dataclass(slots=True, frozen=True)
class Column:
    index: int
    start_pct: float
    end_pct: float
    start_sec: float | None = None
    end_sec: float | None = None

    @property
    def duration_sec(self) -> float:
        if self.start_sec is None or self.end_sec is None:
            return 0.0
        return self.end_sec - self.start_sec


@dataclass(slots=True)
class Cell:
    value: float = 0.0
    subjects: frozenset[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"value": self.value}
        if self.subjects is not None:
            payload["subjects"] = sorted(self.subjects)
        return payload


@dataclass(slots=True)
class Row:
    id: str
    label: str
    cells: list[Cell]
    content_duration: float | None = None
    is_total: bool = False

    @property
    def total(self) -> float:
        return sum(cell.value for cell in self.cells)

    def values(self) -> list[float]:
        return [cell.value for cell in self.cells]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "content_duration": self.content_duration,
            "is_total": self.is_total,
            "total": self.total,
            "cells": [cell.to_dict() for cell in self.cells],
        }


@dataclass(slots=True)
class PlaybackWindow:
    content_id: str
    start: float
    end: float
    label: str
    description: str = ""
    subject: str = ""
    secondary_label: str = ""
    location: str = ""
    strategy: str = "event"

    def to_dict(self) -> dict[str, Any]:
        return {
            "content_id": self.content_id,
            "start": self.start,
            "end": self.end,
            "label": self.label,
            "description": self.description,
            "subject": self.subject,
            "secondary_label": self.secondary_label,
            "location": self.location,
            "strategy": self.strategy,
        }


@dataclass(slots=True)
class ContentItem:
    content_id: str
    title: str = ""
    duration_sec: float = 0.0
    creator: str | None = None
    region: str | None = None
    width: int | None = None
    height: int | None = None
    video_path: str | None = None
    tags: dict[str, Any] = field(default_factory=dict)

    @property
    def format(self) -> str | None:
        if not self.width or not self.height:
            return None
        return "horizontal" if self.width >= self.height else "vertical"

    @property
    def display_label(self) -> str:
        return self.creator or self.title or self.content_id


@dataclass(slots=True)
class ContentAnalysis:
    tones: list[str] = field(default_factory=list)
    styles: list[str] = field(default_factory=list)
    creator: str | None = None

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Sequence

from .types import ContentItem, MentionEvent


UNKNOWN_FACET = "Unknown"
FORMATS = ("horizontal", "vertical")


@dataclass(slots=True)
class ContentFilters:
    creators: set[str] = field(default_factory=set)
    formats: set[str] = field(default_factory=set)
    regions: set[str] = field(default_factory=set)

    def validate(self) -> None:
        unknown = sorted(set(self.formats) - set(FORMATS))
        if unknown:
            raise ValueError(f"Unsupported formats: {', '.join(unknown)}")

    def accepts(self, item: ContentItem) -> bool:
        if self.creators and (item.creator or UNKNOWN_FACET) not in self.creators:
            return False
        if self.formats:
            # Items with unknown dimensions never match a format selection.
            if item.format is None or item.format not in self.formats:
                return False
        if self.regions and (item.region or UNKNOWN_FACET) not in self.regions:
            return False
        return True


@dataclass(slots=True)
class EventFilters:
    subjects: set[str] = field(default_factory=set)
    min_duration_sec: float = 0.0
    window_start: float = 0.0
    window_end: float | None = None

    def validate(self) -> None:
        if self.min_duration_sec < 0:
            raise ValueError("min_duration_sec must be >= 0")
        if self.window_start < 0:
            raise ValueError("window_start must be >= 0")
        if self.window_end is not None and self.window_end < self.window_start:
            raise ValueError("window_end must be >= window_start")

    def accepts(self, event: MentionEvent) -> bool:
        if self.subjects and event.subject not in self.subjects:
            return False
        if event.duration_sec < self.min_duration_sec:
            return False
        if self.window_start > 0 and event.end_sec < self.window_start:
            return False
        if self.window_end is not None and event.start_sec > self.window_end:
            return False
        return True


def filter_events(events: Iterable[MentionEvent], filters: EventFilters) -> list[MentionEvent]:
    return [event for event in events if filters.accepts(event)]


def filter_library(
    events_by_content: Mapping[str, Sequence[MentionEvent]],
    items: Mapping[str, ContentItem],
    content_filters: ContentFilters | None = None,
    event_filters: EventFilters | None = None,
) -> dict[str, list[MentionEvent]]:
    """
    Apply content and event filters ahead of aggregation.
    Content that is filtered out, or left without events, is dropped.
    """
    content_cfg = content_filters or ContentFilters()
    event_cfg = event_filters or EventFilters()
    content_cfg.validate()
    event_cfg.validate()

    out: dict[str, list[MentionEvent]] = {}
    for content_id, events in events_by_content.items():
        item = items.get(content_id) or ContentItem(content_id=content_id)
        if not content_cfg.accepts(item):
            continue
        kept = filter_events(events, event_cfg)
        if kept:
            out[content_id] = kept
    return out


def facet_values(items: Iterable[ContentItem]) -> dict[str, list[str]]:
    creators: set[str] = set()
    formats: set[str] = set()
    regions: set[str] = set()
    for item in items:
        creators.add(item.creator or UNKNOWN_FACET)
        regions.add(item.region or UNKNOWN_FACET)
        if item.format is not None:
            formats.add(item.format)
    return {
        "creators": sorted(creators),
        "formats": sorted(formats),
        "regions": sorted(regions),
    }

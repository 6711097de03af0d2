"""Normalization of analysis output and content records into strict shapes.

Everything loose lives here: JSON-encoded metadata strings, prose-wrapped model
output, missing or non-numeric bounds. The aggregators only ever see
`MentionEvent` and `ContentItem` values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import math
from pathlib import Path
import re
from typing import Any, Mapping

from .tracing import Tracer, emit
from .types import ContentAnalysis, ContentDuration, ContentItem, MentionEvent


UNKNOWN_SUBJECT = "Unknown Brand"
UNKNOWN_SECONDARY = "Unknown Product"
EVENTS_METADATA_KEY = "brand_product_events"


def _as_float(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            number = float(value)
        except ValueError:
            return default
    else:
        return default
    if not math.isfinite(number):
        return default
    return number


def _as_int(value: Any) -> int | None:
    number = _as_float(value, default=-1.0)
    if number <= 0:
        return None
    return int(number)


def _as_label(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _as_text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _first_present(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def coerce_event(raw: Any, content_id: str | None = None) -> MentionEvent:
    """
    Build a `MentionEvent` from an analysis item or a stored event.

    Accepts `{brand, product_name, timeline: [start, end]}` as produced by the
    analysis service, `{timeline_start, timeline_end}` as stored on content
    records, and the `to_dict()` shape of `MentionEvent` itself.
    """
    if not isinstance(raw, Mapping):
        raise TypeError(f"Mention event must be an object, got {type(raw).__name__}")

    timeline = raw.get("timeline")
    if isinstance(timeline, (list, tuple)) and len(timeline) >= 2:
        raw_start, raw_end = timeline[0], timeline[1]
    else:
        raw_start = _first_present(raw, "timeline_start", "start_sec")
        raw_end = _first_present(raw, "timeline_end", "end_sec")

    start = max(0.0, _as_float(raw_start))
    end = _as_float(raw_end)
    if end < start:
        end = start

    owner = content_id or _first_present(raw, "video_id", "content_id") or ""
    return MentionEvent(
        content_id=str(owner),
        subject=_as_label(_first_present(raw, "brand", "subject"), UNKNOWN_SUBJECT),
        start_sec=start,
        end_sec=end,
        secondary_label=_as_label(_first_present(raw, "product_name", "secondary_label"), UNKNOWN_SECONDARY),
        description=_as_text(raw.get("description")),
        location=_as_text(raw.get("location")),
    )


def coerce_events(items: Any, content_id: str | None = None) -> list[MentionEvent]:
    if not isinstance(items, list):
        raise ValueError("Mention events must be a list")
    return [coerce_event(item, content_id) for item in items]


def _extract_json_from_text(text: str) -> Any:
    direct = text.strip()
    if direct:
        try:
            return json.loads(direct)
        except json.JSONDecodeError:
            pass

    fenced = re.search(r"```(?:json)?\s*([\[{].*?[\]}])\s*```", text, flags=re.DOTALL | re.IGNORECASE)
    if fenced:
        try:
            return json.loads(fenced.group(1))
        except json.JSONDecodeError:
            pass

    for opener, closer in (("{", "}"), ("[", "]")):
        start = text.find(opener)
        end = text.rfind(closer)
        if start >= 0 and end > start:
            try:
                return json.loads(text[start : end + 1])
            except json.JSONDecodeError:
                continue

    raise ValueError("Could not parse JSON from analysis output")


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def _analysis_from(payload: Mapping[str, Any]) -> ContentAnalysis:
    creator = payload.get("creator")
    return ContentAnalysis(
        tones=_string_list(payload.get("tones")),
        styles=_string_list(payload.get("styles")),
        creator=creator.strip() if isinstance(creator, str) and creator.strip() else None,
    )


def parse_analysis_response(
    text: str,
    content_id: str,
    *,
    tracer: Tracer | None = None,
) -> tuple[list[MentionEvent], ContentAnalysis]:
    """
    Parse raw analysis-service output into events plus content analysis.

    Output the service could not turn into JSON yields no events rather than an
    error, so one bad item never blocks the rest of a library.
    """
    if not text or not text.strip():
        return [], ContentAnalysis()

    try:
        payload = _extract_json_from_text(text)
        if isinstance(payload, Mapping) and isinstance(payload.get("data"), str):
            payload = _extract_json_from_text(payload["data"])
    except ValueError as exc:
        emit(tracer, "analysis_unparseable", content_id=content_id, error=str(exc))
        return [], ContentAnalysis()

    analysis = ContentAnalysis()
    if isinstance(payload, list):
        items: Any = payload
    elif isinstance(payload, Mapping) and "products" in payload:
        items = payload.get("products") or []
        analysis = _analysis_from(payload)
    elif isinstance(payload, Mapping) and ("brand" in payload or "timeline" in payload):
        items = [payload]
    else:
        emit(tracer, "analysis_unexpected_shape", content_id=content_id, kind=type(payload).__name__)
        items = []

    if not isinstance(items, list):
        raise ValueError("Analysis products must be a list")
    return coerce_events(items, content_id), analysis


def events_from_metadata(user_metadata: Mapping[str, Any], content_id: str) -> list[MentionEvent]:
    raw = user_metadata.get(EVENTS_METADATA_KEY)
    if raw is None:
        return []
    if isinstance(raw, str):
        if not raw.strip():
            return []
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"{EVENTS_METADATA_KEY} for {content_id} is not valid JSON") from exc
    return coerce_events(raw, content_id)


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def content_item_from_record(record: Mapping[str, Any]) -> ContentItem:
    if not isinstance(record, Mapping):
        raise TypeError(f"Content record must be an object, got {type(record).__name__}")
    content_id = _first_present(record, "_id", "id", "content_id", "video_id")
    if content_id is None or not str(content_id).strip():
        raise ValueError("Content record is missing an id")

    system = _mapping(record.get("system_metadata"))
    user = _mapping(record.get("user_metadata"))
    creator = _first_present(user, "creator", "creator_id", "video_creator")
    region = user.get("region")
    video_path = _first_present(record, "video_path") or user.get("video_path")
    return ContentItem(
        content_id=str(content_id),
        title=_as_text(_first_present(system, "video_title", "filename") or record.get("title")),
        duration_sec=max(0.0, _as_float(_first_present(system, "duration") or record.get("duration"))),
        creator=_optional_text(creator),
        region=_optional_text(region),
        width=_as_int(system.get("width")),
        height=_as_int(system.get("height")),
        video_path=str(video_path) if video_path else None,
        tags={key: value for key, value in user.items() if key != EVENTS_METADATA_KEY},
    )


def durations_from_items(items: Mapping[str, ContentItem]) -> ContentDuration:
    return {content_id: item.duration_sec for content_id, item in items.items()}


@dataclass(slots=True)
class LibraryData:
    items: dict[str, ContentItem] = field(default_factory=dict)
    events: dict[str, list[MentionEvent]] = field(default_factory=dict)
    analyses: dict[str, ContentAnalysis] = field(default_factory=dict)

    def durations(self) -> ContentDuration:
        return durations_from_items(self.items)

    def labels(self) -> dict[str, str]:
        return {content_id: item.display_label for content_id, item in self.items.items()}

    def subjects(self) -> list[str]:
        return sorted({event.subject for events in self.events.values() for event in events})


def library_from_payload(payload: Mapping[str, Any]) -> LibraryData:
    """
    Accepts `{"videos": [...], "events": {content_id: [...]}}`. Per-content
    entries may also be `{"events": [...], "analysis": {...}}` as returned by
    the events endpoint, or live in each record's user metadata.
    """
    if not isinstance(payload, Mapping):
        raise ValueError("Library file must be a JSON object")

    data = LibraryData()
    records = payload.get("videos", [])
    if not isinstance(records, list):
        raise ValueError("videos must be a list")
    for record in records:
        item = content_item_from_record(record)
        data.items[item.content_id] = item
        embedded = events_from_metadata(_mapping(record.get("user_metadata")), item.content_id)
        if embedded:
            data.events[item.content_id] = embedded

    raw_events = payload.get("events", payload.get("results", {}))
    if not isinstance(raw_events, Mapping):
        raise ValueError("events must be an object keyed by content id")
    for content_id, entry in raw_events.items():
        key = str(content_id)
        if isinstance(entry, Mapping):
            data.events[key] = coerce_events(entry.get("events", []), key)
            data.analyses[key] = _analysis_from(_mapping(entry.get("analysis")))
        else:
            data.events[key] = coerce_events(entry, key)
        if key not in data.items:
            data.items[key] = ContentItem(content_id=key)
    return data


def load_json(path: str | Path) -> Any:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def load_library(path: str | Path) -> LibraryData:
    return library_from_payload(load_json(path))

"""Brand mention heatmaps for video libraries."""

from .config import HeatmapConfig, load_config
from .filters import ContentFilters, EventFilters, filter_events, filter_library
from .heatmap import (
    DEFAULT_NUM_BUCKETS,
    LIBRARY_POLICIES,
    aggregate_library,
    aggregate_per_item,
    assign_best_buckets,
    effective_duration,
    normalize_rows,
    row_intensities,
    rows_to_matrix,
    synthesize_total_row,
    usable_duration,
    with_total_row,
)
from .ingest import (
    LibraryData,
    coerce_event,
    content_item_from_record,
    events_from_metadata,
    load_library,
    parse_analysis_response,
)
from .intervals import build_columns, overlap
from .playback import PlaybackConfig, match_subject_events, resolve_playback
from .tracing import RecordingTracer, StderrTracer, Tracer
from .types import (
    TOTAL_ROW_ID,
    Cell,
    Column,
    ContentAnalysis,
    ContentItem,
    MentionEvent,
    PlaybackWindow,
    Row,
)

__all__ = [
    "Cell",
    "Column",
    "ContentAnalysis",
    "ContentFilters",
    "ContentItem",
    "DEFAULT_NUM_BUCKETS",
    "EventFilters",
    "HeatmapConfig",
    "LIBRARY_POLICIES",
    "LibraryData",
    "MentionEvent",
    "PlaybackConfig",
    "PlaybackWindow",
    "RecordingTracer",
    "Row",
    "StderrTracer",
    "TOTAL_ROW_ID",
    "Tracer",
    "aggregate_library",
    "aggregate_per_item",
    "assign_best_buckets",
    "effective_duration",
    "build_columns",
    "coerce_event",
    "content_item_from_record",
    "events_from_metadata",
    "filter_events",
    "filter_library",
    "load_config",
    "load_library",
    "match_subject_events",
    "normalize_rows",
    "overlap",
    "parse_analysis_response",
    "resolve_playback",
    "row_intensities",
    "rows_to_matrix",
    "synthesize_total_row",
    "usable_duration",
    "with_total_row",
]

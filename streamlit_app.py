from __future__ import annotations

import html
import json
from pathlib import Path
from typing import Any

import streamlit as st

from brandheatmap.config import HeatmapConfig
from brandheatmap.filters import ContentFilters, EventFilters, facet_values, filter_library
from brandheatmap.heatmap import (
    aggregate_library,
    aggregate_per_item,
    column_headers,
    effective_duration,
    row_intensities,
    with_total_row,
)
from brandheatmap.ingest import LibraryData, library_from_payload
from brandheatmap.playback import PlaybackConfig, resolve_playback
from brandheatmap.types import Row


DEFAULT_LIBRARY = Path("data/library.json")
COLOR_HUE = 210


def _expand_path(value: str) -> Path:
    return Path(value).expanduser().resolve()


def _safe_library_read(path: Path) -> LibraryData | None:
    if not path.exists():
        return None
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
        return library_from_payload(payload)
    except (ValueError, TypeError) as exc:
        st.error(f"Could not load library: {exc}")
        return None


def _cell_color(intensity: float) -> str:
    # 95% lightness for empty cells down to 40% for the row maximum.
    lightness = 95 - intensity * 55
    return f"hsl({COLOR_HUE}, 100%, {lightness:.0f}%)"


def _render_heatmap(rows: list[Row], num_buckets: int) -> None:
    headers = column_headers(num_buckets)
    parts = ['<table style="border-collapse:collapse;width:100%;font-size:11px">', "<tr><th></th>"]
    for idx, header in enumerate(headers):
        parts.append(f'<th title="column {idx}">{header if idx % 5 == 0 else ""}</th>')
    parts.append("</tr>")
    for row in rows:
        label = html.escape(row.label or row.id)
        weight = "bold" if row.is_total else "normal"
        parts.append(f'<tr><td style="white-space:nowrap;font-weight:{weight};padding-right:8px">{label}</td>')
        for idx, (cell, intensity) in enumerate(zip(row.cells, row_intensities(row))):
            tooltip = f"col {idx}: {cell.value:.2f}"
            if cell.subjects:
                tooltip += " | " + ", ".join(sorted(cell.subjects))
            parts.append(
                f'<td title="{html.escape(tooltip)}" '
                f'style="background:{_cell_color(intensity)};height:18px;border:1px solid #eee"></td>'
            )
        parts.append("</tr>")
    parts.append("</table>")
    st.markdown("".join(parts), unsafe_allow_html=True)


def _sidebar_filters(data: LibraryData) -> tuple[HeatmapConfig, ContentFilters, EventFilters]:
    facets = facet_values(data.items.values())
    st.sidebar.header("Heatmap")
    num_buckets = st.sidebar.number_input("Buckets", min_value=5, max_value=200, value=50, step=5)
    policy = st.sidebar.radio("Library values", options=["summed", "exclusive"], index=0, horizontal=True)
    group_by = st.sidebar.radio(
        "Video rows",
        options=["subject", "secondary_label"],
        format_func=lambda key: "Brand" if key == "subject" else "Product",
        horizontal=True,
    )

    st.sidebar.header("Filters")
    creators = st.sidebar.multiselect("Creators", options=facets["creators"])
    formats = st.sidebar.multiselect("Formats", options=facets["formats"])
    regions = st.sidebar.multiselect("Regions", options=facets["regions"])
    subjects = st.sidebar.multiselect("Brands", options=data.subjects())
    min_duration = st.sidebar.slider("Duration threshold (s)", min_value=0.1, max_value=5.0, value=0.5, step=0.1)
    window_start = st.sidebar.number_input("Time window start (s)", min_value=0.0, value=0.0, step=1.0)
    window_end_text = st.sidebar.text_input("Time window end (s)", value="")

    window_end: float | None = None
    if window_end_text.strip():
        try:
            window_end = max(float(window_start) + 1.0, float(window_end_text))
        except ValueError:
            st.sidebar.warning("Time window end must be a number; ignoring it.")

    cfg = HeatmapConfig(
        num_buckets=int(num_buckets),
        min_duration_sec=float(min_duration),
        library_policy=str(policy),
        group_by=str(group_by),
        playback=PlaybackConfig(),
    )
    return (
        cfg,
        ContentFilters(creators=set(creators), formats=set(formats), regions=set(regions)),
        EventFilters(
            subjects=set(subjects),
            min_duration_sec=float(min_duration),
            window_start=float(window_start),
            window_end=window_end,
        ),
    )


def _render_library(
    data: LibraryData,
    events_by_content: dict[str, Any],
    cfg: HeatmapConfig,
    subjects: set[str],
) -> None:
    labels = data.labels()
    rows = aggregate_library(
        events_by_content,
        data.durations(),
        cfg.num_buckets,
        subjects=subjects or None,
        labels=labels,
        policy=cfg.library_policy,
    )
    if not rows:
        st.info("No videos with brand mentions match the current filters.")
        return
    st.subheader(f"Brand Mention Heatmap ({len(rows)} videos)")
    _render_heatmap(with_total_row(rows, cfg.num_buckets, include_when_empty=True), cfg.num_buckets)

    options = [row.id for row in rows]
    picked = st.selectbox(
        "Open video",
        options=options,
        format_func=lambda content_id: labels.get(content_id, content_id),
        key="library_pick",
    )
    if st.button("Open per-video view", type="primary"):
        st.session_state["selected_content_id"] = picked
        st.rerun()


def _render_per_item(data: LibraryData, events_by_content: dict[str, Any], cfg: HeatmapConfig) -> None:
    content_id = st.session_state.get("selected_content_id")
    item = data.items.get(content_id) if content_id else None
    if item is None:
        st.session_state.pop("selected_content_id", None)
        st.rerun()
        return

    if st.button("Back to Library"):
        st.session_state.pop("selected_content_id", None)
        st.rerun()

    events = events_by_content.get(item.content_id, [])
    duration = effective_duration(item.duration_sec or None, events)
    rows = aggregate_per_item(events, cfg.num_buckets, duration=duration, group_by=cfg.group_by)
    st.subheader(f"Brand Mentions in {item.title or item.content_id}")
    if not rows:
        st.info("No brand mentions for this video under the current filters.")
        return
    _render_heatmap(with_total_row(rows, cfg.num_buckets), cfg.num_buckets)

    c1, c2 = st.columns(2)
    with c1:
        subject = st.selectbox("Row", options=[row.id for row in rows], key="per_item_subject")
    with c2:
        column = st.slider("Column", min_value=0, max_value=cfg.num_buckets - 1, value=0, key="per_item_column")

    window = resolve_playback(
        events,
        content_id=item.content_id,
        subject=str(subject),
        column_index=int(column),
        content_duration=duration,
        num_buckets=cfg.num_buckets,
        group_by=cfg.group_by,
        config=cfg.playback,
    )
    if window is None:
        st.caption("No mention in this cell.")
        return

    st.markdown(f"**{window.label}**  `{window.start:.2f}s - {window.end:.2f}s` ({window.strategy})")
    if window.description:
        st.write(window.description)
    if window.location:
        st.caption(window.location)
    if item.video_path and Path(item.video_path).exists():
        st.video(item.video_path, start_time=int(window.start), end_time=int(window.end) + 1)


def main() -> None:
    st.set_page_config(page_title="Brand Mention Heatmap", layout="wide")
    library_text = st.sidebar.text_input("library.json path", value=str(DEFAULT_LIBRARY))
    data = _safe_library_read(_expand_path(library_text))
    if data is None:
        st.warning("Point the sidebar at a valid `library.json` to continue.")
        return

    cfg, content_filters, event_filters = _sidebar_filters(data)
    try:
        cfg.validate()
        events_by_content = filter_library(data.events, data.items, content_filters, event_filters)
    except ValueError as exc:
        st.error(f"Invalid filters: {exc}")
        return

    if st.session_state.get("selected_content_id"):
        _render_per_item(data, events_by_content, cfg)
    else:
        _render_library(data, events_by_content, cfg, event_filters.subjects)


if __name__ == "__main__":
    main()

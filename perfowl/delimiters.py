"""Markers that delimit user-visible operations, and timing between them."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol

from .profile import Profile

_DELIMITER_TYPES = frozenset(
    {
        "DOMEvent",
        "EventDispatch",
        "UserTiming",
        "Styles",
        "UpdateLayoutTree",
        "Reflow",
        "Paint",
        "Composite",
        "MainThreadLongTask",
        "Navigation",
        "Load",
    }
)

_DELIMITER_CATEGORIES = frozenset({"Layout", "Graphics", "DOM", "UserTiming"})


class MeasurementError(ValueError):
    """Raised when an operation cannot be measured between two markers."""


class _MarkerLike(Protocol):
    name: str
    type: str
    category: str


@dataclass
class DelimiterMarker:
    """A marker that can serve as the start or end of an operation."""

    time_ms: float = 0.0
    duration_ms: float = 0.0
    name: str = ""
    type: str = ""
    category: str = ""
    thread: str = ""
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class OperationMeasurement:
    """The time between a start and an end marker."""

    start_marker: DelimiterMarker
    end_marker: DelimiterMarker
    operation_time_ms: float


@dataclass
class MeasureOptions:
    """How start and end markers are chosen for a measurement."""

    start_pattern: str = ""
    end_pattern: str = ""
    start_after_ms: float = 0.0
    end_before_ms: float = 0.0
    find_last: bool = False
    start_min_duration_ms: float = 0.0
    end_min_duration_ms: float = 0.0


@dataclass
class DelimiterMarkersReport:
    """Delimiter markers of a profile with counts by type and category."""

    total_count: int = 0
    markers: list[DelimiterMarker] = field(default_factory=list)
    by_type: dict[str, int] = field(default_factory=dict)
    by_category: dict[str, int] = field(default_factory=dict)


def is_delimiter_marker(marker: _MarkerLike) -> bool:
    """Whether a marker is useful for timing an operation."""
    return (
        marker.type in _DELIMITER_TYPES
        or marker.name in _DELIMITER_TYPES
        or marker.category in _DELIMITER_CATEGORIES
    )


def get_delimiter_markers(
    profile: Profile, categories: Iterable[str] | None = None
) -> list[DelimiterMarker]:
    """Delimiter markers of all threads, sorted by time, optionally by category."""
    category_filter = {c.strip() for c in categories or ()}
    found: list[DelimiterMarker] = []
    for thread in profile.threads:
        for marker in thread.markers:
            if not is_delimiter_marker(marker):
                continue
            if category_filter and marker.category not in category_filter:
                continue
            found.append(
                DelimiterMarker(
                    time_ms=marker.start_time,
                    duration_ms=marker.duration,
                    name=marker.name,
                    type=marker.type,
                    category=marker.category,
                    thread=marker.thread_name or thread.name,
                    data=marker.data,
                )
            )
    found.sort(key=lambda m: m.time_ms)
    return found


def _string(data: dict[str, Any] | None, key: str) -> str | None:
    value = (data or {}).get(key)
    return value if isinstance(value, str) else None


def match_marker_pattern(marker: DelimiterMarker, pattern: str) -> bool:
    """Match a marker against "Type" or "Type:subtype", case-insensitively."""
    main_type, sep, rest = pattern.partition(":")
    wanted = main_type.lower()
    if marker.type.lower() != wanted and marker.name.lower() != wanted:
        return False
    if not sep:
        return True

    subtype = rest.lower()
    for key in ("type", "eventType"):
        value = _string(marker.data, key)
        if value is not None and value.lower() == subtype:
            return True
    if subtype in marker.name.lower():
        return True
    data_name = _string(marker.data, "name")
    return data_name is not None and subtype in data_name.lower()


def measure_operation_advanced(
    profile: Profile, options: MeasureOptions
) -> OperationMeasurement:
    """Measure from the first matching start marker to a matching later end marker."""
    markers = get_delimiter_markers(profile)
    if not markers:
        raise MeasurementError("no delimiter markers found in profile")

    start = next(
        (
            m
            for m in markers
            if not (options.start_after_ms > 0 and m.time_ms < options.start_after_ms)
            and not (
                options.start_min_duration_ms > 0
                and m.duration_ms < options.start_min_duration_ms
            )
            and match_marker_pattern(m, options.start_pattern)
        ),
        None,
    )
    if start is None:
        raise MeasurementError(
            f"no marker matching start pattern '{options.start_pattern}' found"
        )

    candidates = (
        m
        for m in markers
        if m.time_ms > start.time_ms
        and not (options.end_before_ms > 0 and m.time_ms > options.end_before_ms)
        and not (
            options.end_min_duration_ms > 0 and m.duration_ms < options.end_min_duration_ms
        )
        and match_marker_pattern(m, options.end_pattern)
    )
    end: DelimiterMarker | None = None
    if options.find_last:
        for end in candidates:
            pass
    else:
        end = next(candidates, None)

    if end is None:
        raise MeasurementError(
            f"no marker matching end pattern '{options.end_pattern}' found after start marker"
        )
    return OperationMeasurement(start, end, end.time_ms - start.time_ms)


def measure_operation(
    profile: Profile,
    start_pattern: str,
    end_pattern: str,
    start_after_ms: float = 0.0,
    end_before_ms: float = 0.0,
) -> OperationMeasurement:
    """Measure from the first start match to the first end match after it."""
    return measure_operation_advanced(
        profile,
        MeasureOptions(start_pattern, end_pattern, start_after_ms, end_before_ms),
    )


def measure_operation_last(
    profile: Profile,
    start_pattern: str,
    end_pattern: str,
    start_after_ms: float = 0.0,
    end_before_ms: float = 0.0,
) -> OperationMeasurement:
    """Measure from the first start match to the last end match after it."""
    return measure_operation_advanced(
        profile,
        MeasureOptions(start_pattern, end_pattern, start_after_ms, end_before_ms, find_last=True),
    )


def measure_operation_by_index(
    profile: Profile, start_index: int, end_index: int
) -> OperationMeasurement:
    """Measure between two delimiter markers given by their positions."""
    markers = get_delimiter_markers(profile)
    last = len(markers) - 1
    if not 0 <= start_index < len(markers):
        raise MeasurementError(f"start index {start_index} out of range (0-{last})")
    if not 0 <= end_index < len(markers):
        raise MeasurementError(f"end index {end_index} out of range (0-{last})")
    if end_index <= start_index:
        raise MeasurementError(
            f"end index {end_index} must be greater than start index {start_index}"
        )
    start, end = markers[start_index], markers[end_index]
    return OperationMeasurement(start, end, end.time_ms - start.time_ms)


def get_delimiter_markers_report(
    profile: Profile, categories: Iterable[str] | None = None, limit: int = 0
) -> DelimiterMarkersReport:
    """Count delimiter markers by type and category; list at most `limit` of them."""
    markers = get_delimiter_markers(profile, categories)
    report = DelimiterMarkersReport(
        total_count=len(markers),
        by_type=dict(Counter(m.type for m in markers)),
        by_category=dict(Counter(m.category for m in markers)),
    )
    report.markers = markers[:limit] if limit > 0 else markers
    return report
"""Side-by-side comparison of the key metrics of two profiles."""

from __future__ import annotations

from dataclasses import dataclass, field

from .profile import Profile
from .workers import _is_sync

_PERCENT_THRESHOLD = 5.0
_LONG_TASK_MS = 50.0


@dataclass
class ProfileSummary:
    """Key metrics of one profile."""

    name: str
    duration_ms: float = 0.0
    total_samples: int = 0
    thread_count: int = 0
    gc_major_count: int = 0
    gc_minor_count: int = 0
    gc_total_time_ms: float = 0.0
    sync_ipc_count: int = 0
    long_task_count: int = 0
    layout_count: int = 0
    extension_count: int = 0


@dataclass
class DiffChanges:
    """Deltas between a baseline and a comparison summary."""

    duration_change_ms: float = 0.0
    duration_change_percent: float = 0.0
    sample_count_change: int = 0
    thread_count_change: int = 0
    gc_major_change: int = 0
    gc_minor_change: int = 0
    gc_time_change_ms: float = 0.0
    gc_time_change_percent: float = 0.0
    sync_ipc_change: int = 0
    long_task_change: int = 0
    layout_change: int = 0


@dataclass
class ProfileDiff:
    """The result of comparing two profiles."""

    baseline: ProfileSummary
    comparison: ProfileSummary
    changes: DiffChanges
    improved: list[str] = field(default_factory=list)
    regressed: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)


def percent_change(baseline: float, comparison: float) -> float:
    """Relative change in percent; growth from zero counts as 100%."""
    if baseline == 0:
        return 0.0 if comparison == 0 else 100.0
    return ((comparison - baseline) / baseline) * 100


def format_percent(p: float) -> str:
    """Format the magnitude of a percentage with one decimal."""
    return f"{abs(p):.1f}%"


def extract_summary(profile: Profile, name: str) -> ProfileSummary:
    """Collect the comparison metrics of a profile."""
    summary = ProfileSummary(name=name, thread_count=len(profile.threads))

    meta = profile.meta
    if meta.profiling_end_time > meta.profiling_start_time:
        summary.duration_ms = meta.profiling_end_time - meta.profiling_start_time

    summary.extension_count = len(meta.extensions.base_url)

    for thread in profile.threads:
        summary.total_samples += thread.samples.length
        for marker in thread.markers:
            if marker.type == "GCMajor":
                summary.gc_major_count += 1
                summary.gc_total_time_ms += marker.duration
            elif marker.type == "GCMinor":
                summary.gc_minor_count += 1
                summary.gc_total_time_ms += marker.duration
            elif marker.type == "IPC":
                if _is_sync(marker.data):
                    summary.sync_ipc_count += 1
            elif marker.type in ("Reflow", "ForceReflow"):
                summary.layout_count += 1

            if marker.duration > _LONG_TASK_MS and (
                marker.category == "JavaScript" or marker.type == "eventProcessing"
            ):
                summary.long_task_count += 1

    return summary


def _classify_percent(
    diff: ProfileDiff, change: float, label: str, lower: str, higher: str
) -> None:
    if change < -_PERCENT_THRESHOLD:
        diff.improved.append(f"{label} {lower} by {format_percent(-change)}")
    elif change > _PERCENT_THRESHOLD:
        diff.regressed.append(f"{label} {higher} by {format_percent(change)}")
    else:
        diff.unchanged.append(f"{label} similar")


def _classify_count(
    diff: ProfileDiff, change: int, limit: int, fewer: str, more: str
) -> None:
    if change < -limit:
        diff.improved.append(fewer)
    elif change > limit:
        diff.regressed.append(more)


def compare_profiles(baseline: Profile, comparison: Profile) -> ProfileDiff:
    """Compare two profiles; lower values count as improvements."""
    base = extract_summary(baseline, "baseline")
    comp = extract_summary(comparison, "comparison")

    changes = DiffChanges(
        duration_change_ms=comp.duration_ms - base.duration_ms,
        duration_change_percent=percent_change(base.duration_ms, comp.duration_ms),
        sample_count_change=comp.total_samples - base.total_samples,
        thread_count_change=comp.thread_count - base.thread_count,
        gc_major_change=comp.gc_major_count - base.gc_major_count,
        gc_minor_change=comp.gc_minor_count - base.gc_minor_count,
        gc_time_change_ms=comp.gc_total_time_ms - base.gc_total_time_ms,
        gc_time_change_percent=percent_change(base.gc_total_time_ms, comp.gc_total_time_ms),
        sync_ipc_change=comp.sync_ipc_count - base.sync_ipc_count,
        long_task_change=comp.long_task_count - base.long_task_count,
        layout_change=comp.layout_count - base.layout_count,
    )
    diff = ProfileDiff(baseline=base, comparison=comp, changes=changes)

    _classify_percent(diff, changes.duration_change_percent, "Duration", "reduced", "increased")
    _classify_percent(diff, changes.gc_time_change_percent, "GC time", "reduced", "increased")
    _classify_count(
        diff, changes.gc_major_change, 2, "Fewer major GC events", "More major GC events"
    )
    _classify_count(
        diff, changes.sync_ipc_change, 2, "Fewer sync IPC calls", "More sync IPC calls"
    )
    _classify_count(diff, changes.long_task_change, 2, "Fewer long tasks", "More long tasks")
    _classify_count(
        diff, changes.layout_change, 5, "Fewer layout operations", "More layout operations"
    )
    return diff
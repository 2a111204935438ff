"""Detection of GC pauses and sync IPC waits that stall several threads."""

from __future__ import annotations

from dataclasses import dataclass, field

from .profile import Profile
from .workers import _is_sync, is_worker_thread

_IPC_WINDOW_MS = 10.0
_GC_MARKERS = ("GCMajor", "GCMinor", "GCSlice")
_MAX_EVENTS = 50
_MAX_DISPLAYED = 10


@dataclass
class ContentionEvent:
    """One contention event and the threads it affected."""

    type: str
    start_time: float
    duration: float
    threads: list[str] = field(default_factory=list)
    description: str = ""


@dataclass
class ContentionAnalysis:
    """The full contention analysis."""

    total_events: int = 0
    total_impact_ms: float = 0.0
    gc_contention: int = 0
    ipc_contention: int = 0
    lock_contention: int = 0
    events: list[ContentionEvent] = field(default_factory=list)
    severity: str = ""
    recommendations: list[str] = field(default_factory=list)


@dataclass
class _Activity:
    name: str
    start: float
    end: float
    is_worker: bool


@dataclass
class _TimedEvent:
    start: float
    duration: float
    label: str


def _severity(impact_ms: float, duration_ms: float) -> str:
    if duration_ms <= 0:
        return "unknown"
    percent = (impact_ms / duration_ms) * 100
    if percent > 10:
        return "high"
    if percent > 5:
        return "medium"
    if percent > 1:
        return "low"
    return "minimal"


def _ipc_contention(events: list[_TimedEvent]) -> list[ContentionEvent]:
    events = sorted(events, key=lambda e: e.start)
    found: list[ContentionEvent] = []
    i = 0
    while i < len(events):
        ipc = events[i]
        involved = {ipc.label: None}
        max_duration = ipc.duration
        for other in events[i + 1:]:
            if other.start - ipc.start >= _IPC_WINDOW_MS:
                break
            involved[other.label] = None
            max_duration = max(max_duration, other.duration)

        if len(involved) > 1:
            found.append(
                ContentionEvent(
                    type="ipc_wait",
                    start_time=ipc.start,
                    duration=max_duration,
                    threads=list(involved),
                    description=f"Sync IPC contention between {len(involved)} threads",
                )
            )
            i += 1
            while i < len(events) and events[i].start < ipc.start + _IPC_WINDOW_MS:
                i += 1
        else:
            i += 1
    return found


def analyze_contention(profile: Profile) -> ContentionAnalysis:
    """Find GC pauses overlapping worker activity and clustered sync IPC."""
    analysis = ContentionAnalysis()
    profile_duration = profile.duration_seconds() * 1000
    interval = profile.meta.interval

    activities: list[_Activity] = []
    gc_events: list[_TimedEvent] = []
    ipc_events: list[_TimedEvent] = []

    for thread in profile.threads:
        worker = is_worker_thread(thread)
        deltas = thread.samples.thread_cpu_delta
        sample_time = 0.0
        for index in range(thread.samples.length):
            delta = deltas[index] if index < len(deltas) else None
            cpu = delta / 1000.0 if delta is not None and delta > 0 else interval
            if cpu > 0:
                activities.append(_Activity(thread.name, sample_time, sample_time + cpu, worker))
            sample_time += interval

        for marker in thread.markers:
            if marker.name in _GC_MARKERS:
                gc_events.append(_TimedEvent(marker.start_time, marker.duration, marker.name))
            if marker.category == "IPC" and _is_sync(marker.data):
                ipc_events.append(_TimedEvent(marker.start_time, marker.duration, thread.name))

    workers = [a for a in activities if a.is_worker]
    for gc in gc_events:
        affected: dict[str, None] = {}
        for activity in workers:
            if activity.start < gc.start + gc.duration and activity.end > gc.start:
                affected[activity.name] = None
        if affected:
            threads = list(affected)
            analysis.events.append(
                ContentionEvent(
                    type="gc_pause",
                    start_time=gc.start,
                    duration=gc.duration,
                    threads=threads,
                    description=f"{gc.label} paused {len(threads)} worker threads",
                )
            )
            analysis.gc_contention += 1
            analysis.total_impact_ms += gc.duration * len(threads)

    for event in _ipc_contention(ipc_events):
        analysis.events.append(event)
        analysis.ipc_contention += 1
        analysis.total_impact_ms += event.duration

    analysis.total_events = len(analysis.events)
    analysis.severity = _severity(analysis.total_impact_ms, profile_duration)

    if analysis.gc_contention > 5:
        analysis.recommendations.append(
            "High GC contention detected - consider reducing memory allocations in hot paths"
        )
    if analysis.ipc_contention > 5:
        analysis.recommendations.append(
            "Frequent sync IPC contention - consider using async messaging between threads"
        )
    if analysis.total_impact_ms > 100:
        analysis.recommendations.append(
            f"Total contention impact: {analysis.total_impact_ms:.1f}ms"
            " - significant opportunity for optimization"
        )
    if analysis.severity == "high":
        analysis.recommendations.append(
            "Consider profiling with GC/CC categories enabled for more detailed analysis"
        )

    analysis.events.sort(key=lambda e: e.duration, reverse=True)
    del analysis.events[_MAX_EVENTS:]
    return analysis


def format_contention_analysis(analysis: ContentionAnalysis) -> str:
    """Render a contention analysis as a human-readable report."""
    parts = [
        f"Contention Analysis ({analysis.total_events} events,"
        f" severity: {analysis.severity})\n",
        "=" * 60 + "\n\n",
        f"Total Impact: {analysis.total_impact_ms:.2f}ms\n",
        f"GC Contention Events: {analysis.gc_contention}\n",
        f"IPC Contention Events: {analysis.ipc_contention}\n",
        f"Lock Contention Events: {analysis.lock_contention}\n\n",
    ]

    if analysis.events:
        parts.append("Top Contention Events:\n")
        parts.append("-" * 60 + "\n")
        for e in analysis.events[:_MAX_DISPLAYED]:
            parts.append(
                f"  {e.start_time:.2f}ms: {e.type} ({e.duration:.2f}ms,"
                f" {len(e.threads)} threads)\n"
            )
        if len(analysis.events) > _MAX_DISPLAYED:
            parts.append(
                f"\n  ... and {len(analysis.events) - _MAX_DISPLAYED} more events\n"
            )
        parts.append("\n")

    if analysis.recommendations:
        parts.append("Recommendations:\n")
        parts.extend(f"  - {r}\n" for r in analysis.recommendations)

    return "".join(parts)
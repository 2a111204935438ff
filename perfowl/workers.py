"""Web worker thread utilisation and synchronisation analysis."""

from __future__ import annotations

from dataclasses import dataclass, field

from .profile import Profile, Thread
from .threads import CategoryStats, _category_breakdown, _category_names, _top_categories

_EXCLUDED_WORKER_PATTERNS = (
    "threadpoolforegroundworker",
    "threadpoolbackgroundworker",
    "compositortileworker",
    "audioworklet",
    "paintworklet",
    "v8:profevntproc",
)

_WEB_WORKER_PATTERNS = ("dom worker", "dedicatedworker", "sharedworker", "serviceworker")

_SYNC_WINDOW_MS = 10.0


@dataclass
class WorkerStats:
    """Analysis results for one worker thread."""

    thread_name: str
    thread_id: str = ""
    process_id: str = ""
    cpu_time_ms: float = 0.0
    idle_time_ms: float = 0.0
    active_percent: float = 0.0
    messages_sent: int = 0
    messages_received: int = 0
    sync_wait_count: int = 0
    sync_wait_time_ms: float = 0.0
    top_categories: list[CategoryStats] = field(default_factory=list)


@dataclass
class SyncPoint:
    """A synchronisation event involving several workers."""

    time: float
    type: str
    description: str
    threads: list[str]
    duration: float


@dataclass
class WorkerAnalysis:
    """Analysis results for all worker threads."""

    total_workers: int = 0
    active_workers: int = 0
    total_cpu_time_ms: float = 0.0
    total_idle_time_ms: float = 0.0
    overall_efficiency: float = 0.0
    workers: list[WorkerStats] = field(default_factory=list)
    sync_points: list[SyncPoint] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class _MessageEvent:
    time: float
    thread_name: str
    is_sync: bool
    duration: float


def is_worker_thread(thread: Thread) -> bool:
    """Whether a thread runs web workers rather than browser-internal work."""
    name = thread.name.lower()
    if any(pattern in name for pattern in _EXCLUDED_WORKER_PATTERNS):
        return False
    if any(pattern in name for pattern in _WEB_WORKER_PATTERNS):
        return True
    return "worker" in name and not thread.is_main_thread


def _is_sync(data: dict | None) -> bool:
    return bool(data) and data.get("sync") is True


def _find_sync_points(events: list[_MessageEvent]) -> list[SyncPoint]:
    events = sorted(events, key=lambda e: e.time)
    points: list[SyncPoint] = []
    i = 0
    while i < len(events):
        event = events[i]
        if not event.is_sync:
            i += 1
            continue

        involved = {event.thread_name: None}
        max_duration = event.duration
        for other in events[i + 1:]:
            if other.time - event.time >= _SYNC_WINDOW_MS:
                break
            if other.is_sync:
                involved[other.thread_name] = None
                max_duration = max(max_duration, other.duration)

        if len(involved) > 1:
            points.append(
                SyncPoint(
                    time=event.time,
                    type="sync_message",
                    description=f"Synchronous messaging between {len(involved)} workers",
                    threads=list(involved),
                    duration=max_duration,
                )
            )
            j = i + 1
            while j < len(events) and events[j].time < events[j - 1].time + _SYNC_WINDOW_MS:
                j += 1
            i = j
        else:
            i += 1
    return points


def analyze_workers(profile: Profile) -> WorkerAnalysis:
    """Analyse worker threads: CPU use, idleness, messaging and sync points."""
    analysis = WorkerAnalysis()
    category_names = _category_names(profile.meta.categories)
    interval = profile.meta.interval
    profile_duration = profile.duration_seconds() * 1000
    message_events: list[_MessageEvent] = []

    for thread in profile.threads:
        if not is_worker_thread(thread):
            continue

        cpu_time, by_category = _category_breakdown(thread, category_names, interval)
        stats = WorkerStats(
            thread_name=thread.name,
            thread_id=str(thread.tid),
            process_id=str(thread.pid),
            cpu_time_ms=cpu_time,
        )

        if profile_duration > 0:
            stats.idle_time_ms = max(0.0, profile_duration - cpu_time)
            stats.active_percent = (cpu_time / profile_duration) * 100

        for marker in thread.markers:
            if marker.name in ("JSActorMessage", "FrameMessage"):
                stats.messages_sent += 1
                sync = _is_sync(marker.data)
                if sync:
                    stats.sync_wait_count += 1
                    stats.sync_wait_time_ms += marker.duration
                message_events.append(
                    _MessageEvent(marker.start_time, thread.name, sync, marker.duration)
                )
            elif marker.name == "postMessage":
                stats.messages_sent += 1

            if marker.category == "IPC" and _is_sync(marker.data):
                stats.sync_wait_count += 1
                stats.sync_wait_time_ms += marker.duration

        stats.top_categories = _top_categories(by_category, cpu_time)

        analysis.workers.append(stats)
        analysis.total_cpu_time_ms += stats.cpu_time_ms
        analysis.total_idle_time_ms += stats.idle_time_ms

    analysis.total_workers = len(analysis.workers)
    analysis.active_workers = sum(1 for w in analysis.workers if w.active_percent > 5)

    total = analysis.total_cpu_time_ms + analysis.total_idle_time_ms
    if total > 0:
        analysis.overall_efficiency = (analysis.total_cpu_time_ms / total) * 100

    analysis.sync_points = _find_sync_points(message_events)

    if analysis.total_workers > 0 and analysis.active_workers == 0:
        analysis.warnings.append(
            "All worker threads appear idle - check if work is being dispatched"
        )

    for w in analysis.workers:
        if w.active_percent < 10 and w.cpu_time_ms > 0:
            analysis.warnings.append(
                f"Worker '{w.thread_name}' is mostly idle ({w.active_percent:.1f}% active)"
                " - possible worker starvation"
            )
        if w.sync_wait_time_ms > 100:
            analysis.warnings.append(
                f"Worker '{w.thread_name}' spent {w.sync_wait_time_ms:.1f}ms in synchronous"
                " waits - consider async alternatives"
            )

    if len(analysis.sync_points) > 5:
        analysis.warnings.append(
            f"Detected {len(analysis.sync_points)} synchronization points"
            " - workers may be contending for shared resources"
        )

    analysis.workers.sort(key=lambda w: w.cpu_time_ms, reverse=True)
    return analysis


def format_worker_analysis(analysis: WorkerAnalysis) -> str:
    """Render a worker analysis as a human-readable report."""
    parts = [
        f"Worker Thread Analysis ({analysis.total_workers} workers,"
        f" {analysis.active_workers} active)\n",
        "=" * 60 + "\n\n",
        f"Overall Efficiency: {analysis.overall_efficiency:.1f}%\n",
        f"Total CPU Time: {analysis.total_cpu_time_ms:.2f}ms\n",
        f"Total Idle Time: {analysis.total_idle_time_ms:.2f}ms\n\n",
    ]

    if analysis.workers:
        parts.append("Workers by CPU Time:\n")
        parts.append("-" * 60 + "\n")
        parts.append(f"{'Name':<25} {'CPU Time':>10} {'Idle Time':>10} {'Active%':>8}\n")
        parts.append("-" * 60 + "\n")
        for w in analysis.workers:
            name = w.thread_name if len(w.thread_name) <= 25 else w.thread_name[:22] + "..."
            parts.append(
                f"{name:<25} {w.cpu_time_ms:8.2f}ms {w.idle_time_ms:8.2f}ms"
                f" {w.active_percent:7.1f}%\n"
            )

    if analysis.sync_points:
        parts.append(f"\nSynchronization Points: {len(analysis.sync_points)}\n")

    if analysis.warnings:
        parts.append("\nWarnings:\n")
        parts.extend(f"  - {w}\n" for w in analysis.warnings)

    return "".join(parts)
"""Per-thread CPU, category and wake-up analysis."""

from __future__ import annotations

from dataclasses import dataclass, field
from itertools import pairwise, zip_longest
from typing import Iterator

from .profile import Category, Profile, Thread


@dataclass
class CategoryStats:
    """Time spent in one category."""

    name: str
    time_ms: float
    percent: float


@dataclass
class ThreadStats:
    """Analysis results for a single thread."""

    name: str
    process_type: str = ""
    process_name: str = ""
    pid: str = ""
    tid: str = ""
    is_main_thread: bool = False
    cpu_time_ms: float = 0.0
    sample_count: int = 0
    marker_count: int = 0
    wake_count: int = 0
    avg_wake_interval_ms: float = 0.0
    top_categories: list[CategoryStats] = field(default_factory=list)


@dataclass
class ThreadAnalysis:
    """Analysis results for every thread of a profile."""

    total_threads: int = 0
    main_thread_count: int = 0
    parent_process_threads: int = 0
    content_process_threads: int = 0
    threads: list[ThreadStats] = field(default_factory=list)


def _sample_costs(thread: Thread, interval: float) -> Iterator[tuple[int, float]]:
    """Yield (stack index, CPU milliseconds) for each sample of a thread."""
    samples = thread.samples
    for stack, delta, _ in zip_longest(samples.stack, samples.thread_cpu_delta, samples.time):
        cpu = delta / 1000.0 if delta is not None and delta > 0 else interval
        yield (stack if stack is not None else -1), cpu


def _category_names(categories: list[Category]) -> dict[int, str]:
    return {index: category.name for index, category in enumerate(categories)}


def _category_breakdown(
    thread: Thread, category_names: dict[int, str], interval: float
) -> tuple[float, dict[str, float]]:
    """Total CPU time of a thread and the share of it per category."""
    total = 0.0
    by_category: dict[str, float] = {}
    stack_categories = thread.stack_table.category
    for stack, cpu in _sample_costs(thread, interval):
        total += cpu
        if 0 <= stack < len(stack_categories):
            name = category_names.get(stack_categories[stack]) or "Unknown"
            by_category[name] = by_category.get(name, 0.0) + cpu
    return total, by_category


def _top_categories(
    by_category: dict[str, float], total: float, limit: int = 5
) -> list[CategoryStats]:
    stats = [
        CategoryStats(name=name, time_ms=time, percent=(time / total) * 100 if total > 0 else 0.0)
        for name, time in by_category.items()
    ]
    stats.sort(key=lambda c: c.time_ms, reverse=True)
    return stats[:limit]


def _analyze_thread(thread: Thread, category_names: dict[int, str], interval: float) -> ThreadStats:
    cpu_time, by_category = _category_breakdown(thread, category_names, interval)

    awake_times = sorted(
        m.start_time for m in thread.markers if m.name == "Awake" or m.type == "Awake"
    )
    avg_wake = 0.0
    if len(awake_times) > 1:
        avg_wake = sum(b - a for a, b in pairwise(awake_times)) / (len(awake_times) - 1)

    return ThreadStats(
        name=thread.name,
        process_type=thread.process_type,
        process_name=thread.process_name,
        pid=str(thread.pid),
        tid=str(thread.tid),
        is_main_thread=thread.is_main_thread,
        cpu_time_ms=cpu_time,
        sample_count=thread.samples.length,
        marker_count=len(thread.markers),
        wake_count=len(awake_times),
        avg_wake_interval_ms=avg_wake,
        top_categories=_top_categories(by_category, cpu_time),
    )


def analyze_threads(profile: Profile) -> ThreadAnalysis:
    """Analyse every thread and return them sorted by CPU time, highest first."""
    category_names = _category_names(profile.meta.categories)
    interval = profile.meta.interval
    stats = [_analyze_thread(t, category_names, interval) for t in profile.threads]

    analysis = ThreadAnalysis(total_threads=len(stats))
    for s in stats:
        if s.is_main_thread:
            analysis.main_thread_count += 1
        if s.process_type in ("default", "parent"):
            analysis.parent_process_threads += 1
        elif s.process_type in ("tab", "web"):
            analysis.content_process_threads += 1

    stats.sort(key=lambda s: s.cpu_time_ms, reverse=True)
    analysis.threads = stats
    return analysis
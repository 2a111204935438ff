import pytest

from perfowl.profile import (
    Category,
    Meta,
    ParsedMarker,
    Profile,
    Samples,
    StackTable,
    Thread,
)
from perfowl.threads import analyze_threads

CATEGORIES = [Category("Other"), Category("JavaScript"), Category("Layout")]


def _thread(name, samples=0, main=False, process_type="", markers=None, stack_categories=None):
    return Thread(
        name=name,
        is_main_thread=main,
        process_type=process_type,
        samples=Samples(
            stack=[0] * samples if stack_categories else [None] * samples,
            time=[float(i) for i in range(samples)],
            thread_cpu_delta=[1000] * samples,
        ),
        markers=markers or [],
        stack_table=StackTable(
            frame=[0] * len(stack_categories or []), category=list(stack_categories or [])
        ),
    )


def _profile(*threads):
    return Profile(
        meta=Meta(profiling_start_time=0, profiling_end_time=1000, categories=CATEGORIES),
        threads=list(threads),
    )


def _profile_with_workers(count):
    main = _thread("GeckoMain", samples=50, main=True)
    workers = [_thread("DOM Worker", samples=100 + i * 10) for i in range(count)]
    return _profile(main, *workers)


def test_empty_profile():
    result = analyze_threads(_profile())
    assert result.total_threads == 0
    assert result.main_thread_count == 0
    assert result.threads == []


def test_single_main_thread():
    result = analyze_threads(_profile(_thread("GeckoMain", samples=10, main=True)))
    assert result.total_threads == 1
    assert result.main_thread_count == 1


def test_multiple_threads():
    result = analyze_threads(_profile_with_workers(3))
    assert result.total_threads == 4


def test_main_thread_counting():
    result = analyze_threads(
        _profile(
            _thread("GeckoMain", main=True),
            _thread("ContentMain", main=True),
            _thread("Worker"),
        )
    )
    assert result.main_thread_count == 2


def test_process_type_counting():
    result = analyze_threads(
        _profile(
            _thread("GeckoMain", main=True, process_type="default"),
            _thread("ContentMain", process_type="tab"),
            _thread("WebMain", process_type="web"),
        )
    )
    assert result.parent_process_threads == 1
    assert result.content_process_threads == 2


def test_cpu_time_calculation():
    result = analyze_threads(_profile_with_workers(1))
    workers = [t for t in result.threads if t.name == "DOM Worker"]
    assert len(workers) == 1
    assert workers[0].cpu_time_ms > 0


def test_cpu_time_uses_interval_without_delta():
    thread = Thread(name="GeckoMain", samples=Samples(time=[0.0, 1.0, 2.0, 3.0]))
    profile = Profile(meta=Meta(interval=2.0), threads=[thread])
    result = analyze_threads(profile)
    assert result.threads[0].cpu_time_ms == pytest.approx(8.0)
    assert result.threads[0].sample_count == 4


def test_sorted_by_cpu_time():
    result = analyze_threads(_profile_with_workers(3))
    times = [t.cpu_time_ms for t in result.threads]
    assert times == sorted(times, reverse=True)


def test_wake_pattern():
    markers = [ParsedMarker(name="Awake", start_time=t) for t in (30.0, 0.0, 10.0)]
    profile = _profile(
        _thread("GeckoMain", samples=200, main=True, markers=markers),
        _thread("Other", samples=5),
    )
    result = analyze_threads(profile)
    main = result.threads[0]
    assert main.wake_count == 3
    assert main.avg_wake_interval_ms == pytest.approx(15.0)
    assert main.marker_count == 3


def test_top_categories():
    profile = _profile(
        _thread("GeckoMain", samples=20, main=True, stack_categories=[1]),
        _thread("Idle", samples=2),
    )
    result = analyze_threads(profile)
    main = result.threads[0]
    assert [c.name for c in main.top_categories] == ["JavaScript"]
    assert main.top_categories[0].percent == pytest.approx(100.0)


def test_unknown_category_name():
    thread = _thread("GeckoMain", samples=3, main=True, stack_categories=[42])
    result = analyze_threads(_profile(thread))
    assert result.threads[0].top_categories[0].name == "Unknown"
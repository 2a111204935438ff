import pytest

from perfowl.compare import (
    compare_profiles,
    extract_summary,
    format_percent,
    percent_change,
)
from perfowl.profile import ExtensionTable, Meta, ParsedMarker, Profile, Samples, Thread


def make_thread(name="GeckoMain", main=False, markers=None, samples=3):
    return Thread(
        name=name,
        is_main_thread=main,
        samples=Samples(stack=[0] * samples, thread_cpu_delta=[1000.0] * samples),
        markers=list(markers or []),
    )


def make_profile(duration=1000.0, threads=None, extensions=None):
    meta = Meta(profiling_start_time=0.0, profiling_end_time=duration)
    if extensions:
        meta.extensions = extensions
    return Profile(meta=meta, threads=list(threads if threads is not None else [make_thread(main=True)]))


def gc_markers(count, duration=10.0):
    return [
        ParsedMarker(name="GCMajor", type="GCMajor", category="GC / CC",
                     start_time=i * 50.0, duration=duration)
        for i in range(count)
    ]


def test_same_profile_has_no_improvements_or_regressions():
    profile = make_profile()
    result = compare_profiles(profile, profile)
    assert result.improved == []
    assert result.regressed == []
    assert result.unchanged == ["Duration similar", "GC time similar"]


def test_duration_improved():
    result = compare_profiles(make_profile(2000), make_profile(1000))
    assert result.changes.duration_change_ms == -1000
    assert result.changes.duration_change_percent == -50
    assert "Duration reduced by 50.0%" in result.improved


def test_duration_regressed():
    result = compare_profiles(make_profile(1000), make_profile(2000))
    assert result.changes.duration_change_ms == 1000
    assert "Duration increased by 100.0%" in result.regressed


def test_gc_improved():
    baseline = make_profile(threads=[make_thread(main=True, markers=gc_markers(4))])
    comparison = make_profile()
    result = compare_profiles(baseline, comparison)
    assert result.baseline.gc_major_count == 4
    assert result.comparison.gc_major_count == 0
    assert result.baseline.gc_total_time_ms == 40
    assert "GC time reduced by 100.0%" in result.improved
    assert "Fewer major GC events" in result.improved


def test_gc_regressed_from_zero():
    baseline = make_profile()
    comparison = make_profile(threads=[make_thread(main=True, markers=gc_markers(3))])
    result = compare_profiles(baseline, comparison)
    assert "GC time increased by 100.0%" in result.regressed
    assert "More major GC events" in result.regressed


def test_summaries_are_named():
    result = compare_profiles(make_profile(), make_profile())
    assert result.baseline.name == "baseline"
    assert result.comparison.name == "comparison"


def test_extract_summary_basic_fields():
    profile = make_profile(1000, threads=[make_thread(main=True), make_thread("Worker")])
    summary = extract_summary(profile, "test")
    assert summary.name == "test"
    assert summary.duration_ms == 1000
    assert summary.thread_count == 2
    assert summary.total_samples == 6


def test_extract_summary_counts_markers():
    markers = [
        ParsedMarker(name="IPC", type="IPC", data={"sync": True}),
        ParsedMarker(name="IPC", type="IPC", data={"sync": False}),
        ParsedMarker(name="Reflow", type="Reflow"),
        ParsedMarker(name="ForceReflow", type="ForceReflow"),
        ParsedMarker(name="GCMinor", type="GCMinor", duration=2.5),
        ParsedMarker(name="Script", type="Script", category="JavaScript", duration=60),
        ParsedMarker(name="ev", type="eventProcessing", duration=51),
        ParsedMarker(name="Script", type="Script", category="JavaScript", duration=50),
    ]
    extensions = ExtensionTable(id=["a", "b"], name=["A", "B"], base_url=["x", "y"])
    profile = make_profile(threads=[make_thread(main=True, markers=markers)], extensions=extensions)
    summary = extract_summary(profile, "s")
    assert summary.sync_ipc_count == 1
    assert summary.layout_count == 2
    assert summary.gc_minor_count == 1
    assert summary.gc_total_time_ms == 2.5
    assert summary.long_task_count == 2
    assert summary.extension_count == 2


def test_extract_summary_no_duration_when_end_not_after_start():
    profile = make_profile(0)
    assert extract_summary(profile, "x").duration_ms == 0


def test_layout_regression_threshold():
    many = [ParsedMarker(name="Reflow", type="Reflow") for _ in range(6)]
    result = compare_profiles(make_profile(), make_profile(threads=[make_thread(markers=many)]))
    assert result.changes.layout_change == 6
    assert "More layout operations" in result.regressed


@pytest.mark.parametrize(
    "baseline, comparison, expected",
    [(100, 150, 50), (100, 50, -50), (100, 100, 0), (0, 100, 100), (0, 0, 0)],
)
def test_percent_change(baseline, comparison, expected):
    assert percent_change(baseline, comparison) == expected


@pytest.mark.parametrize("value, expected", [(50, "50.0%"), (-25, "25.0%"), (0, "0.0%")])
def test_format_percent(value, expected):
    assert format_percent(value) == expected
"""Estimation of how well work spreads across worker threads."""

from __future__ import annotations

from dataclasses import dataclass, field

from .profile import Profile
from .threads import _sample_costs
from .workers import is_worker_thread


@dataclass
class ScalingAnalysis:
    """Parallel scaling metrics of one profile."""

    worker_count: int = 0
    total_work_ms: float = 0.0
    wall_clock_ms: float = 0.0
    theoretical_speedup: float = 0.0
    actual_speedup: float = 0.0
    efficiency: float = 0.0
    bottleneck_type: str = ""
    recommendations: list[str] = field(default_factory=list)


@dataclass
class ScalingComparison:
    """Scaling of a baseline and a comparison profile side by side."""

    baseline: ScalingAnalysis
    comparison: ScalingAnalysis
    improvement: float = 0.0
    analysis: str = ""


_BOTTLENECKS = (
    (30, "serialization", "Very low parallel efficiency - work may be serialized on main thread"),
    (50, "contention", "Medium parallel efficiency - possible contention or synchronization overhead"),
    (70, "overhead", "Good parallel efficiency with some overhead - consider reducing sync points"),
    (90, "minimal", "Good parallel efficiency - minor optimizations possible"),
)


def analyze_scaling(profile: Profile) -> ScalingAnalysis:
    """Estimate speedup and parallel efficiency from worker and main-thread CPU time."""
    analysis = ScalingAnalysis(wall_clock_ms=profile.duration_seconds() * 1000)
    interval = profile.meta.interval
    worker_cpu = 0.0
    main_cpu = 0.0

    for thread in profile.threads:
        cpu = sum(cost for _, cost in _sample_costs(thread, interval))
        if is_worker_thread(thread):
            analysis.worker_count += 1
            worker_cpu += cpu
        elif thread.is_main_thread:
            main_cpu = cpu

    analysis.total_work_ms = worker_cpu + main_cpu

    if analysis.wall_clock_ms > 0 and analysis.worker_count > 0:
        speedup = analysis.total_work_ms / analysis.wall_clock_ms
        analysis.theoretical_speedup = speedup
        analysis.actual_speedup = speedup
        analysis.efficiency = min(100.0, (speedup / analysis.worker_count) * 100)

    for limit, kind, advice in _BOTTLENECKS:
        if analysis.efficiency < limit:
            analysis.bottleneck_type = kind
            analysis.recommendations.append(advice)
            break
    else:
        analysis.bottleneck_type = "none"
        analysis.recommendations.append("Excellent parallel efficiency")

    if analysis.worker_count == 0:
        analysis.recommendations.append(
            "No worker threads detected - consider using Web Workers for parallel processing"
        )
    elif analysis.worker_count == 1 and analysis.total_work_ms > 100:
        analysis.recommendations.append(
            "Only 1 worker detected - additional workers may improve throughput"
        )
    elif analysis.worker_count > 4 and analysis.efficiency < 50:
        analysis.recommendations.append(
            f"{analysis.worker_count} workers with low efficiency - consider reducing"
            " worker count or improving work distribution"
        )

    return analysis


def compare_scaling(baseline: Profile, comparison: Profile) -> ScalingComparison:
    """Compare the scaling of two profiles and describe what changed."""
    base = analyze_scaling(baseline)
    comp = analyze_scaling(comparison)
    result = ScalingComparison(baseline=base, comparison=comp)

    if base.efficiency > 0:
        result.improvement = ((comp.efficiency - base.efficiency) / base.efficiency) * 100

    notes: list[str] = []
    if comp.worker_count != base.worker_count:
        notes.append(f"Worker count changed from {base.worker_count} to {comp.worker_count}. ")

    eff_diff = comp.efficiency - base.efficiency
    if eff_diff > 5:
        notes.append(f"Parallel efficiency improved by {eff_diff:.1f}%. ")
    elif eff_diff < -5:
        notes.append(f"Parallel efficiency decreased by {-eff_diff:.1f}%. ")
    else:
        notes.append("Parallel efficiency remained stable. ")

    wall_diff = comp.wall_clock_ms - base.wall_clock_ms
    wall_percent = (wall_diff / base.wall_clock_ms) * 100 if base.wall_clock_ms > 0 else 0.0
    if wall_percent < -5:
        notes.append(
            f"Wall clock time improved by {-wall_percent:.1f}% ({-wall_diff:.1f}ms faster). "
        )
    elif wall_percent > 5:
        notes.append(
            f"Wall clock time regressed by {wall_percent:.1f}% ({wall_diff:.1f}ms slower). "
        )

    if comp.bottleneck_type != base.bottleneck_type:
        notes.append(
            f"Bottleneck changed from '{base.bottleneck_type}' to '{comp.bottleneck_type}'. "
        )

    result.analysis = "".join(notes) or "No significant changes detected between profiles."
    return result


def format_scaling_analysis(analysis: ScalingAnalysis) -> str:
    """Render a scaling analysis as a human-readable report."""
    parts = [
        f"Scaling Analysis ({analysis.worker_count} workers)\n",
        "=" * 60 + "\n\n",
        f"Wall Clock Time:       {analysis.wall_clock_ms:.2f}ms\n",
        f"Total CPU Work:        {analysis.total_work_ms:.2f}ms\n",
        f"Theoretical Speedup:   {analysis.theoretical_speedup:.2f}x\n",
        f"Actual Speedup:        {analysis.actual_speedup:.2f}x\n",
        f"Parallel Efficiency:   {analysis.efficiency:.1f}%\n",
        f"Bottleneck Type:       {analysis.bottleneck_type}\n\n",
    ]
    if analysis.recommendations:
        parts.append("Recommendations:\n")
        parts.extend(f"  - {r}\n" for r in analysis.recommendations)
    return "".join(parts)


def format_scaling_comparison(comparison: ScalingComparison) -> str:
    """Render a scaling comparison as a human-readable table."""
    base, comp = comparison.baseline, comparison.comparison
    return "".join(
        [
            "Scaling Comparison\n",
            "=" * 60 + "\n\n",
            "                        Baseline    Comparison    Change\n",
            "-" * 60 + "\n",
            f"Worker Count:           {base.worker_count:8d}    {comp.worker_count:10d}"
            f"    {comp.worker_count - base.worker_count:+d}\n",
            f"Wall Clock (ms):        {base.wall_clock_ms:8.1f}    {comp.wall_clock_ms:10.1f}"
            f"    {comp.wall_clock_ms - base.wall_clock_ms:+.1f}\n",
            f"Total Work (ms):        {base.total_work_ms:8.1f}    {comp.total_work_ms:10.1f}"
            f"    {comp.total_work_ms - base.total_work_ms:+.1f}\n",
            f"Efficiency (%):         {base.efficiency:8.1f}    {comp.efficiency:10.1f}"
            f"    {comp.efficiency - base.efficiency:+.1f}\n",
            f"\nBottleneck:             {base.bottleneck_type:<10}  {comp.bottleneck_type:<10}\n",
            f"\nOverall Improvement: {comparison.improvement:+.1f}%\n\n",
            "Analysis:\n",
            f"  {comparison.analysis}\n",
        ]
    )
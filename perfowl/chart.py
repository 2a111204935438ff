"""SVG line charts of how batch metrics scale with the worker count."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

_MARGIN_TOP = 60
_MARGIN_RIGHT = 100
_MARGIN_BOTTOM = 70
_MARGIN_LEFT = 80

_DEFAULT_COLORS = {
    "Chrome": "#4285F4",
    "Firefox": "#FF6611",
}

_FALLBACK_COLORS = ("#4285F4", "#FF6611", "#34A853", "#EA4335", "#FBBC05")

_STYLE = """<style>
  .chart-bg { fill: #fafafa; }
  .axis { stroke: #333; stroke-width: 1.5; fill: none; }
  .grid { stroke: #e0e0e0; stroke-width: 0.5; stroke-dasharray: 4,4; }
  .title { font: bold 18px system-ui, -apple-system, sans-serif; fill: #222; }
  .axis-label { font: 13px system-ui, -apple-system, sans-serif; fill: #555; }
  .axis-title { font: 13px system-ui, -apple-system, sans-serif; fill: #333; }
  .legend-text { font: 12px system-ui, -apple-system, sans-serif; fill: #333; }
  .data-line { fill: none; stroke-width: 2.5; stroke-linecap: round; stroke-linejoin: round; }
  .data-point { stroke: white; stroke-width: 2; }
</style>
"""


class ChartType(str, Enum):
    """The metric a scaling chart plots."""

    WALL_CLOCK = "wall_clock"
    OPERATION_TIME = "operation_time"
    EFFICIENCY = "efficiency"
    SPEEDUP = "speedup"
    CRYPTO_TIME = "crypto_time"


@dataclass
class DataPoint:
    """One x, y coordinate."""

    x: float
    y: float


@dataclass
class DataSeries:
    """One line of a chart."""

    name: str
    color: str = ""
    points: list[DataPoint] = field(default_factory=list)


@dataclass
class ChartConfig:
    """Appearance of a chart; zero sizes fall back to 800x450."""

    width: int = 0
    height: int = 0
    title: str = ""
    x_axis_label: str = ""
    y_axis_label: str = ""
    show_legend: bool = False
    show_grid: bool = False


@dataclass
class ProfileDataPoint:
    """Metrics of one profile in a batch, keyed by its worker count."""

    worker_count: int = 0
    wall_clock_ms: float = 0.0
    operation_time_ms: float = 0.0
    efficiency: float = 0.0
    speedup: float = 0.0
    crypto_time_ms: float = 0.0


@dataclass
class BatchSummary:
    """Overview of a batch of analysed profiles."""

    total_profiles: int = 0
    labels: list[str] = field(default_factory=list)
    best_workers: dict[str, int] = field(default_factory=dict)
    min_wall_clock: dict[str, float] = field(default_factory=dict)


@dataclass
class BatchAnalysisResult:
    """Per-label series of profile data points."""

    summary: BatchSummary = field(default_factory=BatchSummary)
    series: dict[str, list[ProfileDataPoint]] = field(default_factory=dict)


_Metric = Callable[[ProfileDataPoint], float]

_CHARTS: dict[ChartType, tuple[str, str, _Metric]] = {
    ChartType.WALL_CLOCK: (
        "Wall Clock Time vs Worker Count", "Time (ms)", lambda p: p.wall_clock_ms
    ),
    ChartType.OPERATION_TIME: (
        "Operation Time vs Worker Count", "Time (ms)", lambda p: p.operation_time_ms
    ),
    ChartType.EFFICIENCY: (
        "Parallel Efficiency vs Worker Count", "Efficiency (%)", lambda p: p.efficiency
    ),
    ChartType.SPEEDUP: ("Speedup vs Worker Count", "Speedup (x)", lambda p: p.speedup),
    ChartType.CRYPTO_TIME: (
        "Crypto Time vs Worker Count", "Time (ms)", lambda p: p.crypto_time_ms
    ),
}


def build_series(
    result: BatchAnalysisResult, metric: Callable[[ProfileDataPoint], float]
) -> list[DataSeries]:
    """One series per label that has points, plotting `metric` over worker count."""
    series: list[DataSeries] = []
    for label in result.summary.labels:
        points = result.series.get(label)
        if not points:
            continue
        color = _DEFAULT_COLORS.get(label) or _FALLBACK_COLORS[
            len(series) % len(_FALLBACK_COLORS)
        ]
        series.append(
            DataSeries(
                name=label,
                color=color,
                points=[DataPoint(float(p.worker_count), metric(p)) for p in points],
            )
        )
    return series


def generate_scaling_chart(
    result: BatchAnalysisResult, chart_type: ChartType | str
) -> str:
    """An SVG chart of one metric; unknown chart types plot wall clock time."""
    try:
        kind = ChartType(chart_type)
    except ValueError:
        kind = ChartType.WALL_CLOCK
    title, y_label, metric = _CHARTS[kind]
    config = ChartConfig(
        width=800,
        height=450,
        title=title,
        x_axis_label="Worker Count",
        y_axis_label=y_label,
        show_legend=True,
        show_grid=True,
    )
    return generate_svg(config, build_series(result, metric))


def calculate_ranges(series: list[DataSeries]) -> tuple[float, float, float, float]:
    """Minimum and maximum x and y over all points; defaults when there are none."""
    points = [p for s in series for p in s.points]
    if not points:
        return 0.0, 12.0, 0.0, 100.0
    xs = [p.x for p in points]
    ys = [p.y for p in points]
    return min(xs), max(xs), min(ys), max(ys)


def calculate_ticks(minimum: float, maximum: float, count: int) -> list[float]:
    """Rounded tick values covering [minimum, maximum] in about `count` steps."""
    if maximum <= minimum:
        return [minimum]

    step = (maximum - minimum) / count
    magnitude = math.pow(10, math.floor(math.log10(step)))
    normalized = step / magnitude
    if normalized <= 1.5:
        nice_step = magnitude
    elif normalized <= 3:
        nice_step = 2 * magnitude
    elif normalized <= 7:
        nice_step = 5 * magnitude
    else:
        nice_step = 10 * magnitude

    ticks: list[float] = []
    tick = math.ceil(minimum / nice_step) * nice_step
    while tick <= maximum:
        ticks.append(tick)
        tick += nice_step
    return ticks


def calculate_x_ticks(minimum: float, maximum: float) -> list[float]:
    """Integer ticks for worker counts, thinned out on wide ranges."""
    start = float(math.ceil(minimum))
    end = float(math.floor(maximum))
    span = end - start
    step = 1.0
    if span > 12:
        step = 2.0
    if span > 20:
        step = 5.0

    ticks: list[float] = []
    x = start
    while x <= end:
        ticks.append(x)
        x += step
    return ticks


def format_number(n: float) -> str:
    """A short axis label for a number."""
    if n == 0:
        return "0"
    magnitude = abs(n)
    if magnitude >= 100:
        return f"{n:.0f}"
    if magnitude >= 1:
        return f"{n:.1f}"
    return f"{n:.2f}"


def generate_svg(config: ChartConfig, series: list[DataSeries]) -> str:
    """Render data series as an SVG line chart."""
    width = config.width or 800
    height = config.height or 450
    chart_width = width - _MARGIN_LEFT - _MARGIN_RIGHT
    chart_height = height - _MARGIN_TOP - _MARGIN_BOTTOM
    bottom = height - _MARGIN_BOTTOM

    x_min, x_max, y_min, y_max = calculate_ranges(series)
    y_range = y_max - y_min
    if y_range == 0:
        y_range = 1
    y_min = max(0.0, y_min - y_range * 0.05)
    y_max = y_max + y_range * 0.05

    def scale_x(x: float) -> float:
        if x_max == x_min:
            return _MARGIN_LEFT + chart_width / 2
        return _MARGIN_LEFT + (x - x_min) / (x_max - x_min) * chart_width

    def scale_y(y: float) -> float:
        if y_max == y_min:
            return bottom - chart_height / 2
        return bottom - (y - y_min) / (y_max - y_min) * chart_height

    parts = [
        '<?xml version="1.0" encoding="UTF-8"?>\n',
        f'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 {width} {height}"'
        f' width="{width}" height="{height}">\n',
        _STYLE,
        f'<rect class="chart-bg" x="0" y="0" width="{width}" height="{height}"/>\n',
    ]

    if config.title:
        parts.append(
            f'<text class="title" x="{width // 2}" y="35" text-anchor="middle">'
            f"{config.title}</text>\n"
        )

    y_ticks = calculate_ticks(y_min, y_max, 5)
    if config.show_grid:
        for tick in y_ticks:
            y = scale_y(tick)
            parts.append(
                f'<line class="grid" x1="{_MARGIN_LEFT}" y1="{y:.1f}"'
                f' x2="{width - _MARGIN_RIGHT}" y2="{y:.1f}"/>\n'
            )

    parts.append(
        f'<line class="axis" x1="{_MARGIN_LEFT}" y1="{bottom}"'
        f' x2="{width - _MARGIN_RIGHT}" y2="{bottom}"/>\n'
    )
    parts.append(
        f'<line class="axis" x1="{_MARGIN_LEFT}" y1="{_MARGIN_TOP}"'
        f' x2="{_MARGIN_LEFT}" y2="{bottom}"/>\n'
    )

    for x in calculate_x_ticks(x_min, x_max):
        parts.append(
            f'<text class="axis-label" x="{scale_x(x):.1f}" y="{bottom + 20}"'
            f' text-anchor="middle">{x:.0f}</text>\n'
        )

    parts.append(
        f'<text class="axis-title" x="{width // 2}" y="{height - 15}"'
        f' text-anchor="middle">{config.x_axis_label}</text>\n'
    )

    for tick in y_ticks:
        parts.append(
            f'<text class="axis-label" x="{_MARGIN_LEFT - 10}" y="{scale_y(tick):.1f}"'
            f' text-anchor="end" dominant-baseline="middle">{format_number(tick)}</text>\n'
        )

    mid_y = (height - _MARGIN_TOP - _MARGIN_BOTTOM) // 2 + _MARGIN_TOP
    parts.append(
        f'<text class="axis-title" x="20" y="{mid_y}" text-anchor="middle"'
        f' transform="rotate(-90, 20, {mid_y})">{config.y_axis_label}</text>\n'
    )

    for s in series:
        if not s.points:
            continue
        coords = [(scale_x(p.x), scale_y(p.y)) for p in s.points]
        path = " ".join(
            f"{'M' if i == 0 else 'L'}{x:.1f},{y:.1f}" for i, (x, y) in enumerate(coords)
        )
        parts.append(f'<path class="data-line" stroke="{s.color}" d="{path}"/>\n')
        for x, y in coords:
            parts.append(
                f'<circle class="data-point" cx="{x:.1f}" cy="{y:.1f}" r="5"'
                f' fill="{s.color}"/>\n'
            )

    if config.show_legend and series:
        legend_x = width - _MARGIN_RIGHT + 15
        legend_y = _MARGIN_TOP + 10
        for i, s in enumerate(series):
            y = legend_y + i * 25
            parts.append(
                f'<line x1="{legend_x}" y1="{y}" x2="{legend_x + 20}" y2="{y}"'
                f' stroke="{s.color}" stroke-width="3"/>\n'
            )
            parts.append(
                f'<circle cx="{legend_x + 10}" cy="{y}" r="4" fill="{s.color}"'
                f' stroke="white" stroke-width="1"/>\n'
            )
            parts.append(
                f'<text class="legend-text" x="{legend_x + 28}" y="{y}"'
                f' dominant-baseline="middle">{s.name}</text>\n'
            )

    parts.append("</svg>")
    return "".join(parts)
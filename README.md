# perfowl

Analyses of sampled browser performance profiles. You describe a profile
with the dataclasses in `perfowl.profile` (`Profile`, `Meta`, `Thread`,
`Samples`, `ParsedMarker` and the lookup tables). Then you run the analysis
you need. Each analysis returns a dataclass. Most analyses also have a
formatter that turns the result into a plain-text report.

## Installing

```
pip install .
```

The package has no runtime dependencies.

## Analyses

- `perfowl.threads.analyze_threads(profile)` gives, for each thread, its CPU time, sample and marker counts, `Awake` wake-ups with the average interval between them, and its top five categories. Threads come sorted by CPU time.
- `perfowl.workers.analyze_workers(profile)` covers web worker threads, chosen by `is_worker_thread`. It reports CPU and idle time, active percentage, messages, synchronous waits and sync points between workers, and adds warnings. `format_worker_analysis` renders the result as text.
- `perfowl.compare.compare_profiles(baseline, comparison)` summarises both profiles with `extract_summary` and computes the deltas. It sorts the findings into `improved`, `regressed` and `unchanged`, using a 5% threshold for duration and GC time.
- `perfowl.contention.analyze_contention(profile)` finds GC markers that overlap worker activity and clusters of synchronous IPC within 10 ms. It rates the severity and gives recommendations. `format_contention_analysis` renders the result as text.
- `perfowl.crypto.analyze_crypto(profile)` attributes leaf-frame samples to crypto functions, files, resources or crypto libraries. It breaks the time down by operation, algorithm and thread, flags work that appears serialized, and warns about SHA-1 and MD5. `format_crypto_analysis` renders the result as text.
- `perfowl.extensions.analyze_extensions(profile)` matches markers to installed extensions (`match_extension`). It counts DOM events and IPC messages, keeps the top markers, and rates impact with `calculate_impact_score`.
- `perfowl.jscrypto.analyze_js_crypto(profile)` covers crypto work in JavaScript resources and workers, including OpenPGP code inside bundles. It gives the time per resource, per function and per thread, along with recommendations. `format_js_crypto_analysis` renders the result as text.
- `perfowl.delimiters` collects markers that delimit operations (`get_delimiter_markers`, `get_delimiter_markers_report`). It measures the time between them with `measure_operation`, `measure_operation_last`, `measure_operation_advanced` (which takes `MeasureOptions`) and `measure_operation_by_index`. Patterns take the form `"Type"` or `"Type:subtype"`. When no matching markers exist, or an index is out of range, these functions raise `MeasurementError`, which is a `ValueError`.
- `perfowl.scaling.analyze_scaling(profile)` estimates speedup, parallel efficiency and the likely bottleneck. `compare_scaling(baseline, comparison)` puts two profiles side by side. Both results have formatters.
- `perfowl.chart.generate_scaling_chart(result, chart_type)` renders a `BatchAnalysisResult` as an SVG line chart. The metric is one of the `ChartType` values: wall clock, operation time, efficiency, speedup or crypto time, and any other value gives a wall clock chart. `generate_svg(config, series)` draws arbitrary `DataSeries` with a `ChartConfig`.

## Example

```python
from perfowl.profile import Meta, Profile, Samples, Thread
from perfowl.workers import analyze_workers, format_worker_analysis

worker = Thread(
    name="DOM Worker",
    samples=Samples(time=[0.0, 1.0, 2.0], thread_cpu_delta=[1000, 1000, 1000]),
)
profile = Profile(
    meta=Meta(interval=1.0, profiling_start_time=0.0, profiling_end_time=1000.0),
    threads=[worker],
)
print(format_worker_analysis(analyze_workers(profile)))
```

## What it does not do

- The package does not read profile files. It also does not resolve raw marker tables into `ParsedMarker` objects. You build `Profile` objects yourself.
- It has no command-line tool or server.
- The charts need a `BatchAnalysisResult` that you fill in yourself. Nothing in the package builds one from a set of profiles.

## Running the tests

```
pip install .[test]
pytest
```
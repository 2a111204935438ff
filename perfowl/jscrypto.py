"""Analysis of cryptographic work done by JavaScript code and crypto workers."""

from __future__ import annotations

from dataclasses import dataclass, field

from .crypto import _indexed_strings, is_crypto_function
from .profile import Profile, Thread
from .threads import _sample_costs

_MAX_TOP_FUNCTIONS = 30
_MAX_DISPLAYED_RESOURCES = 10
_MAX_DISPLAYED_FUNCTIONS = 15
_UNKNOWN = "(unknown)"
_EXTENSION_SCHEMES = ("moz-extension://", "chrome-extension://")

_CRYPTO_RESOURCE_PATTERNS = (
    "decrypt",
    "encrypt",
    "crypto",
    "seipd",
    "openpgp",
    "pgp",
    "aes",
    "rsa",
    "cipher",
    "webcrypto",
)

_OPENPGP_FUNCTION_PATTERNS = (
    "openpgp",
    "decryptwithsessionkey",
    "decryptmetadatawithsessionkey",
    "initializesessionkeys",
    "parsesessionkey",
    "seipdpacket",
    "symencryptedintegrityprotecteddata",
)


@dataclass
class JSCryptoResource:
    """A JavaScript file or worker doing crypto work on one thread."""

    name: str
    url: str = ""
    total_time: float = 0.0
    sample_count: int = 0
    thread_name: str = ""


@dataclass
class JSCryptoFunction:
    """A crypto function inside a JavaScript resource."""

    name: str
    resource: str = ""
    total_time: float = 0.0
    sample_count: int = 0
    percent: float = 0.0


@dataclass
class JSCryptoAnalysis:
    """The JavaScript-level crypto analysis."""

    total_time_ms: float = 0.0
    total_samples: int = 0
    resources: list[JSCryptoResource] = field(default_factory=list)
    top_functions: list[JSCryptoFunction] = field(default_factory=list)
    by_thread: dict[str, float] = field(default_factory=dict)
    worker_count: int = 0
    avg_time_per_worker: float = 0.0
    recommendations: list[str] = field(default_factory=list)


def is_crypto_js_resource(name: str) -> bool:
    """Whether a script or worker name indicates JavaScript crypto work."""
    lower = name.lower()
    if ".js" not in lower and ".mjs" not in lower and "worker" not in lower:
        return False
    return any(pattern in lower for pattern in _CRYPTO_RESOURCE_PATTERNS)


def is_openpgp_function(name: str) -> bool:
    """Whether a function name belongs to OpenPGP code, even inside a bundle."""
    lower = name.lower()
    return any(pattern in lower for pattern in _OPENPGP_FUNCTION_PATTERNS)


def is_service_worker_thread(thread_name: str) -> bool:
    """Whether a thread name denotes a ServiceWorker."""
    return "serviceworker" in thread_name.lower()


def extract_resource_name(url: str) -> str:
    """The file name at the end of a URL or path, without a query string."""
    if any(scheme in url for scheme in _EXTENSION_SCHEMES):
        return url.split("/")[-1]
    clean = url.split("?", 1)[0]
    return clean.rsplit("/", 1)[-1]


def is_numeric(s: str) -> bool:
    """Whether a non-empty string consists of ASCII digits only."""
    return bool(s) and all("0" <= c <= "9" for c in s)


def _strip_line_column(url: str) -> str:
    last = url.rfind(":")
    if last > 0:
        before = url[:last]
        second = before.rfind(":")
        if second > 0 and is_numeric(before[second + 1:]) and is_numeric(url[last + 1:]):
            return before[:second]
    return url


def _last_file_with_suffix(path: str, suffixes: tuple[str, ...]) -> str | None:
    for part in reversed(path.split("/")):
        if part.endswith(suffixes):
            return part
    return None


def extract_resource_from_func_name(func_name: str) -> str:
    """The script path embedded in a function name, or the name itself."""
    for scheme in _EXTENSION_SCHEMES:
        index = func_name.find(scheme)
        if index >= 0:
            return _strip_line_column(func_name[index:])

    index = func_name.find("resource://")
    if index >= 0:
        return func_name[index:]

    if "node_modules/" in func_name:
        found = _last_file_with_suffix(func_name, (".js", ".mjs"))
        if found is not None:
            return found

    if "./src/" in func_name:
        found = _last_file_with_suffix(func_name, (".js", ".ts"))
        if found is not None:
            return found

    return func_name


def _has_file(file_name: str) -> bool:
    return bool(file_name) and file_name != _UNKNOWN


def _is_js(thread: Thread, func_index: int) -> bool:
    flags = thread.func_table.is_js
    return func_index < len(flags) and bool(flags[func_index])


def _crypto_js_functions(thread: Thread, strings: list[str]) -> tuple[dict[int, str], dict[int, str]]:
    """Map crypto JS function indices to their resource; also return all function names."""
    func_names = _indexed_strings(thread.func_table.name, strings)
    func_files = _indexed_strings(thread.func_table.file_name, strings)
    func_resources = dict(enumerate(thread.func_table.resource))

    crypto_resources: dict[int, str] = {}
    crypto_file = ""
    has_openpgp = False

    for func_index, func_name in func_names.items():
        if not _is_js(thread, func_index):
            continue
        file_name = func_files.get(func_index, "")
        check_name = file_name if _has_file(file_name) else func_name

        if is_crypto_js_resource(check_name):
            extracted = (
                extract_resource_name(file_name)
                if _has_file(file_name)
                else extract_resource_from_func_name(check_name)
            )
            resource_index = func_resources.get(func_index)
            if resource_index is not None and resource_index >= 0:
                crypto_resources[resource_index] = extracted
            crypto_file = extracted

        if is_openpgp_function(func_name):
            has_openpgp = True
            if _has_file(file_name) and not crypto_file:
                crypto_file = extract_resource_name(file_name) + " (bundled)"

    if not crypto_resources and not crypto_file and not has_openpgp:
        return {}, func_names

    crypto_funcs: dict[int, str] = {}
    for func_index, func_name in func_names.items():
        if not _is_js(thread, func_index):
            continue
        file_name = func_files.get(func_index, "")
        has_file = _has_file(file_name)
        check_name = file_name if has_file else func_name

        if is_crypto_js_resource(check_name):
            crypto_funcs[func_index] = (
                extract_resource_name(file_name)
                if has_file
                else extract_resource_from_func_name(check_name)
            )
            continue

        resource_index = func_resources.get(func_index)
        if resource_index is not None and resource_index >= 0:
            extracted = crypto_resources.get(resource_index)
            if extracted is not None and is_crypto_function(func_name):
                crypto_funcs[func_index] = extracted

        if has_file and is_crypto_js_resource(file_name):
            if is_crypto_function(func_name) or crypto_file:
                crypto_funcs[func_index] = extract_resource_name(file_name)

        if has_openpgp and (is_openpgp_function(func_name) or is_crypto_function(func_name)):
            resource_name = extract_resource_name(file_name) if has_file else "bundled"
            if crypto_file:
                resource_name = crypto_file
            crypto_funcs[func_index] = resource_name

    return crypto_funcs, func_names


@dataclass
class _ResourceAgg:
    name: str
    url: str
    thread_name: str
    total_time: float = 0.0
    samples: int = 0


@dataclass
class _FuncAgg:
    name: str
    resource: str
    total_time: float = 0.0
    samples: int = 0


def analyze_js_crypto(profile: Profile) -> JSCryptoAnalysis:
    """Attribute leaf-frame samples to JavaScript crypto code and aggregate them."""
    analysis = JSCryptoAnalysis()
    interval = profile.meta.interval
    resource_stats: dict[str, _ResourceAgg] = {}
    func_stats: dict[str, _FuncAgg] = {}
    worker_threads: set[str] = set()

    for thread in profile.threads:
        strings = thread.string_array or profile.shared_string_array
        crypto_funcs, func_names = _crypto_js_functions(thread, strings)
        if not crypto_funcs:
            continue

        frame_to_func = dict(enumerate(thread.frame_table.func))
        stack_to_frame = dict(enumerate(thread.stack_table.frame))
        is_worker = "Worker" in thread.name
        thread_key = f"{thread.name} (tid:{thread.tid})" if is_worker else thread.name

        for stack, cpu in _sample_costs(thread, interval):
            if stack < 0:
                continue
            frame = stack_to_frame.get(stack)
            if frame is None:
                continue
            func = frame_to_func.get(frame)
            if func is None:
                continue
            resource_url = crypto_funcs.get(func)
            if resource_url is None:
                continue

            func_name = func_names.get(func, "")
            resource_name = extract_resource_name(resource_url)

            res_key = f"{resource_url}|{thread.name}"
            res = resource_stats.get(res_key)
            if res is None:
                res = _ResourceAgg(resource_name, resource_url, thread.name)
                resource_stats[res_key] = res
            res.total_time += cpu
            res.samples += 1

            func_key = f"{func_name}|{resource_name}"
            fn = func_stats.get(func_key)
            if fn is None:
                fn = _FuncAgg(func_name, resource_name)
                func_stats[func_key] = fn
            fn.total_time += cpu
            fn.samples += 1

            analysis.by_thread[thread_key] = analysis.by_thread.get(thread_key, 0.0) + cpu
            analysis.total_time_ms += cpu
            analysis.total_samples += 1
            if is_worker:
                worker_threads.add(str(thread.tid))

    analysis.worker_count = len(worker_threads)
    if analysis.worker_count > 0:
        analysis.avg_time_per_worker = analysis.total_time_ms / analysis.worker_count

    analysis.resources = sorted(
        (
            JSCryptoResource(
                name=res.name,
                url=res.url,
                total_time=res.total_time,
                sample_count=res.samples,
                thread_name=res.thread_name,
            )
            for res in resource_stats.values()
        ),
        key=lambda r: r.total_time,
        reverse=True,
    )

    total = analysis.total_time_ms
    analysis.top_functions = sorted(
        (
            JSCryptoFunction(
                name=fn.name,
                resource=fn.resource,
                total_time=fn.total_time,
                sample_count=fn.samples,
                percent=(fn.total_time / total) * 100 if total > 0 else 0.0,
            )
            for fn in func_stats.values()
        ),
        key=lambda f: f.total_time,
        reverse=True,
    )[:_MAX_TOP_FUNCTIONS]

    if analysis.total_time_ms > 1000:
        analysis.recommendations.append(
            f"Significant JS crypto overhead: {analysis.total_time_ms:.1f}ms"
            " - consider WebCrypto API for heavy operations"
        )
    if analysis.worker_count == 1 and analysis.total_time_ms > 500:
        analysis.recommendations.append(
            "Only 1 crypto worker detected - consider adding more workers for parallelization"
        )
    if analysis.worker_count > 1:
        max_time = max([0.0, *analysis.by_thread.values()])
        min_time = min([analysis.total_time_ms, *analysis.by_thread.values()])
        if max_time > 0 and min_time / max_time < 0.5:
            analysis.recommendations.append(
                "Uneven work distribution across workers - consider better load balancing"
            )

    return analysis


def _truncate(text: str, width: int) -> str:
    return text if len(text) <= width else text[: width - 3] + "..."


def format_js_crypto_analysis(analysis: JSCryptoAnalysis) -> str:
    """Render a JavaScript crypto analysis as a human-readable report."""
    parts = [
        f"JavaScript Crypto Analysis ({analysis.total_samples} samples)\n",
        "=" * 60 + "\n\n",
        f"Total Time:         {analysis.total_time_ms:.2f}ms\n",
        f"Worker Count:       {analysis.worker_count}\n",
    ]
    if analysis.worker_count > 0:
        parts.append(f"Avg Time/Worker:    {analysis.avg_time_per_worker:.2f}ms\n")
    parts.append("\n")

    if analysis.by_thread:
        parts.append("Time by Thread:\n")
        parts.append("-" * 50 + "\n")
        for thread, time_ms in analysis.by_thread.items():
            parts.append(f"  {_truncate(thread, 30):<30} {time_ms:.2f}ms\n")
        parts.append("\n")

    if analysis.resources:
        parts.append("Crypto Resources:\n")
        parts.append("-" * 50 + "\n")
        for res in analysis.resources[:_MAX_DISPLAYED_RESOURCES]:
            parts.append(
                f"  {_truncate(res.name, 35):<35} {res.total_time:.2f}ms"
                f" ({res.sample_count} samples)\n"
            )
        if len(analysis.resources) > _MAX_DISPLAYED_RESOURCES:
            parts.append(
                f"  ... and {len(analysis.resources) - _MAX_DISPLAYED_RESOURCES}"
                " more resources\n"
            )
        parts.append("\n")

    if analysis.top_functions:
        parts.append("Top Functions:\n")
        parts.append("-" * 60 + "\n")
        parts.append(f"{'Function':<40} {'Time':>10} {'%':>6}\n")
        parts.append("-" * 60 + "\n")
        for fn in analysis.top_functions[:_MAX_DISPLAYED_FUNCTIONS]:
            parts.append(
                f"{_truncate(fn.name, 40):<40} {fn.total_time:8.2f}ms {fn.percent:5.1f}%\n"
            )
        if len(analysis.top_functions) > _MAX_DISPLAYED_FUNCTIONS:
            parts.append(
                f"  ... and {len(analysis.top_functions) - _MAX_DISPLAYED_FUNCTIONS}"
                " more functions\n"
            )
        parts.append("\n")

    if analysis.recommendations:
        parts.append("Recommendations:\n")
        parts.extend(f"  - {r}\n" for r in analysis.recommendations)

    return "".join(parts)
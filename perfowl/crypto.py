"""Detection and aggregation of native cryptographic work in samples."""

from __future__ import annotations

from dataclasses import dataclass, field

from .profile import Profile, Thread
from .threads import _sample_costs

_MAX_TOP_OPERATIONS = 20

_CRYPTO_KEYWORDS = (
    "crypto", "subtlecrypto", "encrypt", "decrypt", "digest",
    "sign", "verify", "hash", "pbkdf", "hmac", "aes", "rsa",
    "sha-", "sha1", "sha256", "sha384", "sha512", "md5",
    "derivebits", "derivekey", "generatekey", "importkey", "exportkey",
    "wrapkey", "unwrapkey",
)

# More specific patterns come first so that overlapping names resolve predictably.
_OPERATION_NAMES = {
    "unwrapkey": "unwrapKey",
    "wrapkey": "wrapKey",
    "derivebits": "deriveBits",
    "derivekey": "deriveKey",
    "generatekey": "generateKey",
    "importkey": "importKey",
    "exportkey": "exportKey",
    "encrypt": "encrypt",
    "decrypt": "decrypt",
    "digest": "digest",
    "sign": "sign",
    "verify": "verify",
    "hash": "hash",
    "pbkdf": "key derivation",
    "hmac": "HMAC",
}

_ALGORITHM_NAMES = {
    "aes": "AES",
    "rsa": "RSA",
    "sha-1": "SHA-1",
    "sha1": "SHA-1",
    "sha256": "SHA-256",
    "sha384": "SHA-384",
    "sha512": "SHA-512",
    "md5": "MD5",
    "pbkdf": "PBKDF2",
    "hmac": "HMAC",
    "ecdsa": "ECDSA",
    "ecdh": "ECDH",
}

_CRYPTO_RESOURCES = (
    "crypto", "decrypt", "encrypt", "libcorecrypto", "libcommoncrypto",
    "openssl", "boringssl", "nss", "pgp", "gpg", "seipd",
)

_CRYPTO_LIB_PATTERNS = ("crypto", "ssl", "nss", "gpg")


@dataclass
class CryptoOperation:
    """Aggregated time of one crypto function on one thread."""

    operation: str
    algorithm: str = ""
    duration_ms: float = 0.0
    thread_name: str = ""
    start_time: float = 0.0
    func_name: str = ""


@dataclass
class CryptoAnalysis:
    """The full crypto operation analysis."""

    total_operations: int = 0
    total_time_ms: float = 0.0
    by_operation: dict[str, float] = field(default_factory=dict)
    by_algorithm: dict[str, float] = field(default_factory=dict)
    by_thread: dict[str, float] = field(default_factory=dict)
    top_operations: list[CryptoOperation] = field(default_factory=list)
    serialized: bool = False
    warnings: list[str] = field(default_factory=list)


@dataclass
class _CryptoAgg:
    operation: str
    algorithm: str
    func_name: str
    thread_name: str
    first_time: float
    total_time: float = 0.0
    count: int = 0


@dataclass
class _Window:
    thread_name: str
    start: float
    end: float


def is_crypto_function(name: str) -> bool:
    """Whether a function name looks crypto-related."""
    lower = name.lower()
    return any(keyword in lower for keyword in _CRYPTO_KEYWORDS)


def extract_operation(name: str) -> str:
    """The crypto operation a function name refers to."""
    lower = name.lower()
    for pattern, operation in _OPERATION_NAMES.items():
        if pattern in lower:
            return operation
    if "crypto" in lower:
        return "crypto (generic)"
    return "unknown"


def extract_algorithm(name: str) -> str:
    """The algorithm named in a function name, or an empty string."""
    lower = name.lower()
    for pattern, algorithm in _ALGORITHM_NAMES.items():
        if pattern in lower:
            return algorithm
    return ""


def is_crypto_resource(name: str) -> bool:
    """Whether a resource or file name looks crypto-related."""
    lower = name.lower()
    return any(keyword in lower for keyword in _CRYPTO_RESOURCES)


def _indexed_strings(indices: list[int], strings: list[str]) -> dict[int, str]:
    return {
        position: strings[index]
        for position, index in enumerate(indices)
        if index is not None and 0 <= index < len(strings)
    }


def _with_function(func_name: str, where: str, min_length: int = 0) -> str:
    if func_name and func_name != "(unknown)" and len(func_name) > min_length:
        return f"{func_name} ({where})"
    return where


def _crypto_functions(
    thread: Thread, strings: list[str], crypto_libs: dict[int, str]
) -> dict[int, str]:
    """Map function index to a display name for every crypto-related function."""
    func_names = _indexed_strings(thread.func_table.name, strings)
    func_files = _indexed_strings(thread.func_table.file_name, strings)
    resource_names = _indexed_strings(thread.resource_table.name, strings)
    resource_libs = dict(enumerate(thread.resource_table.lib))
    func_resources = dict(enumerate(thread.func_table.resource))

    found: dict[int, str] = {}
    for func_index, func_name in func_names.items():
        if is_crypto_function(func_name):
            found[func_index] = func_name
            continue

        file_name = func_files.get(func_index)
        if file_name is not None and is_crypto_resource(file_name):
            found[func_index] = _with_function(func_name, file_name)
            continue

        if func_index not in func_resources:
            continue
        resource_index = func_resources[func_index]
        resource_name = resource_names.get(resource_index)
        if resource_name is not None and is_crypto_resource(resource_name):
            found[func_index] = _with_function(func_name, resource_name)
            continue

        if resource_index in resource_libs:
            lib_name = crypto_libs.get(resource_libs[resource_index])
            if lib_name is not None:
                found[func_index] = _with_function(func_name, lib_name, min_length=2)
    return found


def analyze_crypto(profile: Profile) -> CryptoAnalysis:
    """Attribute leaf-frame samples to crypto functions and aggregate them."""
    analysis = CryptoAnalysis()
    interval = profile.meta.interval

    crypto_libs = {
        index: lib.name
        for index, lib in enumerate(profile.libs)
        if any(pattern in lib.name.lower() for pattern in _CRYPTO_LIB_PATTERNS)
    }

    aggregates: dict[str, _CryptoAgg] = {}
    windows: list[_Window] = []

    for thread in profile.threads:
        strings = thread.string_array or profile.shared_string_array
        crypto_funcs = _crypto_functions(thread, strings, crypto_libs)
        frame_to_func = dict(enumerate(thread.frame_table.func))
        stack_to_frame = dict(enumerate(thread.stack_table.frame))

        sample_time = 0.0
        for stack, cpu in _sample_costs(thread, interval):
            frame = stack_to_frame.get(stack) if stack >= 0 else None
            func = frame_to_func.get(frame) if frame is not None else None
            display = crypto_funcs.get(func) if func is not None else None
            if display is not None:
                key = f"{display}|{thread.name}"
                agg = aggregates.get(key)
                if agg is None:
                    agg = _CryptoAgg(
                        operation=extract_operation(display),
                        algorithm=extract_algorithm(display),
                        func_name=display,
                        thread_name=thread.name,
                        first_time=sample_time,
                    )
                    aggregates[key] = agg
                agg.total_time += cpu
                agg.count += 1
                windows.append(_Window(thread.name, sample_time, sample_time + cpu))
            sample_time += cpu

    threads_seen: set[str] = set()
    for agg in aggregates.values():
        analysis.total_operations += agg.count
        analysis.total_time_ms += agg.total_time
        analysis.by_operation[agg.operation] = (
            analysis.by_operation.get(agg.operation, 0.0) + agg.total_time
        )
        analysis.by_thread[agg.thread_name] = (
            analysis.by_thread.get(agg.thread_name, 0.0) + agg.total_time
        )
        threads_seen.add(agg.thread_name)
        if agg.algorithm:
            analysis.by_algorithm[agg.algorithm] = (
                analysis.by_algorithm.get(agg.algorithm, 0.0) + agg.total_time
            )
        analysis.top_operations.append(
            CryptoOperation(
                operation=agg.operation,
                algorithm=agg.algorithm,
                duration_ms=agg.total_time,
                thread_name=agg.thread_name,
                start_time=agg.first_time,
                func_name=agg.func_name,
            )
        )

    analysis.top_operations.sort(key=lambda op: op.duration_ms, reverse=True)
    del analysis.top_operations[_MAX_TOP_OPERATIONS:]

    if len(threads_seen) > 1 and len(windows) > 1:
        windows.sort(key=lambda w: w.start)
        overlap = any(
            cur.thread_name != prev.thread_name and cur.start < prev.end
            for prev, cur in zip(windows, windows[1:])
        )
        if not overlap and analysis.total_operations > 5:
            analysis.serialized = True
            analysis.warnings.append(
                "Crypto operations appear serialized despite multiple threads"
                " - consider parallelizing"
            )

    if analysis.total_time_ms > 100:
        analysis.warnings.append(
            f"Significant crypto overhead: {analysis.total_time_ms:.1f}ms total"
        )
    if analysis.by_algorithm.get("SHA-1", 0.0) > 0:
        analysis.warnings.append(
            "SHA-1 usage detected - consider upgrading to SHA-256 for security"
        )
    if analysis.by_algorithm.get("MD5", 0.0) > 0:
        analysis.warnings.append(
            "MD5 usage detected - MD5 is cryptographically broken, use SHA-256"
        )
    return analysis


def format_crypto_analysis(analysis: CryptoAnalysis) -> str:
    """Render a crypto analysis as a human-readable report."""
    parts = [
        f"Crypto Operation Analysis ({analysis.total_operations} samples)\n",
        "=" * 60 + "\n\n",
        f"Total Time: {analysis.total_time_ms:.2f}ms\n",
    ]
    if analysis.serialized:
        parts.append("Serialization: Possibly serialized (no parallel crypto detected)\n")
    parts.append("\n")

    for title, table in (
        ("Time by Operation", analysis.by_operation),
        ("Time by Algorithm", analysis.by_algorithm),
    ):
        if table:
            parts.append(f"{title}:\n")
            parts.append("-" * 40 + "\n")
            parts.extend(f"  {key:<20} {time:.2f}ms\n" for key, time in table.items())
            parts.append("\n")

    if analysis.by_thread:
        parts.append("Time by Thread:\n")
        parts.append("-" * 40 + "\n")
        for thread, time in analysis.by_thread.items():
            name = thread if len(thread) <= 30 else thread[:27] + "..."
            parts.append(f"  {name:<30} {time:.2f}ms\n")
        parts.append("\n")

    if analysis.warnings:
        parts.append("Warnings:\n")
        parts.extend(f"  - {w}\n" for w in analysis.warnings)

    return "".join(parts)
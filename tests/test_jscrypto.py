import pytest

from perfowl.jscrypto import (
    JSCryptoAnalysis,
    JSCryptoFunction,
    JSCryptoResource,
    analyze_js_crypto,
    extract_resource_from_func_name,
    extract_resource_name,
    format_js_crypto_analysis,
    is_crypto_js_resource,
    is_numeric,
    is_openpgp_function,
    is_service_worker_thread,
)
from perfowl.profile import (
    FrameTable,
    FuncTable,
    Meta,
    Profile,
    Samples,
    StackTable,
    Thread,
)

WORKER_FUNC = "(root scope) moz-extension://abc/workers/seipdDecryptionWorker.min.js:1:2"


def _thread(name, tid, strings, func_table, stacks, deltas, use_shared=False):
    count = len(func_table.name)
    return Thread(
        name=name,
        tid=tid,
        samples=Samples(stack=stacks, thread_cpu_delta=deltas),
        stack_table=StackTable(frame=list(range(count))),
        frame_table=FrameTable(func=list(range(count))),
        func_table=func_table,
        string_array=[] if use_shared else strings,
    )


def _worker_thread(name="DOM Worker", tid="7", deltas=(2000, 2000, 0, 1000), is_js=(True, True)):
    strings = [WORKER_FUNC, "processData"]
    table = FuncTable(name=[0, 1], is_js=list(is_js), resource=[0, 0])
    return _thread(name, tid, strings, table, [0, 0, 0, 1], list(deltas))


def _profile(*threads, shared=None):
    return Profile(meta=Meta(interval=1.0), threads=list(threads), shared_string_array=shared or [])


def test_empty_profile():
    result = analyze_js_crypto(Profile())
    assert result.total_samples == 0
    assert result.resources == []


def test_main_thread_without_crypto():
    strings = ["main", "render"]
    table = FuncTable(name=[0, 1], is_js=[True, True], resource=[0, 0])
    thread = _thread("GeckoMain", "1", strings, table, [0, 1], [1000, 1000])
    result = analyze_js_crypto(_profile(thread))
    assert result.total_time_ms == 0
    assert result.by_thread == {}


def test_worker_crypto_detected():
    result = analyze_js_crypto(_profile(_worker_thread()))
    assert result.total_samples == 3
    assert result.total_time_ms == pytest.approx(5.0)
    assert result.by_thread == {"DOM Worker (tid:7)": pytest.approx(5.0)}
    assert result.worker_count == 1
    assert result.avg_time_per_worker == pytest.approx(5.0)
    assert len(result.resources) == 1
    resource = result.resources[0]
    assert resource.name == "seipdDecryptionWorker.min.js"
    assert resource.url == "moz-extension://abc/workers/seipdDecryptionWorker.min.js"
    assert resource.sample_count == 3
    assert len(result.top_functions) == 1
    assert result.top_functions[0].name == WORKER_FUNC
    assert result.top_functions[0].percent == pytest.approx(100.0)
    assert result.recommendations == []


def test_non_js_functions_ignored():
    result = analyze_js_crypto(_profile(_worker_thread(is_js=(False, False))))
    assert result.total_samples == 0


def test_shared_string_array_used():
    thread = _worker_thread()
    strings = thread.string_array
    thread.string_array = []
    result = analyze_js_crypto(_profile(thread, shared=strings))
    assert result.total_samples == 3


def test_heavy_single_worker_recommendations():
    result = analyze_js_crypto(_profile(_worker_thread(deltas=(1_200_000, 0, 0, 0))))
    assert result.total_time_ms == pytest.approx(1202.0)
    assert result.recommendations == [
        "Significant JS crypto overhead: 1202.0ms - consider WebCrypto API for heavy operations",
        "Only 1 crypto worker detected - consider adding more workers for parallelization",
    ]


def test_uneven_worker_distribution():
    busy = _worker_thread(tid="1", deltas=(10000, 10000, 10000, 0))
    idle = _worker_thread(tid="2", deltas=(1000, 0, 0, 0))
    result = analyze_js_crypto(_profile(busy, idle))
    assert result.worker_count == 2
    assert result.by_thread["DOM Worker (tid:1)"] == pytest.approx(30.0)
    assert result.by_thread["DOM Worker (tid:2)"] == pytest.approx(3.0)
    assert "Uneven work distribution across workers - consider better load balancing" in (
        result.recommendations
    )
    times = [f.total_time for f in result.top_functions]
    assert times == sorted(times, reverse=True)


def test_chrome_file_name_detection():
    strings = ["doWork", "chrome-extension://xyz/crypto-worker.js"]
    table = FuncTable(name=[0], is_js=[True], file_name=[1])
    thread = _thread("DedicatedWorker", "9", strings, table, [0, 0], [3000, 3000])
    result = analyze_js_crypto(_profile(thread))
    assert result.total_time_ms == pytest.approx(6.0)
    assert result.resources[0].name == "crypto-worker.js"
    assert result.top_functions[0].name == "doWork"
    assert result.top_functions[0].resource == "crypto-worker.js"


def test_bundled_openpgp_detection():
    strings = ["decryptWithSessionKey", "https://app.example.com/vendors.js?v=1"]
    table = FuncTable(name=[0], is_js=[True], file_name=[1])
    thread = _thread("ServiceWorker", "4", strings, table, [0], [2000])
    result = analyze_js_crypto(_profile(thread))
    assert result.total_samples == 1
    assert result.resources[0].name == "vendors.js (bundled)"
    assert result.by_thread == {"ServiceWorker (tid:4)": pytest.approx(2.0)}


@pytest.mark.parametrize(
    "name", ["seipdDecryptionWorker.js", "decryptionWorker.js", "decrypt-worker.js"]
)
def test_is_crypto_js_resource_decrypt_worker(name):
    assert is_crypto_js_resource(name) is True


@pytest.mark.parametrize("name", ["openpgp.js", "openpgp.min.js", "openpgp.worker.js"])
def test_is_crypto_js_resource_openpgp(name):
    assert is_crypto_js_resource(name) is True


@pytest.mark.parametrize("name", ["app.js", "main.js", "bundle.js", "react.js", "decrypt"])
def test_is_crypto_js_resource_not_crypto(name):
    assert is_crypto_js_resource(name) is False


@pytest.mark.parametrize("name", ["decryptWithSessionKey", "DecryptWithSessionKey", "SEIPDPacket"])
def test_is_openpgp_function(name):
    assert is_openpgp_function(name) is True


@pytest.mark.parametrize("name", ["processData", "handleClick", "main"])
def test_is_openpgp_function_not(name):
    assert is_openpgp_function(name) is False


@pytest.mark.parametrize("name", ["ServiceWorker", "serviceworker", "MyServiceWorkerThread"])
def test_is_service_worker_thread_yes(name):
    assert is_service_worker_thread(name) is True


@pytest.mark.parametrize("name", ["GeckoMain", "DOM Worker", "Compositor", "SW", "sw-thread"])
def test_is_service_worker_thread_no(name):
    assert is_service_worker_thread(name) is False


@pytest.mark.parametrize(
    "url, expected",
    [
        ("moz-extension://abc123/openpgp.js", "openpgp.js"),
        ("chrome-extension://abc123/crypto.js", "crypto.js"),
        ("https://example.com/script.js?v=1.0", "script.js"),
        ("file:///path/to/script.js", "script.js"),
        ("plain.js", "plain.js"),
    ],
)
def test_extract_resource_name(url, expected):
    assert extract_resource_name(url) == expected


@pytest.mark.parametrize(
    "func_name, expected",
    [
        (
            "(root scope) moz-extension://abc/workers/seipd.min.js:67:93872",
            "moz-extension://abc/workers/seipd.min.js",
        ),
        (
            "fn (moz-extension://abc123/script.js:42:10)",
            "moz-extension://abc123/script.js:42:10)",
        ),
        ("run chrome-extension://xyz/w.js:3:4", "chrome-extension://xyz/w.js"),
        ("load resource://gre/modules/x.sys.mjs", "resource://gre/modules/x.sys.mjs"),
        (
            "../node_modules/.pnpm/openpgp@6.1.1/node_modules/openpgp/dist/openpgp.min.mjs/func",
            "openpgp.min.mjs",
        ),
        (
            "fn (node_modules/openpgp/dist/openpgp.js:100:20)",
            "fn (node_modules/openpgp/dist/openpgp.js:100:20)",
        ),
        ("./src/lib/worker.ts/decrypt", "worker.ts"),
        ("plainFunction", "plainFunction"),
    ],
)
def test_extract_resource_from_func_name(func_name, expected):
    assert extract_resource_from_func_name(func_name) == expected


@pytest.mark.parametrize("s", ["0", "123", "999"])
def test_is_numeric_valid(s):
    assert is_numeric(s) is True


@pytest.mark.parametrize("s", ["abc", "12a", "", "12.5", "١٢"])
def test_is_numeric_invalid(s):
    assert is_numeric(s) is False


def test_format_js_crypto_analysis():
    analysis = JSCryptoAnalysis(
        total_time_ms=1000,
        total_samples=100,
        worker_count=4,
        avg_time_per_worker=250,
        resources=[
            JSCryptoResource(
                name="openpgp.js", url="moz-extension://abc/openpgp.js", total_time=800
            )
        ],
        top_functions=[
            JSCryptoFunction(name="decrypt", resource="openpgp.js", total_time=500, percent=50)
        ],
        by_thread={"Worker#1": 500, "Worker#2": 500},
        recommendations=["Work is well distributed"],
    )
    output = format_js_crypto_analysis(analysis)
    assert output.startswith("JavaScript Crypto Analysis (100 samples)\n")
    assert "Total Time:         1000.00ms\n" in output
    assert "Avg Time/Worker:    250.00ms\n" in output
    assert f"  {'Worker#1':<30} 500.00ms\n" in output
    assert f"  {'openpgp.js':<35} 800.00ms (0 samples)\n" in output
    assert f"{'decrypt':<40}   500.00ms  50.0%\n" in output
    assert output.endswith("Recommendations:\n  - Work is well distributed\n")


def test_format_truncates_and_summarises():
    functions = [
        JSCryptoFunction(name="f" * 50 if i == 0 else f"fn{i}", total_time=20 - i)
        for i in range(17)
    ]
    output = format_js_crypto_analysis(JSCryptoAnalysis(top_functions=functions))
    assert "f" * 37 + "..." in output
    assert "  ... and 2 more functions\n" in output
    assert "Avg Time/Worker" not in output
    assert "fn16" not in output
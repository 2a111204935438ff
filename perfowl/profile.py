"""In-memory model of a sampled performance profile."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Category:
    """A profiler category such as "JavaScript" or "Layout"."""

    name: str
    color: str = "grey"
    subcategories: list[str] = field(default_factory=list)


@dataclass
class Lib:
    """A native library loaded by the profiled process."""

    name: str
    path: str = ""
    debug_name: str = ""
    arch: str = ""


@dataclass
class ParsedMarker:
    """A marker with its name, category and payload already resolved."""

    name: str = ""
    type: str = ""
    category: str = ""
    start_time: float = 0.0
    duration: float = 0.0
    thread_name: str = ""
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class Samples:
    """Per-sample columns: stack index, timestamp and CPU delta in microseconds."""

    stack: list[int | None] = field(default_factory=list)
    time: list[float] = field(default_factory=list)
    thread_cpu_delta: list[float] = field(default_factory=list)

    @property
    def length(self) -> int:
        return max(len(self.stack), len(self.time), len(self.thread_cpu_delta))

    def __len__(self) -> int:
        return self.length


@dataclass
class StackTable:
    """Stack entries: the leaf frame, the parent stack and the category."""

    frame: list[int] = field(default_factory=list)
    prefix: list[int | None] = field(default_factory=list)
    category: list[int] = field(default_factory=list)


@dataclass
class FrameTable:
    """Frame entries pointing at functions."""

    func: list[int] = field(default_factory=list)
    category: list[int] = field(default_factory=list)
    line: list[int | None] = field(default_factory=list)


@dataclass
class FuncTable:
    """Function entries; names and file names are string-array indices."""

    name: list[int] = field(default_factory=list)
    is_js: list[bool] = field(default_factory=list)
    resource: list[int] = field(default_factory=list)
    file_name: list[int] = field(default_factory=list)


@dataclass
class ResourceTable:
    """Resource entries; names are string-array indices, libs index Profile.libs."""

    name: list[int] = field(default_factory=list)
    lib: list[int] = field(default_factory=list)


@dataclass
class Thread:
    """One profiled thread with its samples, markers and lookup tables."""

    name: str = ""
    process_type: str = ""
    process_name: str = ""
    pid: str = ""
    tid: str = ""
    is_main_thread: bool = False
    samples: Samples = field(default_factory=Samples)
    markers: list[ParsedMarker] = field(default_factory=list)
    stack_table: StackTable = field(default_factory=StackTable)
    frame_table: FrameTable = field(default_factory=FrameTable)
    func_table: FuncTable = field(default_factory=FuncTable)
    resource_table: ResourceTable = field(default_factory=ResourceTable)
    string_array: list[str] = field(default_factory=list)


@dataclass
class ExtensionTable:
    """Installed browser extensions as parallel columns."""

    id: list[str] = field(default_factory=list)
    name: list[str] = field(default_factory=list)
    base_url: list[str] = field(default_factory=list)


@dataclass
class Meta:
    """Profile-wide metadata."""

    interval: float = 1.0
    start_time: float = 0.0
    profiling_start_time: float = 0.0
    profiling_end_time: float = 0.0
    product: str = ""
    categories: list[Category] = field(default_factory=list)
    extensions: ExtensionTable = field(default_factory=ExtensionTable)


@dataclass
class Profile:
    """A whole profile: metadata, threads, libraries and shared strings."""

    meta: Meta = field(default_factory=Meta)
    threads: list[Thread] = field(default_factory=list)
    libs: list[Lib] = field(default_factory=list)
    shared_string_array: list[str] = field(default_factory=list)

    def duration_seconds(self) -> float:
        """Profiling duration, from the metadata or else from sample times."""
        start = self.meta.profiling_start_time
        end = self.meta.profiling_end_time
        if end > start:
            return (end - start) / 1000.0
        times = [t for thread in self.threads for t in thread.samples.time]
        if len(times) > 1:
            return (max(times) - min(times)) / 1000.0
        return 0.0

    def extension_count(self) -> int:
        return len(self.meta.extensions.id)

    def get_extensions(self) -> dict[str, str]:
        """Map of extension id to extension name."""
        table = self.meta.extensions
        return dict(zip(table.id, table.name))

    def get_extension_base_urls(self) -> dict[str, str]:
        """Map of extension id to its base URL."""
        table = self.meta.extensions
        return dict(zip(table.id, table.base_url))
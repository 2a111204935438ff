"""Attribution of profile markers to installed browser extensions."""

from __future__ import annotations

from dataclasses import dataclass, field

from .profile import ParsedMarker, Profile

_MAX_MARKER_DURATION_MS = 10000.0
_MAX_TOP_MARKERS = 5
_EXTENSION_SCHEMES = ("moz-extension://", "chrome-extension://")


@dataclass
class MarkerSummary:
    """A marker reduced to what a report needs."""

    name: str
    category: str
    duration: float


@dataclass
class ExtensionReport:
    """Activity attributed to one extension."""

    id: str = ""
    name: str = ""
    base_url: str = ""
    total_duration: float = 0.0
    markers_count: int = 0
    dom_events: int = 0
    ipc_messages: int = 0
    impact_score: str = ""
    top_markers: list[MarkerSummary] = field(default_factory=list)


@dataclass
class ExtensionsAnalysis:
    """Activity of all extensions in a profile."""

    total_extensions: int = 0
    total_duration: float = 0.0
    total_events: int = 0
    extensions: list[ExtensionReport] = field(default_factory=list)


def _first(extension_urls: dict[str, str]) -> str:
    return next(iter(extension_urls), "")


def _string(data: dict, key: str) -> str | None:
    value = data.get(key)
    return value if isinstance(value, str) else None


def match_extension(marker: ParsedMarker, extension_urls: dict[str, str]) -> str:
    """The id of the extension a marker belongs to, or an empty string."""
    data = marker.data or {}

    url = _string(data, "url")
    if url is not None:
        for ext_id, base_url in extension_urls.items():
            if url.startswith(base_url):
                return ext_id
        if any(scheme in url for scheme in _EXTENSION_SCHEMES) and extension_urls:
            return _first(extension_urls)

    target = _string(data, "target")
    if target is not None:
        for ext_id, base_url in extension_urls.items():
            if base_url in target:
                return ext_id

    if "JSActorMessage" in (marker.name, marker.type):
        actor = _string(data, "actor")
        if actor is not None:
            if "WebExtension" in actor and extension_urls:
                return _first(extension_urls)
            if actor == "Conduits":
                message = _string(data, "name")
                if message is not None and "Port" in message and extension_urls:
                    return _first(extension_urls)

    if "FrameMessage" in (marker.name, marker.type):
        message = _string(data, "name")
        if message is not None and extension_urls and any(
            word in message for word in ("Extension", "WebExt", "addons")
        ):
            return _first(extension_urls)

    if "Text" in (marker.name, marker.type):
        text = _string(data, "name")
        if text is not None and any(scheme in text for scheme in _EXTENSION_SCHEMES):
            for ext_id, base_url in extension_urls.items():
                if base_url in text:
                    return ext_id
            if extension_urls:
                return _first(extension_urls)

    return ""


def calculate_impact_score(report: ExtensionReport) -> str:
    """Rate an extension's impact as "low", "medium" or "high"."""
    score = 0

    if report.total_duration > 1000:
        score += 3
    elif report.total_duration > 500:
        score += 2
    elif report.total_duration > 100:
        score += 1

    if report.markers_count > 1000:
        score += 3
    elif report.markers_count > 500:
        score += 2
    elif report.markers_count > 100:
        score += 1

    if report.ipc_messages > 100:
        score += 2
    elif report.ipc_messages > 50:
        score += 1

    if score >= 5:
        return "high"
    if score >= 3:
        return "medium"
    return "low"


def analyze_extensions(profile: Profile) -> ExtensionsAnalysis:
    """Attribute markers to extensions and rank extensions by time spent."""
    analysis = ExtensionsAnalysis(total_extensions=profile.extension_count())
    extension_urls = profile.get_extension_base_urls()
    reports = {
        ext_id: ExtensionReport(id=ext_id, name=name, base_url=extension_urls.get(ext_id, ""))
        for ext_id, name in profile.get_extensions().items()
    }

    for thread in profile.threads:
        for marker in thread.markers:
            if marker.duration < 0 or marker.duration > _MAX_MARKER_DURATION_MS:
                continue
            report = reports.get(match_extension(marker, extension_urls))
            if report is None:
                continue

            report.markers_count += 1
            report.total_duration += marker.duration
            if marker.name == "DOMEvent" or "DOM" in marker.category:
                report.dom_events += 1
            if (
                "IPC" in marker.name
                or "Message" in marker.name
                or marker.name in ("JSActorMessage", "FrameMessage")
            ):
                report.ipc_messages += 1
            if marker.duration > 1:
                report.top_markers.append(
                    MarkerSummary(marker.name, marker.category, marker.duration)
                )

    for report in reports.values():
        if report.markers_count == 0 and report.total_duration == 0:
            continue
        report.top_markers.sort(key=lambda m: m.duration, reverse=True)
        del report.top_markers[_MAX_TOP_MARKERS:]
        report.impact_score = calculate_impact_score(report)
        analysis.extensions.append(report)
        analysis.total_duration += report.total_duration
        analysis.total_events += report.markers_count

    analysis.extensions.sort(key=lambda r: r.total_duration, reverse=True)
    return analysis
"""Analyses of browser performance profiles: threads, workers, comparison,
contention, crypto, extensions, operation timing, scaling and SVG charts."""

__version__ = "0.1.0"
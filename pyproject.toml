[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "perfowl"
version = "0.1.0"
description = "Analyses of browser performance profiles: threads, workers, contention, crypto, extensions, operation timing, scaling and SVG charts"
requires-python = ">=3.10"
dependencies = []
keywords = ["profiling", "performance", "web workers", "analysis", "svg"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Benchmark",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["perfowl"]

[tool.pytest.ini_options]
addopts = "-ra"

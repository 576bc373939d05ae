[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "corex"
version = "0.1.0"
description = "Building blocks for concurrent services: containers, thread groups, backoff and polling, cron and timing wheel, pub/sub, tracing, map-reduce, bloom filters and a Redis-backed lock."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "concurrency",
    "threads",
    "cron",
    "timing-wheel",
    "bloom-filter",
    "backoff",
    "retry",
    "polling",
    "pubsub",
    "mapreduce",
    "tracing",
    "distributed-lock",
]
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
    "Topic :: Software Development :: Libraries",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["corex"]

[tool.hatch.build.targets.sdist]
include = [
    "corex",
    "tests",
    "README.md",
    "pyproject.toml",
]

[tool.pytest.ini_options]
addopts = "-ra"

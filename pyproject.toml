[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dedupkit"
version = "0.1.0"
description = "Building blocks for a chunk-level deduplicating backup system: content-defined chunking, rewrite heuristics, manifests and restore assembly."
requires-python = ">=3.10"
dependencies = []
keywords = ["deduplication", "backup", "chunking", "rabin", "restore"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Archiving :: Backup",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["dedupkit"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "huffdir"
version = "0.1.0"
description = "Huffman compression of whole directories into a single archive, with serial, process-parallel and thread-parallel engines"
requires-python = ">=3.10"
dependencies = []
keywords = ["huffman", "compression", "archive", "directory", "multiprocessing", "threading"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Archiving :: Compression",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
huffdir-serial-compress = "huffdir.serial:compress_main"
huffdir-serial-decompress = "huffdir.serial:decompress_main"
huffdir-fork-compress = "huffdir.forked:compress_main"
huffdir-fork-decompress = "huffdir.forked:decompress_main"
huffdir-thread-compress = "huffdir.threaded:compress_main"
huffdir-thread-decompress = "huffdir.threaded:decompress_main"

[tool.hatch.build.targets.wheel]
packages = ["huffdir"]

[tool.hatch.build.targets.sdist]
include = ["huffdir", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true

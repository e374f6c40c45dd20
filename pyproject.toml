[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "memorydb"
version = "1.0.0"
description = "An in-memory key-value store with expiring keys, list values, an HTTP API, a Python client and an optional append-only operation log."
requires-python = ">=3.11"
dependencies = []
keywords = ["key-value", "in-memory", "database", "cache", "ttl", "http", "persistence"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Environment :: Web Environment",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Database Engines/Servers",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
memorydb = "memorydb.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["memorydb"]

[tool.hatch.build.targets.sdist]
include = ["memorydb", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
warn_redundant_casts = true

[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "orderflow"
version = "0.1.0"
description = "Event-driven order intake, stock reservation, notification and order-rate metrics for a small shop."
requires-python = ">=3.10"
keywords = [
    "orders",
    "inventory",
    "events",
    "messaging",
    "avro",
    "idempotency",
    "point-of-sale",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Framework :: Flask",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial :: Point-Of-Sale",
]
dependencies = [
    "flask",
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["orderflow"]

[tool.hatch.build.targets.sdist]
include = [
    "orderflow",
    "tests",
    "pyproject.toml",
]

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

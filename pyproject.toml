[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tracecov"
version = "0.1.0"
description = "Coverage trace bookkeeping and a test-run state machine for collecting coverage data"
requires-python = ">=3.10"
dependencies = []
keywords = ["coverage", "testing", "traces", "instrumentation", "profraw"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Testing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["tracecov"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

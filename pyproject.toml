[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "azmem"
version = "0.1.0"
description = "Local-first layered memory: transcripts, thematic blocks, typed facts and links in SQLite, with LLM-driven segmentation and extraction"
requires-python = ">=3.10"
dependencies = [
    "requests",
]
keywords = ["memory", "transcripts", "sqlite", "llm", "ollama", "local-first", "journal"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: End Users/Desktop",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: News/Diary",
    "Topic :: Database",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[tool.hatch.build.targets.wheel]
packages = ["azmem"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true

[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kncode"
version = "0.1.0"
description = "Tools for a headless AI coding agent: file access, search, shell, web fetching, wake-word matching and text-to-speech"
requires-python = ">=3.10"
dependencies = [
    "httpx",
]
keywords = ["agent", "tools", "coding-assistant", "grep", "glob", "shell", "wake-word", "tts"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["kncode"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true

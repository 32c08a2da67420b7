[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "blaxelmcp"
version = "0.1.0"
description = "Tool definitions and handlers for managing Blaxel workspace resources"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "mcp",
    "model-context-protocol",
    "tools",
    "agents",
    "sandboxes",
    "workspace",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["blaxelmcp"]

[tool.hatch.build.targets.sdist]
include = ["blaxelmcp", "tests"]

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

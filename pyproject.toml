[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "chatrelay"
version = "0.1.0"
description = "A small TCP chat relay: an asyncio server that forwards JSON messages and files between named users, a client for it, and client-side conversation state."
requires-python = ">=3.10"
dependencies = []
keywords = ["chat", "relay", "tcp", "asyncio", "messaging", "json", "file-transfer"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Framework :: AsyncIO",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Chat",
    "Topic :: Internet",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
chatrelay-server = "chatrelay.server:main"

[tool.hatch.build.targets.wheel]
packages = ["chatrelay"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true

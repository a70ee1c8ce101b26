[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sparkstake"
version = "0.1.0"
description = "Staking, delegation, reward and proposal bookkeeping with sparse Merkle trees, a SQLite transaction history, a JSON-RPC query API and a CKB indexer watcher."
requires-python = ">=3.10"
keywords = [
    "staking",
    "delegation",
    "sparse-merkle-tree",
    "json-rpc",
    "ckb",
    "indexer",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Framework :: AsyncIO",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial",
    "Topic :: Database",
]
dependencies = [
    "aiosqlite",
    "aiohttp",
    "httpx",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["sparkstake"]

[tool.hatch.build.targets.sdist]
include = ["sparkstake", "tests"]

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

[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "stakestream"
version = "0.1.0"
description = "In-memory models of a staking derivative token and a token vesting stream contract"
requires-python = ">=3.10"
dependencies = []
keywords = ["staking", "cw20", "token", "vesting", "stream", "derivative", "ledger"]
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
    "Topic :: Office/Business :: Financial",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["stakestream"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

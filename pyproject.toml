[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "clmm"
version = "0.1.0"
description = "Concentrated-liquidity market maker math: ticks, fixed point, swaps, dynamic fees and MEV protection"
requires-python = ">=3.10"
dependencies = []
keywords = ["amm", "clmm", "concentrated-liquidity", "defi", "swap", "twap", "fixed-point"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial",
    "Topic :: Scientific/Engineering :: Mathematics",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["clmm"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

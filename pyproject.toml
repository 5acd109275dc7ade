[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "evmcore"
version = "0.10.0"
description = "Ethereum Virtual Machine instruction tables, call, create and storage semantics, and execution tracers"
requires-python = ">=3.10"
dependencies = []
keywords = ["ethereum", "evm", "interpreter", "gas", "opcodes", "tracing"]
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
    "Topic :: Software Development :: Interpreters",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["evmcore"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

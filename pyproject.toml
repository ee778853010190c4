[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "inkbin"
version = "0.1.0"
description = "Compile ink JSON stories into a compact binary format and inspect the result"
requires-python = ">=3.10"
dependencies = []
keywords = ["ink", "interactive fiction", "compiler", "narrative", "binary format"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Compilers",
    "Topic :: Games/Entertainment",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
inkbin = "inkbin.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["inkbin"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bendc"
version = "0.1.0"
description = "Parser and lowering passes for an indentation-based functional language, with interaction-net readback helpers and an HVM runner"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "compiler",
    "parser",
    "interaction-nets",
    "lambda-calculus",
    "functional-programming",
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
    "Topic :: Software Development :: Compilers",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["bendc"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true

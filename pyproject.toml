[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mshell"
version = "0.1.0"
description = "Core of a small POSIX-style shell: variable expansion, builtins, redirections and pipelines"
requires-python = ">=3.10"
dependencies = []
keywords = ["shell", "pipeline", "builtins", "redirection", "environment"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Shells",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["mshell"]

[tool.hatch.build.targets.sdist]
include = ["mshell", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "orusvm"
version = "0.7.0"
description = "A register-based virtual machine with typed values, 32-bit instruction words and bytecode chunks"
requires-python = ">=3.10"
dependencies = []
keywords = ["virtual machine", "bytecode", "register vm", "interpreter"]
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
    "Topic :: Software Development :: Interpreters",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["orusvm"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "notes4l"
version = "0.1.0"
description = "Parser for N4L, a plain-text notes language that builds a semantic spacetime graph"
requires-python = ">=3.10"
dependencies = []
keywords = ["notes", "knowledge-graph", "semantic-spacetime", "parser", "n4l"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Education",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Text Processing :: Linguistic",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
n4l = "notes4l.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["notes4l"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

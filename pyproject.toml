[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "clustrctrl"
version = "0.1.0"
description = "A terminal dashboard for launching, watching and cancelling simulated background tasks"
requires-python = ">=3.10"
dependencies = []
keywords = ["terminal", "tui", "tasks", "monitoring", "curses"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console :: Curses",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
clustrctrl = "clustrctrl.app:main"

[tool.hatch.build.targets.wheel]
packages = ["clustrctrl"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

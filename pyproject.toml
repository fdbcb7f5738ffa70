[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "beeloc"
version = "0.1.0"
description = "Occupancy-grid maps, an odometry motion model and a small logging toolkit for particle-filter localisation"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = ["localization", "particle filter", "occupancy grid", "odometry", "robotics", "logging"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering",
    "Topic :: System :: Logging",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["beeloc"]

[tool.pytest.ini_options]
addopts = "-ra"

[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mzdmap"
version = "0.2.1"
description = "Tile-based tileset editing core: selection matrices, layered images, room drawing groups, tags and tilesets"
requires-python = ">=3.10"
dependencies = [
    "pillow",
]
keywords = ["map", "tileset", "tiles", "pixel-art", "editor", "selection"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Graphics :: Editors :: Raster-Based",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["mzdmap"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true

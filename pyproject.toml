[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cargo_hack"
version = "0.1.0"
description = "Building blocks for checking Cargo workspaces across feature combinations and toolchain versions"
requires-python = ">=3.10"
dependencies = [
    "tomlkit",
]
keywords = ["cargo", "rust", "features", "msrv", "rustup", "ci"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["cargo_hack"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true

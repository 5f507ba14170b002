[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "fvmesh"
version = "0.1.0"
description = "Two-dimensional unstructured hybrid meshes for finite volume solvers: reading, topology, geometry and cell orderings"
requires-python = ">=3.10"
keywords = ["mesh", "finite volume", "unstructured", "gmsh", "su2", "cfd", "ordering"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Physics",
    "Topic :: Scientific/Engineering :: Mathematics",
]
dependencies = [
    "numpy",
    "scipy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["fvmesh"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

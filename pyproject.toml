[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dedisp"
version = "0.1.0"
description = "Incoherent dedispersion of radio-astronomy filterbank data, with a frequency-domain implementation on NumPy"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = ["dedispersion", "radio astronomy", "pulsar", "FFT", "filterbank"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Astronomy",
]

[project.optional-dependencies]
test = [
    "pytest",
    "numpy",
]

[tool.hatch.build.targets.wheel]
packages = ["dedisp"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

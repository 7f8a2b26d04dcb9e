[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kymatools"
version = "0.1.0"
description = "CI tooling helpers: image reference extraction, Azure DevOps pipeline helpers, structured logging and cloud message types"
requires-python = ">=3.10"
keywords = ["ci", "prow", "azure-devops", "container-images", "terraform", "logging", "pubsub", "dns"]
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
    "Topic :: Software Development :: Build Tools",
]
dependencies = [
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["kymatools"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true

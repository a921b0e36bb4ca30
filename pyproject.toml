[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dddkit"
version = "0.1.0"
description = "Building blocks for domain-driven service applications: errors, caches, config, IDs, paging, JWT and logging."
requires-python = ">=3.11"
keywords = [
    "ddd",
    "service",
    "ttl-cache",
    "jwt",
    "rate-limit",
    "configuration",
    "logging",
    "unique-id",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
]
dependencies = [
    "pyjwt",
    "tomli-w",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["dddkit"]

[tool.hatch.build.targets.sdist]
include = [
    "dddkit",
    "tests",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
warn_redundant_casts = true

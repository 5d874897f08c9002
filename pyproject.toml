[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cartorder"
version = "0.1.0"
description = "Shopping carts, orders with warehouse reservations, an order status outbox and status notifications"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = [
    "cart",
    "checkout",
    "orders",
    "warehouse",
    "stock",
    "reservation",
    "outbox",
    "rate-limiter",
    "notifications",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["cartorder"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true

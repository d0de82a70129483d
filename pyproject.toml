[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "chatgate"
version = "0.1.0"
description = "API gateway, chat room fan-out, admin user store and JWT signing primitives for a small chat service"
requires-python = ">=3.10"
keywords = ["chat", "api-gateway", "mysql", "jwt", "pubsub", "server-sent-events"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Communications :: Chat",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: Security :: Cryptography",
]
dependencies = [
    "cryptography",
    "pymysql",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
chatgate = "chatgate.gateway:main"

[tool.hatch.build.targets.wheel]
packages = ["chatgate"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true

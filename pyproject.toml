[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "shmring"
version = "0.1.0"
description = "Shared-memory ring buffer publisher for low-latency local publish-subscribe"
requires-python = ">=3.10"
dependencies = []
keywords = ["shared memory", "ring buffer", "publish-subscribe", "ipc", "seqlock"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Operating System :: Microsoft :: Windows",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
shmring = "shmring.cli:main"
shmring-hello = "shmring.cli:hello_world_main"
shmring-perf = "shmring.cli:performance_main"

[tool.hatch.build.targets.wheel]
packages = ["shmring"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true

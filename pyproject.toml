[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "fastqueue"
version = "0.1.0"
description = "Storage, caching and cluster-coordination building blocks for a partitioned message queue"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "message-queue",
    "leader-election",
    "partitioning",
    "lru-cache",
    "consumer-groups",
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
    "Topic :: System :: Distributed Computing",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["fastqueue"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

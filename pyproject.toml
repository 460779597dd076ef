[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "nestnet"
version = "0.1.0"
description = "Reactor-style networking: epoll event loops, a timing wheel, TCP/UDP servers and clients, byte buffers and a DNS refresher"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "networking",
    "event-loop",
    "reactor",
    "epoll",
    "tcp",
    "udp",
    "timing-wheel",
    "buffer",
    "dns",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["nestnet"]

[tool.hatch.build.targets.sdist]
include = ["nestnet", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"

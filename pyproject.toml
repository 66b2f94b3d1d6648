[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "protoflex"
version = "0.1.0"
description = "Run programs inside per-tunnel WireGuard network namespaces, managed through a small JSON web API"
requires-python = ">=3.10"
keywords = ["wireguard", "network-namespace", "tunnel", "vpn", "flask", "sqlite"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
]
dependencies = [
    "flask",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
protoflex-web = "protoflex.web:main"

[tool.hatch.build.targets.wheel]
packages = ["protoflex"]

[tool.pytest.ini_options]
addopts = "-ra"

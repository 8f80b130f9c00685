[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "djiremote"
version = "0.1.0"
description = "Command, status and connection logic for remote-controlling DJI action cameras over BLE"
requires-python = ">=3.10"
dependencies = []
keywords = ["dji", "camera", "remote", "ble", "osmo", "action-camera"]
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
    "Topic :: Multimedia :: Video :: Capture",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["djiremote"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

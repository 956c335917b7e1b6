[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "primotape"
version = "0.1.0"
description = "Tools for Microkey Primo tape images: .pp to .ptp, .ptp to .pri and C source, and turbo-loading WAV generation"
requires-python = ">=3.10"
dependencies = []
keywords = ["primo", "microkey", "ptp", "pri", "tape", "retrocomputing", "wav", "turbo loader"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
    "Topic :: Multimedia :: Sound/Audio :: Conversion",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
pp2ptp = "primotape.pp2ptp:main"
ptp2c = "primotape.ptp2c:main"
ptp2pri = "primotape.ptp2pri:main"
ptp2turbo = "primotape.turbo:main"
ptp2turbo5 = "primotape.turbo5:main"

[tool.hatch.build.targets.wheel]
packages = ["primotape"]

[tool.pytest.ini_options]
addopts = "-ra"

[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pahsda"
version = "0.1.0"
description = "Protocol analyzer that highlights structured data frames as they change"
requires-python = ">=3.10"
keywords = ["protocol", "analyzer", "serial", "tcp", "frames", "traffic", "highlighting"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking :: Monitoring",
    "Topic :: Terminals :: Serial",
]
dependencies = [
    "pyserial",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
pahsda = "pahsda.session:main"

[tool.hatch.build.targets.wheel]
packages = ["pahsda"]

[tool.pytest.ini_options]
addopts = "-ra"

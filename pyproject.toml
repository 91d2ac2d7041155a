[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rivetweb"
version = "0.1.0"
description = "Rivet template to Tcl script translation, URL decoding and HTTP form/multipart request parsing"
requires-python = ">=3.10"
dependencies = []
keywords = ["template", "rivet", "tcl", "multipart", "form-data", "urlencoded", "http", "query-string"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
rivetweb = "rivetweb.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["rivetweb"]

[tool.pytest.ini_options]
addopts = "-ra"

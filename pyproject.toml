[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "barf"
version = "0.1.0"
description = "Basically, A Remarkable Framework: a small WSGI web framework with routing, sub-routers, middleware, CORS and env loading"
requires-python = ">=3.10"
dependencies = []
keywords = ["wsgi", "web", "framework", "router", "middleware", "cors", "http", "dotenv"]
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
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
barf-examples = "barf.examples:main"

[tool.hatch.build.targets.wheel]
packages = ["barf"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

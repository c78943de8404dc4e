[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gptclient"
version = "0.1.0"
description = "A synchronous client for the OpenAI-compatible HTTP API: completions, chat, assistants, audio and batches."
requires-python = ">=3.10"
dependencies = [
    "httpx",
]
keywords = ["openai", "gpt", "chat", "completions", "assistants", "api", "client", "azure"]
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
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Topic :: Internet :: WWW/HTTP",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["gptclient"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true

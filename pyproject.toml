[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tenantpolicy"
version = "0.1.0"
description = "Resource quantities, quota checks and RBAC policy helpers for multi-tenant cluster administration"
requires-python = ">=3.10"
dependencies = []
keywords = ["quota", "rbac", "policy", "multi-tenancy", "quantity"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["tenantpolicy"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

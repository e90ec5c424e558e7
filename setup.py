"""
Setuptools build script for the shell agent.

This file allows installation of the ``shellagent`` package via
``pip install .``.  It declares the required dependencies and
registers a console script entry point named ``shell-agent``.  When
installed, users can invoke the CLI with ``shell-agent`` from their
shell.

The ``test`` extra pulls in the tools needed to run the test suite.
"""

from setuptools import setup, find_packages

setup(
    name="shellagent",
    version="0.1.0",
    description="AI-powered CLI tool generating shell commands from natural language with local Ollama models",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "click>=7.0",
        "PyYAML>=5.4",
        "httpx>=0.24",
        "fastapi>=0.80",
        "uvicorn>=0.20",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "respx>=0.20",
        ],
    },
    entry_points={
        "console_scripts": [
            "shell-agent=shellagent.cli:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
)

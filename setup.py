"""
Setup script for adaptive-puzzle-engine.

The engine personalizes which puzzle a learner sees next in a
cognitive-training game. It classifies the learner's current state from
behavioral history, builds a candidate pool, scores candidates with
success and engagement models and learns from every completion.

The 'puzzle-engine' command runs recommendations, simulations and
profile reports from the terminal.
"""

from setuptools import find_packages, setup

setup(
    name="adaptive-puzzle-engine",
    version="1.0.0",
    description="Adaptive recommendation engine for cognitive-training puzzles",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_packages(include=["src", "src.*"]),
    py_modules=["config"],
    python_requires=">=3.11",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Database
        "sqlalchemy>=2.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "puzzle-engine=src.cli.main:run",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Games/Entertainment :: Puzzle Games",
    ],
    keywords="adaptive learning puzzles recommendation cognitive-training",
)

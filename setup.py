"""Setup script for modeflow Python package."""

from setuptools import setup, find_packages

setup(
    name="modeflow",
    version="0.1.0",
    description="Workflow modes and per-mode tool permissions for autonomous agents",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "PyYAML>=6.0",
    ],
    extras_require={
        "dev": ["pytest", "black", "mypy"],
    },
)

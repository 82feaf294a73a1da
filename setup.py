#!/usr/bin/env python3
"""Setup script for threadfinder."""

from setuptools import setup, find_packages


setup(
    name="threadfinder",
    version="1.0.0",
    description="Locate coding-agent transcripts and reconstruct subagent status",
    author="Lightspeed DMS",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        "pydantic>=2.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    include_package_data=True,
)

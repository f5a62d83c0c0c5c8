"""Setup configuration for convoy."""

from setuptools import setup, find_packages

setup(
    name="convoy",
    version="0.1.0",
    description="Test runner orchestrating pluggable drivers and reporters",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "requests>=2.31.0",
        "pyyaml>=6.0",
        "json5>=0.9.0",
        "click>=8.1.0",
        "flask>=3.0.0",
        "werkzeug>=3.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "convoy=convoy.cli:main",
        ],
    },
)

"""convoy - runs test suites through pluggable drivers and reporters."""

__version__ = "0.1.0"

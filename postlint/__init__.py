"""postlint: linter and article scaffolder for a Jekyll _posts corpus of AWS SDK exception articles."""

__version__ = "0.3.0"

"""
trnkit Command-Line Interface
=============================

This package provides the command-line tool of trnkit:

- **trntool**: List, validate, sort, and edit turn files

The tool is implemented as a Click-based CLI application with
help for every command and consistent error reporting.
"""

__all__ = ["trntool"]

"""
svm CLI module.

This module provides the command-line interface for svmkit.
"""

from .parser import CLI, main

__all__ = ["CLI", "main"]

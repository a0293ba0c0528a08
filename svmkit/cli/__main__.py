"""
Entry point for running the svm CLI as a module.

Usage: python -m svmkit.cli [toolchain] [action] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()

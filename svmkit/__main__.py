"""
Entry point for running svm as a module.

Usage: python -m svmkit [toolchain] [action] [options]
"""

from svmkit.cli.parser import main

if __name__ == "__main__":
    main()

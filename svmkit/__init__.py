"""
svmkit - SDK version manager.

Installs and switches between versions of Node.js, Go, Java, Python and .NET,
keeping one active version per toolchain behind a stable 'current' link.
"""

__version__ = "0.1.0"

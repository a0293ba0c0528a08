"""
Toolchain lifecycle for svmkit.

Resolution, archive cache, installation, 'current' link management and
environment application, plus the ToolchainManager facade that combines them.
Import the submodules directly; providers depend on the resolver and cache.
"""

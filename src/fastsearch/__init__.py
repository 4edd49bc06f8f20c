"""
Fast Search - Core Package

Finds files under one or more directories by name, size, modification time
and access rights, and searches matching files for literal words using a
pool of worker threads that runs alongside the directory walk.
"""

__version__ = "0.1.0"
__author__ = "Fast Search Team"

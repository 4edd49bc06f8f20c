"""
Search tools for Fast Search.

This module contains the filter pipeline, the directory walker, the content
search worker pool, the shutdown coordinator and the engine that ties them together.
"""

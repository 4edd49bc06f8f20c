"""
Configuration management package for Fast Search.

This package provides settings parsing and validation, and the builder that
turns raw criteria values into a validated SearchCriteria.
"""

from .parser import (
    ConfigParser,
    ConfigParseResult,
    ConfigurationError,
    load_config,
    validate_config_file,
    create_config_template,
    build_criteria
)

__all__ = [
    'ConfigParser',
    'ConfigParseResult',
    'ConfigurationError',
    'load_config',
    'validate_config_file',
    'create_config_template',
    'build_criteria'
]

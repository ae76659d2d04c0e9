"""
CLI package for ipmifan

This package provides the command-line interface for querying
sensors and setting fan duty cycles.
"""

from .interface import main

__all__ = ['main']

"""Command-line interface module for Robust Markup.

This module provides CLI tools for normalizing markup files and inspecting how
they are classified and decoded.
"""

from .main import main

__all__ = ["main"]

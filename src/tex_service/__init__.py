"""
TeX Render Service package.

This module provides a FastAPI application that compiles LaTeX sources and
returns the result as PNG, SVG or compressed PDF at `/png`, `/svg` and `/pdf`.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"

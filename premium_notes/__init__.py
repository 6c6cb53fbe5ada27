"""
Premium Notes client package.

This module exposes the controller factory so that the Streamlit UI and
scripts can import `create_controller` without causing circular imports.
"""

from .app import create_controller

__all__ = ["create_controller"]

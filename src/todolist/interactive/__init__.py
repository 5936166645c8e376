"""Textual interactive mode."""

from .app import TodoApp

__all__ = ["TodoApp"]

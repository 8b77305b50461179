"""Tool system for Neorium."""

from neorium.tools.base import Tool
from neorium.tools.registry import ToolRegistry

__all__ = ["Tool", "ToolRegistry"]

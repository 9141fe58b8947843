"""Tool Registry - tool registration, discovery and parameter validation.

This module provides the per-gateway ``ToolRegistry``, the ``@gateway_tool``
decorator for declaring tools next to their handlers, and the parameter
validator that checks calls against a tool's declared schema.
"""

from .decorator import gateway_tool
from .registry import ToolRegistry
from .validation import validate_params

__all__ = ["gateway_tool", "ToolRegistry", "validate_params"]

"""ASGI middleware for the MCP server.

This module provides:
- Origin header validation for the MCP endpoint
"""

from .origin import OriginValidationMiddleware, is_valid_origin

__all__ = [
    "OriginValidationMiddleware",
    "is_valid_origin",
]

"""Tool registry — discovered tools, validation, and export."""

from toolchat.core.registry.models import ParameterSpec, Tool

__all__ = ["ParameterSpec", "Tool"]

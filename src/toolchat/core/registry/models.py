"""Canonical tool and parameter definitions."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

ParameterType = Literal["string", "integer", "number", "boolean", "array", "object"]

PARAMETER_TYPES: tuple[str, ...] = ("string", "integer", "number", "boolean", "array", "object")


class ParameterSpec(BaseModel):
    """One tool argument, independent of the raw schema it was read from."""

    model_config = {"frozen": True}

    name: str
    type: ParameterType = "string"
    description: str | None = None
    required: bool = False
    default: str | None = None
    enum_values: list[str] | None = None


class Tool(BaseModel):
    """A discovered tool with its inferred parameters."""

    model_config = {"frozen": True}

    name: str
    description: str = ""
    parameters: list[ParameterSpec] = []
    category: str | None = None
    examples: list[str] | None = None
    schema_was_empty: bool = True
    """``True`` when the provider sent no schema (or ``{}``)."""

    @property
    def required_parameters(self) -> list[ParameterSpec]:
        return [p for p in self.parameters if p.required]

    def parameter(self, name: str) -> ParameterSpec | None:
        for param in self.parameters:
            if param.name == name:
                return param
        return None

    @property
    def needs_caution(self) -> bool:
        """Zero parameters were inferred although the provider did send a schema."""
        return not self.parameters and not self.schema_was_empty

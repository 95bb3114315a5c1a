"""Schema inference — normalises whatever a provider sends as ``inputSchema``.

Providers describe tool arguments in many shapes: proper JSON Schema, a
flattened ``{"name": {"type": ...}}`` mapping, ``params``/``parameters``
blocks, ``oneOf`` option lists, array item schemas, a JSON string, a list of
key/value pairs, or plain prose. :func:`infer` runs a fixed chain of rules
and stops at the first one that yields at least one parameter:

1. ``properties`` mapping (``required`` list marks required keys).
2. Direct parameters: top-level keys whose value looks like a property,
   plus entries of ``params``/``parameters`` mappings.
3. Nested structures: ``oneOf``/``anyOf``/``allOf`` option properties and,
   for ``type: array`` schemas, ``items.properties`` (named ``items.<key>``).
4. Free text: a ``parameter: <name>`` phrase or the first quoted identifier.
5. Nothing matched: no parameters. Never guess further.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from toolchat.core.registry.models import ParameterSpec, ParameterType
from toolchat.protocols.errors import SchemaInferenceWarning

logger = logging.getLogger(__name__)

_TYPE_ALIASES: dict[str, ParameterType] = {
    "string": "string",
    "str": "string",
    "text": "string",
    "integer": "integer",
    "int": "integer",
    "number": "number",
    "float": "number",
    "double": "number",
    "boolean": "boolean",
    "bool": "boolean",
    "array": "array",
    "list": "array",
    "object": "object",
    "dict": "object",
}

_SCHEMA_KEYWORDS = frozenset({
    "properties", "required", "type", "items", "oneOf", "anyOf", "allOf",
    "params", "parameters", "description", "title", "$schema", "additionalProperties",
    "enum", "default",
})

# Keys a schema may carry without declaring any parameter.
_NEUTRAL_KEYS = frozenset({
    "type", "properties", "required", "additionalProperties", "$schema", "title", "description",
})

_PHRASE_RE = re.compile(r"(?:param|parameter|arg|argument):?\s+[\"']?(\w+)[\"']?", re.IGNORECASE)
_QUOTED_RE = re.compile(r"[\"'](\w+)[\"']")


def normalize_type(value: Any) -> ParameterType:
    """Map a raw ``type`` value onto one of the six canonical types.

    Type lists take the first non-``null`` member; ``array<x>`` is an array;
    anything unknown or missing is a string.
    """
    if isinstance(value, list):
        value = next((v for v in value if v != "null"), None)
    if not isinstance(value, str):
        return "string"
    lowered = value.strip().lower()
    if lowered.startswith("array<"):
        return "array"
    return _TYPE_ALIASES.get(lowered, "string")


def as_mapping(value: Any) -> dict[str, Any] | None:
    """Return *value* as a mapping, folding key/value pair lists.

    Accepts ``[["k", v], ...]`` and the alternating ``["k", v, "k2", v2]``
    form. Anything else that is not already a dict gives ``None``.
    """
    if isinstance(value, dict):
        return value
    if not isinstance(value, list) or not value:
        return None
    if all(isinstance(item, (list, tuple)) and len(item) == 2 and isinstance(item[0], str) for item in value):
        return {item[0]: item[1] for item in value}
    if len(value) % 2 == 0 and all(isinstance(key, str) for key in value[::2]):
        return dict(zip(value[::2], value[1::2]))
    return None


def is_empty_schema(raw: Any) -> bool:
    """``True`` when *raw* declares no parameters at all (absent, ``{}``, blank)."""
    if raw is None:
        return True
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return True
        try:
            raw = json.loads(text)
        except ValueError:
            return False
    if isinstance(raw, (list, dict)) and not raw:
        return True
    schema = as_mapping(raw)
    if schema is None:
        return False
    return set(schema) <= _NEUTRAL_KEYS and not schema.get("properties") and not schema.get("required")


def infer(raw: Any) -> list[ParameterSpec]:
    """Infer canonical parameters from a raw tool schema."""
    if raw is None:
        return []

    text: str | None = None
    if isinstance(raw, str):
        stripped = raw.strip()
        if not stripped:
            return []
        try:
            raw = json.loads(stripped)
        except ValueError:
            text = stripped

    if text is None:
        schema = as_mapping(raw)
        if schema is None:
            logger.debug("Schema is neither a mapping nor a pair list: %r", raw)
            return []
        for rule in (_from_properties, _from_direct, _from_nested):
            params = rule(schema)
            if params:
                logger.debug("Inferred %d parameter(s) via %s", len(params), rule.__name__)
                return params
        description = schema.get("description")
        text = description if isinstance(description, str) else None

    if text:
        params = _from_text(text)
        if params:
            logger.debug("Inferred parameter %r from free text", params[0].name)
            return params

    return []


def check_inferred(tool_name: str, raw: Any, params: list[ParameterSpec]) -> bool:
    """Log the caution state for a tool; returns ``True`` when it applies.

    Zero parameters inferred from a non-empty schema means the tool may still
    expect opaque input. That is worth a warning, never an error.
    """
    if params or is_empty_schema(raw):
        return False
    logger.warning(
        "%s: no parameters inferred for tool %r from a non-empty schema",
        SchemaInferenceWarning.__name__,
        tool_name,
    )
    return True


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


def _required_names(schema: dict[str, Any]) -> set[str]:
    required = schema.get("required")
    if isinstance(required, str):
        return {required}
    if isinstance(required, list):
        return {str(name) for name in required if isinstance(name, (str, int))}
    return set()


def _stringify(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value)


def _build(name: str, prop: Any, *, required: bool, type_override: ParameterType | None = None) -> ParameterSpec:
    prop = as_mapping(prop) or {}
    enum = prop.get("enum")
    default = prop.get("default")
    description = prop.get("description")
    return ParameterSpec(
        name=name,
        type=type_override or normalize_type(prop.get("type")),
        description=description if isinstance(description, str) else None,
        required=required,
        default=_stringify(default) if default is not None else None,
        enum_values=[_stringify(v) for v in enum] if isinstance(enum, list) and enum else None,
    )


def _from_properties(schema: dict[str, Any]) -> list[ParameterSpec]:
    properties = as_mapping(schema.get("properties"))
    if not properties:
        return []
    required = _required_names(schema)
    return [_build(name, prop, required=name in required) for name, prop in properties.items()]


def _from_direct(schema: dict[str, Any]) -> list[ParameterSpec]:
    required = _required_names(schema)
    params: list[ParameterSpec] = []
    seen: set[str] = set()

    for key, value in schema.items():
        if key in _SCHEMA_KEYWORDS:
            continue
        prop = as_mapping(value)
        if prop is not None and "type" in prop:
            params.append(_build(key, prop, required=key in required or prop.get("required") is True))
            seen.add(key)

    for block_key in ("params", "parameters"):
        block = as_mapping(schema.get(block_key))
        if not block:
            continue
        if "properties" in block:
            # A nested JSON Schema under "parameters".
            nested = [p for p in _from_properties(block) if p.name not in seen]
            params.extend(nested)
            seen.update(p.name for p in nested)
            continue
        for key, value in block.items():
            if key in seen or as_mapping(value) is None:
                continue
            prop = as_mapping(value) or {}
            params.append(_build(key, prop, required=key in required or prop.get("required") is True))
            seen.add(key)

    return params


def _from_nested(schema: dict[str, Any]) -> list[ParameterSpec]:
    params: list[ParameterSpec] = []
    seen: set[str] = set()

    for combinator in ("oneOf", "anyOf", "allOf"):
        options = schema.get(combinator)
        if not isinstance(options, list):
            continue
        for option in options:
            option_map = as_mapping(option)
            if option_map is None:
                continue
            # Only allOf makes an option's required keys binding for every call.
            for param in _from_properties(option_map):
                if param.name in seen:
                    continue
                if combinator != "allOf" and param.required:
                    param = param.model_copy(update={"required": False})
                params.append(param)
                seen.add(param.name)

    if normalize_type(schema.get("type")) == "array":
        items = as_mapping(schema.get("items"))
        item_props = as_mapping(items.get("properties")) if items else None
        if item_props:
            for name, prop in item_props.items():
                full_name = f"items.{name}"
                if full_name not in seen:
                    params.append(_build(full_name, prop, required=False, type_override="array"))
                    seen.add(full_name)

    return params


def _from_text(text: str) -> list[ParameterSpec]:
    match = _PHRASE_RE.search(text)
    if match and match.group(1) not in _SCHEMA_KEYWORDS:
        return [ParameterSpec(name=match.group(1))]
    for match in _QUOTED_RE.finditer(text):
        if match.group(1) not in _SCHEMA_KEYWORDS:
            return [ParameterSpec(name=match.group(1))]
    return []

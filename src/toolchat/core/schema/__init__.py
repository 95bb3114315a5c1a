"""Schema inference for heterogeneous tool schemas."""

from toolchat.core.schema.inference import check_inferred, infer, is_empty_schema, normalize_type

__all__ = ["check_inferred", "infer", "is_empty_schema", "normalize_type"]

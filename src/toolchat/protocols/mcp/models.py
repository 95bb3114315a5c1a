"""MCP models — JSON-RPC 2.0 messages, tool definitions, and content segments.

Implements the message format used by the Model Context Protocol for
tool discovery (``tools/list``) and execution (``tools/call``).
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, ValidationError, model_validator

from toolchat.protocols.errors import ToolExecutionError

# ---------------------------------------------------------------------------
# JSON-RPC 2.0 envelope
# ---------------------------------------------------------------------------

RequestId = int | str


class JsonRpcError(BaseModel):
    """A JSON-RPC 2.0 error object."""

    code: int
    message: str
    data: Any = None


class JsonRpcMessage(BaseModel):
    """Any JSON-RPC 2.0 frame: request, notification, or response.

    Exactly one of ``method`` or ``result``/``error`` is present. A frame
    without ``id`` never gets a reply.
    """

    jsonrpc: str = "2.0"
    id: RequestId | None = None
    method: str | None = None
    params: Any = None
    result: Any = None
    error: JsonRpcError | None = None

    @model_validator(mode="after")
    def _check_shape(self) -> JsonRpcMessage:
        is_response = "result" in self.model_fields_set or self.error is not None
        if self.method is not None and is_response:
            msg = "message carries both 'method' and 'result'/'error'"
            raise ValueError(msg)
        if self.method is None and not is_response:
            msg = "message carries neither 'method' nor 'result'/'error'"
            raise ValueError(msg)
        return self

    @property
    def is_request(self) -> bool:
        return self.method is not None and self.id is not None

    @property
    def is_notification(self) -> bool:
        return self.method is not None and self.id is None

    @property
    def is_response(self) -> bool:
        return self.method is None

    @classmethod
    def request(cls, method: str, request_id: RequestId, params: Any = None) -> JsonRpcMessage:
        return cls(method=method, id=request_id, params=params)

    @classmethod
    def notification(cls, method: str, params: Any = None) -> JsonRpcMessage:
        return cls(method=method, params=params)

    def to_wire(self) -> dict[str, Any]:
        """Dump only the members that belong on the wire for this frame kind."""
        data: dict[str, Any] = {"jsonrpc": self.jsonrpc}
        if self.id is not None:
            data["id"] = self.id
        if self.method is not None:
            data["method"] = self.method
            if self.params is not None:
                data["params"] = self.params
            return data
        if self.error is not None:
            data["error"] = self.error.model_dump(exclude_none=True)
        else:
            data["result"] = self.result
        return data


# ---------------------------------------------------------------------------
# Content segments returned by tools/call
# ---------------------------------------------------------------------------


class TextSegment(BaseModel):
    type: Literal["text"] = "text"
    text: str = ""


class ImageSegment(BaseModel):
    type: Literal["image"] = "image"
    data: str = ""
    mime_type: str | None = Field(default=None, alias="mimeType")

    model_config = {"populate_by_name": True}


class AudioSegment(BaseModel):
    type: Literal["audio"] = "audio"
    data: str = ""
    mime_type: str | None = Field(default=None, alias="mimeType")

    model_config = {"populate_by_name": True}


class ResourceSegment(BaseModel):
    type: Literal["resource"] = "resource"
    resource: dict[str, Any] = {}

    @property
    def uri(self) -> str:
        return str(self.resource.get("uri", ""))


class UnknownSegment(BaseModel):
    """Any segment whose ``type`` this client does not understand."""

    type: Literal["unknown"] = "unknown"
    raw: dict[str, Any] = {}


ContentSegment = Annotated[
    TextSegment | ImageSegment | AudioSegment | ResourceSegment | UnknownSegment,
    Field(discriminator="type"),
]
"""Tagged union over the ``type`` member of a content item."""

_KNOWN_SEGMENT_TYPES = {"text", "image", "audio", "resource"}


def _coerce_segment(raw: Any) -> dict[str, Any]:
    if isinstance(raw, dict) and raw.get("type") in _KNOWN_SEGMENT_TYPES:
        return raw
    return {"type": "unknown", "raw": raw if isinstance(raw, dict) else {"value": raw}}


AnySegment = TextSegment | ImageSegment | AudioSegment | ResourceSegment | UnknownSegment


def render_segment(segment: AnySegment) -> str:
    """Render one content segment as chat text."""
    if isinstance(segment, TextSegment):
        return segment.text
    if isinstance(segment, ImageSegment):
        return f"[image: {segment.mime_type or 'unknown'}]"
    if isinstance(segment, AudioSegment):
        return f"[audio: {segment.mime_type or 'unknown'}]"
    if isinstance(segment, ResourceSegment):
        return f"[resource: {segment.uri}]"
    return "[unknown content]"


# ---------------------------------------------------------------------------
# MCP-specific payloads
# ---------------------------------------------------------------------------


class MCPToolDef(BaseModel):
    """A tool definition as returned by ``tools/list``.

    ``input_schema`` is kept raw: providers send anything from a proper JSON
    Schema to a string or a list of pairs, and normalisation is the schema
    inference engine's job.
    """

    model_config = {"populate_by_name": True}

    name: str
    description: str = ""
    input_schema: Any = Field(default=None, alias="inputSchema")


class CallToolResult(BaseModel):
    """The ``result`` payload of a ``tools/call`` response."""

    model_config = {"populate_by_name": True}

    content: list[ContentSegment] = []
    is_error: bool = Field(default=False, alias="isError")

    @model_validator(mode="before")
    @classmethod
    def _tag_unknown_segments(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("content"), list):
            data = {**data, "content": [_coerce_segment(item) for item in data["content"]]}
        return data

    @classmethod
    def from_response(cls, tool_name: str, raw: Any) -> CallToolResult:
        """Parse a raw ``tools/call`` result; a malformed one is a failed execution."""
        try:
            return cls.model_validate(raw if isinstance(raw, dict) else {})
        except ValidationError as exc:
            detail = exc.errors()[0]["msg"] if exc.errors() else str(exc)
            raise ToolExecutionError(tool_name, f"malformed result: {detail}") from exc

    @property
    def text(self) -> str:
        """All segments rendered and joined by newlines."""
        return "\n".join(render_segment(segment) for segment in self.content)


class ServerInfo(BaseModel):
    name: str = ""
    version: str = ""

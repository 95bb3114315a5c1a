"""OpenTelemetry tracing helpers for toolchat.

Thin wrapper around the OpenTelemetry API so the rest of the codebase can
call ``get_tracer()`` without caring whether the SDK is installed. Without
a configured SDK the API hands back no-op tracers.

Usage::

    from toolchat.utils.telemetry import get_tracer

    _tracer = get_tracer(__name__)

    with _tracer.start_as_current_span("registry.refresh") as span:
        span.set_attribute(ATTR_TOOL_COUNT, 3)

To activate real tracing, call :func:`configure_telemetry` once at startup
(requires the ``otel`` extra: ``pip install toolchat[otel]``).
"""

from __future__ import annotations

from typing import Any

from opentelemetry import trace

# ---------------------------------------------------------------------------
# Semantic attribute keys used throughout toolchat instrumentation
# ---------------------------------------------------------------------------

ATTR_RPC_METHOD = "toolchat.rpc.method"
ATTR_RPC_ID = "toolchat.rpc.id"
ATTR_PROVIDER = "toolchat.provider"
ATTR_TOOL_NAME = "toolchat.tool.name"
ATTR_TOOL_COUNT = "toolchat.tool.count"
ATTR_MODEL = "toolchat.model"
ATTR_FINISH_REASON = "toolchat.finish_reason"
ATTR_TOKENS_PROMPT = "toolchat.tokens.prompt"
ATTR_TOKENS_COMPLETION = "toolchat.tokens.completion"
ATTR_TOKENS_TOTAL = "toolchat.tokens.total"
ATTR_ITERATION = "toolchat.iteration"
ATTR_TOOLS_EXECUTED = "toolchat.tools_executed"

_INSTRUMENTATION_NAME = "toolchat"


def get_tracer(name: str | None = None) -> trace.Tracer:
    """Return a :class:`~opentelemetry.trace.Tracer` for *name*.

    If the OpenTelemetry SDK has not been configured the returned tracer
    is a no-op.
    """
    return trace.get_tracer(name or _INSTRUMENTATION_NAME)


def configure_telemetry(
    *,
    service_name: str = "toolchat",
    export_to_console: bool = True,
    otlp_endpoint: str | None = None,
) -> None:
    """Configure OpenTelemetry tracing (requires ``toolchat[otel]``).

    Parameters
    ----------
    service_name:
        The ``service.name`` resource attribute.
    export_to_console:
        If ``True``, export spans as JSON to stdout.
    otlp_endpoint:
        If set, export spans via OTLP/gRPC to this endpoint.

    Raises
    ------
    ImportError
        If the ``opentelemetry-sdk`` package is not installed.
    """
    try:
        from opentelemetry.sdk.resources import Resource  # pyright: ignore[reportMissingImports]
        from opentelemetry.sdk.trace import TracerProvider  # pyright: ignore[reportMissingImports]
        from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor  # pyright: ignore[reportMissingImports]
    except ImportError as exc:
        msg = (
            "opentelemetry-sdk is required for configure_telemetry(). "
            "Install it with: pip install toolchat[otel]"
        )
        raise ImportError(msg) from exc

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))

    if export_to_console:
        from opentelemetry.sdk.trace.export import ConsoleSpanExporter  # pyright: ignore[reportMissingImports]

        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    if otlp_endpoint:
        _add_otlp_exporter(provider, BatchSpanProcessor, otlp_endpoint)

    trace.set_tracer_provider(provider)


def _add_otlp_exporter(provider: Any, processor_cls: Any, endpoint: str) -> None:
    """Attach the OTLP gRPC exporter."""
    try:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter  # pyright: ignore[reportMissingImports]
    except ImportError as exc:
        msg = (
            "opentelemetry-exporter-otlp is required for OTLP export. "
            "Install it with: pip install toolchat[otel]"
        )
        raise ImportError(msg) from exc

    provider.add_span_processor(processor_cls(OTLPSpanExporter(endpoint=endpoint)))

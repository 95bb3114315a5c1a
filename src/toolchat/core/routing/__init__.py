"""Command routing for direct provider input."""

from toolchat.core.routing.router import RouteDecision, classify, route

__all__ = ["RouteDecision", "classify", "route"]

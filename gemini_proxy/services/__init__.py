"""Service layer: upstream client, stream pipeline and OpenAI formatting."""

from .network_manager import network_manager

__all__ = [
    "network_manager",
]

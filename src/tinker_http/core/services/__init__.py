"""Application services built on top of the core contracts."""

from tinker_http.core.services.client import TinkerClient

__all__ = ["TinkerClient"]

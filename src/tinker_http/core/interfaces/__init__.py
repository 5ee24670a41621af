"""Core interfaces/abstractions.

Why:
- Contracts (Protocol) implemented by concrete adapters.
- The core depends on abstractions; adapters depend on the core.
"""

from tinker_http.core.interfaces.transport import Headers, Transport

__all__ = ["Headers", "Transport"]

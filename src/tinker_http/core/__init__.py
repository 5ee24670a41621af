"""Core: configuration, domain models, proxy resolution, decoding and retry policy."""

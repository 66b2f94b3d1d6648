"""Per-tunnel network namespaces for running programs through WireGuard, with a JSON web API."""

__version__ = "0.1.0"
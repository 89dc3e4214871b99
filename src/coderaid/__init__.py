"""coderaid - shared, lease-based search over a fixed PIN code space."""

__version__ = "0.1.0"

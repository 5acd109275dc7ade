"""EVM instruction tables, call and storage semantics, and execution tracers."""

__version__ = "0.10.0"
__all__ = ["traits", "state", "storage", "calls", "tracing"]
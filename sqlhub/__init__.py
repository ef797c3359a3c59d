"""Multi-vendor SQL access core: pooled connections, script execution and data transfer."""

__version__ = "0.1.0"

__all__ = ["__version__"]

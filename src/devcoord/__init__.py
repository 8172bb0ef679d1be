"""devcoord: coordinate processes sharing one local development server."""

__version__ = "0.1.0"

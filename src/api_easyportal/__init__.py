"""API EasyPortal — run OpenAPI endpoints by hand or in bulk from CSV."""

__version__ = "0.1.0"

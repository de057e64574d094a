"""Multi-tenant file hosting service."""

__version__ = "0.1.0"

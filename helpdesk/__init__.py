"""Helpdesk widget API: session tokens, request signatures, and CORS-wrapped endpoints."""

__version__ = "0.3.0"

"""
Network Layer.

This package owns every HTTP request the application makes.
"""

from .transport import TRANSPORT_ERRORS, HttpTransport

__all__ = ["HttpTransport", "TRANSPORT_ERRORS"]

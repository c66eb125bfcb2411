"""
HTTP Client Module

requests-based HTTP client used by the client-side server connection.
"""

from .client import HttpClient, HttpError, HttpResponse

__all__ = [
    "HttpClient",
    "HttpError",
    "HttpResponse",
]

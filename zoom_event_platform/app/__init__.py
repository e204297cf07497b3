"""
Application package.

The API is organised into logical pieces: ``core`` holds configuration,
persistence and security, ``services`` the business rules (tier limits
and event/meeting synchronisation), ``schemas`` the request and
response models and ``api`` the versioned routers.
"""

from .main import app  # noqa: F401

"""
Top‑level package for the Zoom Event Platform API.

All functionality lives in submodules under ``app``; run the server
with ``uvicorn zoom_event_platform.app.main:app``.
"""

__all__ = []

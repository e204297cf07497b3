"""
Endpoint subpackage for API v1.

Each module defines an ``APIRouter`` for one domain (users, events,
zoom, subscriptions).  The routers are aggregated in ``router.py``.
"""

"""
Top‑level router for version 1 of the API.

This router aggregates the domain routers under a unified prefix.
When new domains are introduced, include their routers here.
"""

from fastapi import APIRouter

from .endpoints import events, subscriptions, users, zoom

router = APIRouter()

router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(events.router, prefix="/events", tags=["events"])
router.include_router(zoom.router, prefix="/zoom", tags=["zoom"])
router.include_router(subscriptions.router, prefix="/subscriptions", tags=["subscriptions"])

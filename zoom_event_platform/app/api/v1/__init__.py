"""
Version 1 of the API.

Breaking changes should be introduced in a new version subpackage
(e.g. ``v2``) so that existing clients keep working.
"""

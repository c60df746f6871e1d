"""
Matters Interfaces Layer
========================

FastAPI route handlers for listing, reading and updating matters.
"""

from src.matters.interfaces.controllers import matters_router

__all__ = ["matters_router"]

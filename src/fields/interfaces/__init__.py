"""
Field Schema Interfaces Layer
=============================

FastAPI route handlers for the field schema catalog.
"""

from src.fields.interfaces.controllers import fields_router

__all__ = ["fields_router"]

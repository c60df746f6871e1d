"""
Shared API Layer
================

Middleware and base schemas used by every module's controllers.
"""

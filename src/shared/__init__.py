"""
Shared Kernel Module
====================

This module contains shared infrastructure used across all bounded
contexts (Fields and Matters).

Architecture Pattern: Modular Monolith
- Each module (fields, matters) is a bounded context
- Shared kernel contains only generic infrastructure

DO NOT add business logic from Fields or Matters to shared kernel.
"""

__version__ = "1.0.0"

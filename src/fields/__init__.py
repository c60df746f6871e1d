"""
Field Schema Catalog Module
===========================

Bounded Context for the per-account schema of typed matter fields.

Responsibilities:
- List the fields an account has defined, with their logical types
- Expose select options and status options (grouped into workflow phases)
- Expose status groups and currency options for editors
"""

__version__ = "1.0.0"

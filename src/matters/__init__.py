"""
Matters Module
==============

Bounded Context for matters (tickets) whose attributes are a dynamic,
per-account schema of typed fields.

Responsibilities:
- List matters sorted by any field of any logical type, or by cycle time / SLA
- Assemble a matter's field-value rows into a display-ready field map
- Derive cycle time and SLA verdict from the status transition history
- Apply typed field updates, recording status transitions atomically
"""

__version__ = "1.0.0"

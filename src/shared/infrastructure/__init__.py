"""
Infrastructure Layer
=====================

Low-level technical concerns:
- Structured logging setup
- Latency timing
"""

"""
Infrastructure Layer
=====================

Low-level technical concerns shared across modules:
- Structured JSON logging setup
- Latency logging helpers
"""

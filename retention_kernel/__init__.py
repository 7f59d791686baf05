"""
Retention Kernel

Domain core for Venezuelan tax-retention fiscal exports:
- Immutable retention transaction and agent configuration records
- Byte-exact field encoding for SENIAT TXT/XML artifacts
- Typed errors and structured logging
- SQLAlchemy-backed configuration and transaction stores
"""

__version__ = "0.1.0"

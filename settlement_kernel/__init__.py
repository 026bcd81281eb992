"""
Settlement Kernel

Value objects, domain types, errors and logging for the wind park
lease revenue settlement:
- Money with currency-derived minor-unit precision
- Immutable lease, parcel and configuration snapshots
- Typed, coded exceptions
- Structured JSON logging
"""

__version__ = "0.1.0"

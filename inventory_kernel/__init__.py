"""
Inventory Kernel

Domain value objects and shared infrastructure for client-side stock
analytics:
- Stock rows, summaries and expiry alerts as frozen value objects
- Typed exception hierarchy with machine-readable codes
- Structured JSON logging
- Injectable clock
"""

__version__ = "0.1.0"

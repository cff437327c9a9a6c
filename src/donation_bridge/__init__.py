"""Sympla → Agroforestree donation bridge.

Receives signed Sympla order webhooks and creates tree-planting donations
for approved orders.
"""

__version__ = "1.0.0"

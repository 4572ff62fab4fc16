"""
Slotwise algorithms package.

The algorithms are organized into the following subpackages:
- availability: Slot generation, busy event normalization and conflict detection
"""

__version__ = "1.0.0"

"""
Tallyboard - Source Package

A small desktop/web tally keeper: named counters grouped into categories,
optional per-counter images, and a secondary income ledger.

DESIGN PRINCIPLES:
1. State is one flat root, loaded once and written back on every change
2. A failed save never interrupts the user
3. Images live in one upload directory and never escape it
4. Image transport is chosen once, at startup
"""

__version__ = "1.0.0"
__author__ = "Tallyboard Team"

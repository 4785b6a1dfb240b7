"""
Slotbook - appointment slot generation and booking for single-calendar businesses.
"""

__version__ = "0.1.0"

"""
Supply Pricing Package

Supply-record pricing for the back office: validated quantity price tiers,
a supply-record store, quoting with default-price fallback, and an HTTP API.
"""

__version__ = "1.0.0"

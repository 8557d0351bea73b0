"""
LiveCount - storefront live-visitor presence and event ingestion
"""

__version__ = "1.0.0"

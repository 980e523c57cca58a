"""
Deribit option chain gamma exposure (GEX).
"""

__version__ = '0.1.0'

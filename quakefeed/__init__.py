"""
QuakeFeed Oracle
Earthquake readings from USGS, reduced to one consensus value across nodes.
"""

__version__ = "1.0.0"

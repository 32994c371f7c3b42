"""
Album Keeper - personal music albums stored on the Internet Archive
"""

__version__ = "0.1.0"

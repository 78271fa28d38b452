"""
Menu Maker - Enhanced categorized menu system
Features: Categories, Info display, Collapse/Expand, Theme selection
"""

__version__ = "2.0.0"

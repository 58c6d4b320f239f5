"""
SheetSync - bidirectional sync between event workbooks and an event store.
"""

__version__ = "1.0.0"

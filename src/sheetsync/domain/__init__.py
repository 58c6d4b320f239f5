"""
Domain layer - pure business entities and rules.

No I/O happens here.
"""

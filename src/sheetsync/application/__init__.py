"""
Application layer - use cases and service orchestration.
"""

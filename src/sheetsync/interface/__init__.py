"""
Interface layer - command line.
"""

"""
Command-line interface for rollsmith.
"""

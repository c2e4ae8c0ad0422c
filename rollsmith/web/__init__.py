"""
Web interface for rollsmith.
"""

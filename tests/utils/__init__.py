"""
Test utilities.
"""

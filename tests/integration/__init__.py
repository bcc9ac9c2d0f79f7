"""
Integration tests.
"""

"""
Test suite for the SaaS kit.
"""

"""
HTTP API: application factory, authentication and route modules.
"""

"""
SaaS Kit
========

Modular FastAPI application kit with a Server-Sent Events hub.
"""

__version__ = "1.0.0"

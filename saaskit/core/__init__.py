"""
Core Business Logic
==================

Framework-level building blocks shared by all modules.

Modules:
- errors: HTTP-status-shaped error hierarchy
- kit: Module registration, dependency ordering and route mounting
- health: Health checkers and aggregated health reports
"""

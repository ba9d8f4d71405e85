"""
Shared helpers for the catalog sync backend.
"""

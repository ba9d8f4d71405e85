"""
API route blueprints for the catalog sync backend.
"""
from .sync_routes import sync_bp
from .scheduler_routes import scheduler_bp

__all__ = ['sync_bp', 'scheduler_bp']

"""
Authentication routers - /api/auth/* and /api/setup.
Handles login, logout, user info and first-run setup.
"""

from .routes import router, setup_router

__all__ = ["router", "setup_router"]

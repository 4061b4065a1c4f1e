"""
Realtime routers - /ws/* WebSocket endpoints.
"""

from .routes import router

__all__ = ["router"]

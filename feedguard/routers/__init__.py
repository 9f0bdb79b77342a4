# feedguard/routers/__init__.py
"""
API routers.
"""

from feedguard.routers.chat import router as chat_router
from feedguard.routers.dialects import router as dialects_router
from feedguard.routers.moderation import router as moderation_router
from feedguard.routers.preferences import router as preferences_router

__all__ = [
    "moderation_router",
    "preferences_router",
    "dialects_router",
    "chat_router",
]

# API Routes
from .conversations import router as conversations_router
from .thoughts import router as thoughts_router

__all__ = [
    "conversations_router",
    "thoughts_router",
]

# Routes package __init__.py - re-exports routers for main.py convenience
from .owners import router as owners_router
from .pages import router as pages_router
from .review import router as review_router
from .progress import router as progress_router
from .chat import router as chat_router
from .backups import router as backups_router

__all__ = ['owners_router', 'pages_router', 'review_router', 'progress_router', 'chat_router', 'backups_router']

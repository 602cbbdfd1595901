# backend/axioscan/api/__init__.py
from .documents import router as documents_router
from .pages import router as pages_router
from .compositions import router as compositions_router
from .folders import router as folders_router
from .tags import router as tags_router

__all__ = ["documents_router", "pages_router", "compositions_router", "folders_router", "tags_router"]

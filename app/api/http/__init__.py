from app.api.http.health import router as health_router
from app.api.http.documents import router as documents_router, templates_router
from app.api.http.blocks import router as blocks_router
from app.api.http.versions import router as versions_router
from app.api.http.comments import router as comments_router

__all__ = [
    "health_router",
    "templates_router",
    "documents_router",
    "blocks_router",
    "versions_router",
    "comments_router"
]

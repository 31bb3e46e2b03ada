from fastapi import APIRouter

from fishregs.api.routes import health, regulation_documents

api_router = APIRouter()

api_router.include_router(health.router, prefix="", tags=["Health"])
api_router.include_router(
    regulation_documents.router, prefix="/regulation-documents", tags=["Regulation Documents"]
)

from fastapi import APIRouter

from guideline_rag.api.v1.endpoints import guidelines, query

# Create API router
api_router = APIRouter()

# Include routers
api_router.include_router(guidelines.router, prefix="/guidelines", tags=["Guidelines"])
api_router.include_router(query.router, prefix="/query", tags=["Query"])

__all__ = ["api_router"]

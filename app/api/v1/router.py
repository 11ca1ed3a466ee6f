from fastapi import APIRouter

from app.api.v1.endpoints import documents, summaries

api_router = APIRouter()

api_router.include_router(documents.router, prefix="/documents", tags=["Documents"])
api_router.include_router(summaries.router, prefix="/summaries", tags=["Summaries"])

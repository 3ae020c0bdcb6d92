from fastapi import APIRouter

from knowledge_sync.api.routers.knowledge import router as knowledge_router

api_router = APIRouter()
api_router.include_router(knowledge_router)

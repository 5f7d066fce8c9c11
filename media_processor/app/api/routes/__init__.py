from fastapi import APIRouter

from media_processor.app.api.routes import media

api_router = APIRouter()
api_router.include_router(media.router)

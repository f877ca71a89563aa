from fastapi import APIRouter

from .group_sets import router as group_sets_router
from .match_links import router as match_links_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(group_sets_router, prefix="/units", tags=["group sets"])
api_router.include_router(match_links_router, prefix="/tasks", tags=["plagiarism"])

"""Web routes package."""

from fastapi import APIRouter

from app.web.lists import router as lists_router

router = APIRouter(tags=["web"])

router.include_router(lists_router)

__all__ = ["router"]

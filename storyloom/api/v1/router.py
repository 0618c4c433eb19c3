from fastapi import APIRouter

from storyloom.api.v1.endpoints import auth, books, chapters, grok, status

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(books.router, prefix="/books", tags=["books"])
api_router.include_router(chapters.router, prefix="/chapters", tags=["chapters"])
api_router.include_router(grok.router, prefix="/grok", tags=["grok"])
api_router.include_router(status.router, tags=["status"])

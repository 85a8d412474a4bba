from fastapi import APIRouter

from app.api.v1.endpoints import seo

api_router = APIRouter()
api_router.include_router(seo.router, prefix="/seo", tags=["seo"])

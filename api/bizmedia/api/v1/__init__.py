"""API v1 router."""

from fastapi import APIRouter

from bizmedia.api.v1.endpoints import business_images, health

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(business_images.router, tags=["business-images"])

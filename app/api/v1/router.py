# app/api/v1/router.py
from fastapi import APIRouter
from app.api.v1 import posts, messages, weather

# Create the main router
api_router = APIRouter()

# Include all the sub-routers
api_router.include_router(posts.router, prefix="/posts", tags=["posts"])
api_router.include_router(messages.router, prefix="/messages", tags=["messages"])
api_router.include_router(weather.router, prefix="/weather", tags=["weather"])

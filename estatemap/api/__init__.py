"""HTTP and WebSocket surface."""
from fastapi import APIRouter

from . import auth, feature_requests, properties, realtime, users

api_router = APIRouter()
api_router.include_router(properties.router)
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(feature_requests.router)

realtime_router = realtime.router

__all__ = ['api_router', 'realtime_router']

from fastapi import APIRouter

from app.api.v1 import geoip

api_router = APIRouter()
api_router.include_router(geoip.router)

"""Main API router aggregator."""

from fastapi import APIRouter

from vehicle_timeline.api.v1 import vehicles

api_router = APIRouter()

api_router.include_router(vehicles.router, prefix="/vehicles", tags=["vehicles"])

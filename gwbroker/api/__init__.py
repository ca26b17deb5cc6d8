"""Gateway REST API router."""

from fastapi import APIRouter

from gwbroker.api.configuration import router as configuration_router

router = APIRouter()

router.include_router(configuration_router, tags=["configuration"])

from fastapi import APIRouter

from src.api.endpoints.values import router as values_router

router = APIRouter()

router.include_router(values_router)

from fastapi import APIRouter

from hookreview.config.settings import QUEUE_MODE, REVIEW_BACKEND
from hookreview.models.platform import Platform

router = APIRouter()


@router.get("/")
async def welcome():
    return {"message": "The hookreview API is live!"}


@router.get("/health")
async def health():
    return {
        "status": "ok",
        "queue_mode": QUEUE_MODE,
        "review_backend": REVIEW_BACKEND,
        "platforms": [platform.value for platform in Platform],
    }

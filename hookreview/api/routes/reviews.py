from fastapi import APIRouter, Depends, status

from hookreview.api.routes.webhooks import get_orchestrator
from hookreview.api.security import get_api_key
from hookreview.core.responses import error_response, success_response
from hookreview.services.review_orchestrator import ReviewOrchestrator

router = APIRouter()


@router.get("/{review_id}", dependencies=[Depends(get_api_key)])
async def get_review(
    review_id: int,
    orchestrator: ReviewOrchestrator = Depends(get_orchestrator),
):
    """Status and aggregate metrics of one review run."""
    record = orchestrator.get_review_status(review_id)
    if record is None:
        return error_response(
            f"Review {review_id} not found",
            message="Not found",
            status_code=status.HTTP_404_NOT_FOUND,
        )
    return success_response(record.model_dump(), message="Review retrieved")

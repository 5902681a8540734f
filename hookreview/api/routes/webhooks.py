from typing import Dict

from fastapi import APIRouter, Depends, Request, status

from hookreview.core.exceptions import QueueFullError, WebhookParseError
from hookreview.core.responses import error_response, success_response
from hookreview.events.dispatcher import EventDispatcher
from hookreview.integrations.bitbucket.bitbucket_webhook_parser import (
    BitbucketWebhookParser,
)
from hookreview.integrations.github.github_webhook_parser import GitHubWebhookParser
from hookreview.integrations.gitlab.gitlab_webhook_parser import GitLabWebhookParser
from hookreview.integrations.webhook_parser import WebhookParser
from hookreview.models.platform import Platform
from hookreview.services.review_orchestrator import (
    ReviewOrchestrator,
    default_orchestrator,
)
from hookreview.utils.logger import logger

router = APIRouter()

WEBHOOK_PARSERS: Dict[Platform, WebhookParser] = {
    parser.platform: parser
    for parser in (
        GitHubWebhookParser(),
        GitLabWebhookParser(),
        BitbucketWebhookParser(),
    )
}


def get_orchestrator() -> ReviewOrchestrator:
    return default_orchestrator()


def get_dispatcher() -> EventDispatcher:
    return EventDispatcher()


async def handle_webhook(
    platform: Platform,
    request: Request,
    orchestrator: ReviewOrchestrator,
    dispatcher: EventDispatcher,
):
    """Parse, filter, verify and enqueue one delivery.

    The review itself runs later on a worker; its outcome never reaches the
    platform that sent the webhook.
    """
    parser = WEBHOOK_PARSERS[platform]
    raw_body = await request.body()
    headers = request.headers
    delivery_id = parser.delivery_id(headers)

    try:
        event = parser.parse(raw_body, headers)
    except WebhookParseError as e:
        logger.warning(f"Rejected {platform.value} delivery {delivery_id}: {e}")
        return error_response(
            str(e),
            message="Invalid webhook payload",
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    except Exception as e:
        logger.exception(f"Error parsing {platform.value} delivery {delivery_id}: {e}")
        return error_response(
            str(e),
            message="Failed to process webhook",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if not parser.should_process(event):
        logger.info(f"Skipping {event} (delivery {delivery_id})")
        return success_response(
            {
                "skipped": True,
                "event_type": event.event_type,
                "action": event.action,
            },
            message="Event skipped",
        )

    try:
        if not orchestrator.verify_signature(
            event, raw_body, parser.signature(headers)
        ):
            logger.warning(
                f"Invalid {platform.value} signature for {event.repository.full_name} "
                f"(delivery {delivery_id})"
            )
            return error_response(
                "Invalid webhook signature",
                message="Unauthorized",
                status_code=status.HTTP_401_UNAUTHORIZED,
            )
        dispatcher.dispatch(event)
    except QueueFullError as e:
        logger.error(f"Could not enqueue {event}: {e}")
        return error_response(
            str(e),
            message="Review queue is full",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    except Exception as e:
        logger.exception(f"Error handling {platform.value} delivery {delivery_id}: {e}")
        return error_response(
            str(e),
            message="Failed to process webhook",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return success_response(
        {
            "skipped": False,
            "platform": platform.value,
            "repository": event.repository.full_name,
            "pull_request": event.pull_request.number,
            "delivery_id": delivery_id,
        },
        message="Event accepted for review",
    )


@router.post("/github")
async def github_webhook(
    request: Request,
    orchestrator: ReviewOrchestrator = Depends(get_orchestrator),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    return await handle_webhook(Platform.GITHUB, request, orchestrator, dispatcher)


@router.post("/gitlab")
async def gitlab_webhook(
    request: Request,
    orchestrator: ReviewOrchestrator = Depends(get_orchestrator),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    return await handle_webhook(Platform.GITLAB, request, orchestrator, dispatcher)


@router.post("/bitbucket")
async def bitbucket_webhook(
    request: Request,
    orchestrator: ReviewOrchestrator = Depends(get_orchestrator),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    return await handle_webhook(Platform.BITBUCKET, request, orchestrator, dispatcher)

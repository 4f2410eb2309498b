"""
GitHub webhook API routes.

Endpoints receiving GitHub App deliveries. Every delivery is verified
against ``X-Hub-Signature-256`` before its body is parsed or anything is
written.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from reasonet.api.dependencies import get_settings, get_webhook_router
from reasonet.api.schemas import WebhookResponse, WebhookVerifyResponse
from reasonet.config import Settings
from reasonet.db.connection import get_db
from reasonet.exceptions import WebhookSignatureError
from reasonet.github.signature import require_signature
from reasonet.webhooks.router import WebhookRouter

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/github", response_model=WebhookResponse)
async def receive_github_webhook(
    request: Request,
    x_github_event: Optional[str] = Header(None, alias="X-GitHub-Event"),
    x_github_delivery: Optional[str] = Header(None, alias="X-GitHub-Delivery"),
    x_hub_signature_256: Optional[str] = Header(None, alias="X-Hub-Signature-256"),
    config: Settings = Depends(get_settings),
    webhook_router: WebhookRouter = Depends(get_webhook_router),
    session: Session = Depends(get_db),
):
    """
    Receive a GitHub webhook delivery.

    Responses:
    - 401: missing or invalid signature (nothing is processed)
    - 400: body is not valid JSON
    - 500: the handler raised unexpectedly
    - 200: processed or intentionally ignored
    """
    body = await request.body()

    try:
        require_signature(body, x_hub_signature_256, config.github_webhook_secret)
    except WebhookSignatureError as e:
        logger.warning(
            f"Rejected webhook delivery {x_github_delivery or 'n/a'}: {e}"
        )
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"error": "Invalid signature"},
        )

    try:
        payload = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning(f"Webhook delivery {x_github_delivery or 'n/a'} is not JSON: {e}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid JSON payload"},
        )

    if not isinstance(payload, dict):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid JSON payload"},
        )

    try:
        ack = await webhook_router.dispatch(
            x_github_event or "", payload, delivery_id=x_github_delivery
        )
    except Exception as e:
        session.rollback()
        logger.error(
            f"Webhook processing failed for {x_github_event} "
            f"(delivery {x_github_delivery or 'n/a'}): {e}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Webhook processing failed"},
        )

    return WebhookResponse(**ack.to_dict())


@router.post("/verify", response_model=WebhookVerifyResponse)
async def verify_webhook_delivery(
    x_github_event: Optional[str] = Header(None, alias="X-GitHub-Event"),
    x_github_delivery: Optional[str] = Header(None, alias="X-GitHub-Delivery"),
    x_hub_signature_256: Optional[str] = Header(None, alias="X-Hub-Signature-256"),
) -> WebhookVerifyResponse:
    """
    Log and echo delivery headers, for checking the App's webhook setup.

    The body is not processed.
    """
    logger.info(
        f"Webhook verification: event={x_github_event}, delivery={x_github_delivery}, "
        f"signature={'present' if x_hub_signature_256 else 'missing'}"
    )
    return WebhookVerifyResponse(
        message="Webhook received successfully",
        event=x_github_event,
        delivery=x_github_delivery,
        timestamp=datetime.now(timezone.utc),
    )


@router.get("/verify")
async def webhook_endpoint_status() -> dict[str, str]:
    """Report that the webhook endpoint is reachable."""
    return {
        "message": "GitHub webhook verification endpoint is active",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

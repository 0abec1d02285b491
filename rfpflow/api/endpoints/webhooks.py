import logging
from typing import Any
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from ...db.database import get_db
from ...core.config import settings
from ...core.limiter import limiter
from ...core.security import verify_webhook, WebhookVerificationError
from ...services import user_sync_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/clerk")
@limiter.limit(settings.RATE_LIMIT_WEBHOOK)
async def clerk_webhook(request: Request, db: AsyncSession = Depends(get_db)) -> Any:
    """Identity-provider user lifecycle events.

    ``user.created`` and ``user.updated`` upsert the local row,
    ``user.deleted`` deactivates it. Other events are acknowledged and ignored.
    """
    body = await request.body()
    try:
        event = verify_webhook(body, request.headers)
    except WebhookVerificationError as e:
        logger.warning(f"Rejected webhook: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook signature")
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook payload")
    if not isinstance(event, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook payload")

    event_type = event.get("type")
    data = event.get("data")
    identity_id = data.get("id") if isinstance(data, dict) else None
    if not identity_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing user id")

    if event_type in ("user.created", "user.updated"):
        email = user_sync_service.primary_email(data)
        if not email:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No email address")
        user, created = await user_sync_service.sync_user(
            db,
            identity_id,
            email,
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            avatar_url=data.get("image_url"),
        )
        logger.info(f"Webhook {event_type}: user {user.id} {'created' if created else 'updated'}")
        return {"success": True, "user_id": user.id, "created": created}

    if event_type == "user.deleted":
        user = await user_sync_service.deactivate_identity(db, identity_id)
        return {"success": True, "user_id": identity_id, "deactivated": user is not None}

    logger.info(f"Ignoring webhook event {event_type}")
    return {"success": True, "ignored": True}

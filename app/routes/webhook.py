import logging
from fastapi import APIRouter, Depends, Request, Response, status
from starlette.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
from app.config.database import get_db
from app.services.reply_service import reply_reconciler

logger = logging.getLogger("webhook")

router = APIRouter(tags=["Webhooks"])


@router.post("/whatsapp-webhook", status_code=status.HTTP_200_OK)
async def whatsapp_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Inbound WhatsApp replies. Always 200 for business outcomes (unmatched
    phone, unknown reply); 500 only when processing itself blew up.
    """
    try:
        payload = await request.json()
    except ValueError:
        logger.warning("Webhook body is not JSON, acknowledging")
        return Response(status_code=status.HTTP_200_OK)

    try:
        result = await run_in_threadpool(reply_reconciler.reconcile, db, payload)
    except Exception:
        logger.exception("Webhook error")
        return Response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    logger.info(
        f"Webhook processed: confirmed={result.confirmed} cancelled={result.cancelled} "
        f"unmatched={result.unmatched} ignored={result.ignored} failed={result.failed}"
    )
    if result.failed:
        return Response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response(status_code=status.HTTP_200_OK)

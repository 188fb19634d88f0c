"""Celery task delivering customer emails with the client's own mailbox."""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any, TypeVar

from cryptography.fernet import InvalidToken
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from merchant.core.config import settings
from merchant.core.database import async_session_maker, engine
from merchant.core.encryption import decrypt_secret
from merchant.core.errors import DeliveryError
from merchant.models.client import Client
from merchant.services.email_service import EmailService, SenderCredentials
from merchant.workers.celery_app import BaseTask, celery_app

logger = logging.getLogger(__name__)

T = TypeVar("T")


@celery_app.task(  # type: ignore[untyped-decorator]
    name="tasks.notifications.send",
    base=BaseTask,
    bind=True,
    # Rendering and credential problems fail the same way on every attempt
    autoretry_for=(DeliveryError, OperationalError, OSError),
)
def send_notification(
    self: BaseTask,  # noqa: ARG001
    kind: str,
    client_id: str,
    recipient: str,
    data: dict[str, Any],
) -> dict[str, Any]:
    """Send one notification email.

    Mail server failures raise and are retried with backoff by ``BaseTask``;
    a render error fails the task at once.
    A client without mail credentials is skipped, not retried.
    """
    return _run_async(_send_notification_async(kind, client_id, recipient, data))


def _run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine on a fresh event loop, then drop pooled DB connections.

    asyncpg connections belong to the loop that opened them. Every task gets a
    new loop, so connections left in the pool by an earlier task are unusable
    and the engine is disposed before the loop closes.
    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.run_until_complete(engine.dispose())
        loop.close()


def _verification_url(client: Client, token: str) -> str:
    if client.return_url:
        return f"{client.return_url.rstrip('/')}/verify?token={token}"
    return f"{settings.api_url}{settings.api_v1_prefix}/customers/verify?token={token}"


async def _send_notification_async(
    kind: str,
    client_id: str,
    recipient: str,
    data: dict[str, Any],
) -> dict[str, Any]:
    """Load the client's sender identity, render and send.

    Returns:
        Dict with ``status`` of ``sent`` or ``skipped`` (plus ``reason``).
    """
    async with async_session_maker() as session:
        stmt = select(Client).where(Client.client_id == client_id)
        client = (await session.execute(stmt)).scalar_one_or_none()

    if client is None:
        logger.error("Client %s not found, %s email to %s not sent", client_id, kind, recipient)
        return {"status": "skipped", "reason": "client_not_found"}

    if not client.business_email or not client.business_email_password:
        logger.warning("Client %s has no mail credentials configured", client_id)
        return {"status": "skipped", "reason": "no_credentials"}

    try:
        password = decrypt_secret(client.business_email_password)
    except InvalidToken:
        logger.error("Could not decrypt mail password for client %s", client_id)
        return {"status": "skipped", "reason": "bad_credentials"}

    context = {"store_name": client.name, **data}
    if kind == "verification" and "verification_token" in data:
        context["verification_url"] = _verification_url(client, data["verification_token"])

    sender = SenderCredentials(
        email=client.business_email,
        password=password,
        display_name=client.name,
    )
    await EmailService().send(kind, recipient, context, sender)
    return {"status": "sent", "kind": kind, "recipient": recipient}

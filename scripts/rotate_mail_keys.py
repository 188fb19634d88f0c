"""Re-encrypt every stored client mail password under the current key.

Run after changing ENCRYPTION_KEY with the old passphrase still listed in
PREVIOUS_ENCRYPTION_KEYS. Once it reports no failures the old passphrase can
be removed.

Usage:
    python -m scripts.rotate_mail_keys
"""

import asyncio
import logging
import sys

from cryptography.fernet import InvalidToken
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from merchant.core.database import async_session_maker
from merchant.core.encryption import reencrypt_secret
from merchant.models.client import Client

logger = logging.getLogger(__name__)


async def rotate_mail_passwords(session: AsyncSession) -> tuple[int, list[str]]:
    """Returns ``(rotated, failed_client_ids)``. Failed rows are left as they are."""
    stmt = select(Client).where(Client.business_email_password.is_not(None))
    clients = (await session.execute(stmt)).scalars().all()

    rotated = 0
    failed: list[str] = []
    for client in clients:
        try:
            client.business_email_password = reencrypt_secret(client.business_email_password)
        except InvalidToken:
            logger.error("No configured key decrypts the mail password of %s", client.client_id)
            failed.append(client.client_id)
            continue
        rotated += 1

    await session.commit()
    return rotated, failed


async def _run() -> int:
    async with async_session_maker() as session:
        rotated, failed = await rotate_mail_passwords(session)
    print(f"Rotated {rotated} mail password(s)", file=sys.stderr)
    if failed:
        print(f"Could not decrypt: {', '.join(failed)}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    sys.exit(asyncio.run(_run()))

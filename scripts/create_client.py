"""Register a tenant (client) and print its bearer token.

The business mailbox password is encrypted before it is stored; customer
emails for this client are sent from that mailbox.

Usage:
    python -m scripts.create_client --client-id acme --name "Acme Shop" \\
        --email shop@acme.test --email-password "app-password" \\
        --return-url https://shop.acme.test
"""

import argparse
import asyncio
import sys

from sqlalchemy import select

from merchant.core.auth import get_token_authority
from merchant.core.database import async_session_maker
from merchant.core.encryption import encrypt_secret
from merchant.models.client import Client


async def create_client(args: argparse.Namespace) -> Client:
    async with async_session_maker() as session:
        existing = await session.execute(select(Client).where(Client.client_id == args.client_id))
        if existing.scalar_one_or_none() is not None:
            raise SystemExit(f"ERROR: client {args.client_id!r} already exists")

        client = Client(
            client_id=args.client_id,
            name=args.name,
            business_email=args.email,
            business_email_password=(
                encrypt_secret(args.email_password) if args.email_password else None
            ),
            return_url=args.return_url,
        )
        session.add(client)
        await session.commit()
        return client


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--client-id", required=True)
    parser.add_argument("--name", required=True)
    parser.add_argument("--email", help="business mailbox customer emails are sent from")
    parser.add_argument("--email-password")
    parser.add_argument("--return-url", help="storefront base URL used in email links")
    args = parser.parse_args()

    client = asyncio.run(create_client(args))
    print(f"Created client {client.client_id} ({client.name})", file=sys.stderr)
    print(get_token_authority().issue_tenant_token(client.client_id))


if __name__ == "__main__":
    main()

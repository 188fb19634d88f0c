"""Print a tenant bearer token for a client id.

Tenant tokens do not expire; they are embedded in the storefront and
dashboard of one client.

Usage:
    python -m scripts.issue_token <client_id>
"""

import sys

from merchant.core.auth import get_token_authority


def main() -> None:
    if len(sys.argv) != 2 or not sys.argv[1].strip():
        print("Usage: python -m scripts.issue_token <client_id>", file=sys.stderr)
        sys.exit(1)

    print(get_token_authority().issue_tenant_token(sys.argv[1].strip()))


if __name__ == "__main__":
    main()

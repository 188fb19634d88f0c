"""At-rest encryption for client mail passwords.

Passwords are stored as Fernet tokens. Keys are derived with SHA-256 from the
configured passphrases so any string works as ``ENCRYPTION_KEY``. Listing the
old passphrase in ``PREVIOUS_ENCRYPTION_KEYS`` keeps existing rows readable
after a rotation; ``reencrypt_secret`` moves a value onto the current key.
"""

import base64
import hashlib
from functools import lru_cache

from cryptography.fernet import Fernet, MultiFernet

from merchant.core.config import settings


def _fernet_for(passphrase: str) -> Fernet:
    return Fernet(base64.urlsafe_b64encode(hashlib.sha256(passphrase.encode()).digest()))


@lru_cache(maxsize=1)
def _get_keyring() -> MultiFernet:
    # First key encrypts, all keys are tried on decrypt
    passphrases = [settings.encryption_key, *settings.previous_encryption_keys]
    return MultiFernet([_fernet_for(p) for p in passphrases])


def encrypt_secret(value: str) -> str:
    return _get_keyring().encrypt(value.encode()).decode()


def decrypt_secret(encrypted: str) -> str:
    """Raises ``cryptography.fernet.InvalidToken`` if no configured key fits."""
    return _get_keyring().decrypt(encrypted.encode()).decode()


def reencrypt_secret(encrypted: str) -> str:
    """Re-encrypt a stored value under the current key."""
    return _get_keyring().rotate(encrypted.encode()).decode()

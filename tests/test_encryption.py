"""Tests for mail credential encryption."""

from collections.abc import Callable
from typing import Any

import pytest
from cryptography.fernet import InvalidToken
from sqlalchemy.ext.asyncio import AsyncSession

from merchant.core.config import settings
from merchant.core.encryption import (
    _get_keyring,
    decrypt_secret,
    encrypt_secret,
    reencrypt_secret,
)
from scripts.rotate_mail_keys import rotate_mail_passwords


class TestEncryptSecret:
    """Tests for merchant.core.encryption (client mail passwords)."""

    def test_round_trip(self) -> None:
        ciphertext = encrypt_secret("app-password-123")
        assert ciphertext != "app-password-123"
        assert decrypt_secret(ciphertext) == "app-password-123"

    def test_encrypt_produces_different_ciphertext_each_call(self) -> None:
        """Fernet includes a timestamp + IV, so repeated encryptions differ."""
        ct1 = encrypt_secret("same")
        ct2 = encrypt_secret("same")
        assert ct1 != ct2
        assert decrypt_secret(ct1) == decrypt_secret(ct2) == "same"

    def test_tampered_ciphertext_raises(self) -> None:
        ciphertext = encrypt_secret("secret")
        mid = len(ciphertext) // 2
        tampered_char = "A" if ciphertext[mid] != "A" else "B"
        tampered = ciphertext[:mid] + tampered_char + ciphertext[mid + 1 :]
        with pytest.raises(InvalidToken):
            decrypt_secret(tampered)

    def test_garbage_raises(self) -> None:
        with pytest.raises((InvalidToken, ValueError)):
            decrypt_secret("this-is-not-a-valid-fernet-token")

    def test_unicode(self) -> None:
        assert decrypt_secret(encrypt_secret("pässwörd ✓")) == "pässwörd ✓"


class TestKeyRotation:
    @pytest.fixture(autouse=True)
    def fresh_keyring(self) -> Any:
        _get_keyring.cache_clear()
        yield
        _get_keyring.cache_clear()

    def _use_keys(self, monkeypatch: pytest.MonkeyPatch, current: str, *previous: str) -> None:
        monkeypatch.setattr(settings, "encryption_key", current)
        monkeypatch.setattr(settings, "previous_encryption_keys", list(previous))
        _get_keyring.cache_clear()

    def test_old_rows_stay_readable_and_can_be_moved(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        self._use_keys(monkeypatch, "old-key")
        stored = encrypt_secret("mail-password")

        self._use_keys(monkeypatch, "new-key", "old-key")
        assert decrypt_secret(stored) == "mail-password"
        moved = reencrypt_secret(stored)

        self._use_keys(monkeypatch, "new-key")
        assert decrypt_secret(moved) == "mail-password"
        with pytest.raises(InvalidToken):
            decrypt_secret(stored)

    @pytest.mark.asyncio
    async def test_rotation_script_moves_stored_passwords(
        self,
        monkeypatch: pytest.MonkeyPatch,
        db_session: AsyncSession,
        client_factory: Callable[..., Any],
    ) -> None:
        self._use_keys(monkeypatch, "old-key")
        shop = await client_factory()
        broken = await client_factory(client_id="client-z")
        broken.business_email_password = "garbage"
        await db_session.commit()

        self._use_keys(monkeypatch, "new-key", "old-key")
        rotated, failed = await rotate_mail_passwords(db_session)

        assert (rotated, failed) == (1, ["client-z"])
        self._use_keys(monkeypatch, "new-key")
        assert decrypt_secret(shop.business_email_password) == "mail-password"

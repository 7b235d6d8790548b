"""Verification of signed scheduler (QStash) requests."""

import base64
import hashlib
import logging

from jose import JWTError, jwt

from backend.config import BackendSettings

logger = logging.getLogger(__name__)


class SignatureService:
    """Checks the ``Upstash-Signature`` header of cron requests.

    The header is an HS256 JWT signed with either the current or the next
    signing key (both are valid while keys rotate). Its ``body`` claim is the
    unpadded base64url SHA-256 of the raw request body.
    """

    ISSUER = "Upstash"
    ALGORITHM = "HS256"

    def __init__(self, settings: BackendSettings):
        self.settings = settings

    @property
    def signing_keys(self) -> list[str]:
        keys = [self.settings.qstash_current_signing_key, self.settings.qstash_next_signing_key]
        return [key for key in keys if key]

    def verify(self, signature: str, body: bytes) -> bool:
        """Check a request signature against its body.

        Returns:
            True if some signing key validates the token and the body hash matches.
        """
        if not self.signing_keys:
            logger.warning("No QStash signing keys configured, rejecting signed request")
            return False

        for key in self.signing_keys:
            try:
                claims = jwt.decode(
                    signature,
                    key,
                    algorithms=[self.ALGORITHM],
                    issuer=self.ISSUER,
                    options={"verify_aud": False},
                )
            except JWTError as e:
                logger.debug(f"Signature rejected by one signing key: {e}")
                continue

            if claims.get("body") == self.body_hash(body):
                return True
            logger.warning("Signature valid but body hash does not match")
            return False

        return False

    @staticmethod
    def body_hash(body: bytes) -> str:
        """Unpadded base64url SHA-256 of a request body."""
        digest = hashlib.sha256(body).digest()
        return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")

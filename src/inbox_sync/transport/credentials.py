"""Unwrapping of credentials stored at rest."""

from __future__ import annotations

import base64
import binascii

from ..core.errors import ConnectorError
from ..core.interfaces import SecretUnwrapper


class Base64SecretUnwrapper(SecretUnwrapper):
    """Decode base64-encoded mailbox passwords.

    Swap for an envelope-encryption implementation without touching connectors.
    """

    def unwrap(self, stored: str) -> str:
        """Return the decoded secret."""
        try:
            return base64.b64decode(stored.encode("ascii"), validate=True).decode(
                "utf-8"
            )
        except (binascii.Error, UnicodeError, ValueError) as exc:
            raise ConnectorError("Stored mailbox credential is not decodable") from exc


def wrap_secret(secret: str) -> str:
    """Encode ``secret`` the way :class:`Base64SecretUnwrapper` expects."""
    return base64.b64encode(secret.encode("utf-8")).decode("ascii")


__all__ = ["Base64SecretUnwrapper", "wrap_secret"]

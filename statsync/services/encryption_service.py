from __future__ import annotations

import json
from typing import Any, Optional, Union

from cryptography.fernet import Fernet, InvalidToken

from statsync.config import ENCRYPTION_KEY
from statsync.exceptions import DecryptionFailed


class EncryptionService:
    """Fernet wrapper for credential secrets.

    Mappings are stored as JSON; ``decrypt`` hands back a dict when the
    plaintext parses as a JSON object and the raw string otherwise.
    """

    def __init__(self, key: Optional[Union[str, bytes]] = None) -> None:
        key = key if key is not None else ENCRYPTION_KEY
        self._fernet: Optional[Fernet] = Fernet(key) if key else None

    def is_configured(self) -> bool:
        return self._fernet is not None

    def _require(self) -> Fernet:
        if self._fernet is None:
            raise RuntimeError("Encryption key not configured")
        return self._fernet

    def encrypt(self, data: Any) -> str:
        plaintext = data if isinstance(data, str) else json.dumps(data)
        return self._require().encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, token: str) -> Any:
        if self._fernet is None:
            raise DecryptionFailed("Encryption key not configured")
        try:
            plaintext = self._fernet.decrypt(token.encode("ascii")).decode("utf-8")
        except (InvalidToken, ValueError) as e:
            raise DecryptionFailed("Failed to decrypt stored secret") from e

        try:
            parsed = json.loads(plaintext)
        except json.JSONDecodeError:
            return plaintext
        return parsed if isinstance(parsed, dict) else plaintext

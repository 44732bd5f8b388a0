"""Encrypted on-disk storage for per-service OAuth tokens."""

from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict, List, Optional

from cryptography.fernet import Fernet, InvalidToken

from jarvis.config import DEFAULT_CONFIG_DIR

_log = logging.getLogger(__name__)

TOKENS_FILE = "tokens.json"
KEY_FILE = ".key"
EXPIRY_BUFFER_MS = 5 * 60 * 1000


@dataclass
class OAuthTokens:
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None  # epoch milliseconds

    def is_expired(self, buffer_ms: int = EXPIRY_BUFFER_MS) -> bool:
        if self.expires_at is None:
            return False
        return time.time() * 1000 >= self.expires_at - buffer_ms

    @classmethod
    def from_dict(cls, data: Dict) -> "OAuthTokens":
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_at=data.get("expires_at"),
        )


class CredentialStore:
    """Encrypt/decrypt service tokens with Fernet, backed by one JSON file.

    The key lives next to the tokens in ``.key`` with owner-only
    permissions and is generated on first use.
    """

    def __init__(self, directory: Optional[Path] = None) -> None:
        self._dir = Path(directory) if directory is not None else DEFAULT_CONFIG_DIR
        self._tokens_path = self._dir / TOKENS_FILE
        self._key_path = self._dir / KEY_FILE
        self._fernet: Optional[Fernet] = None

    @property
    def path(self) -> Path:
        return self._tokens_path

    def _get_fernet(self) -> Fernet:
        if self._fernet is None:
            self._dir.mkdir(parents=True, exist_ok=True)
            if self._key_path.exists():
                key = self._key_path.read_bytes().strip()
            else:
                key = Fernet.generate_key()
                self._write_private(self._key_path, key)
            self._fernet = Fernet(key)
        return self._fernet

    @staticmethod
    def _write_private(path: Path, data: bytes) -> None:
        fd = os.open(str(path), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as f:
            f.write(data)

    def _load_all(self) -> Dict[str, Dict]:
        if not self._tokens_path.exists():
            return {}
        try:
            plaintext = self._get_fernet().decrypt(self._tokens_path.read_bytes())
            data = json.loads(plaintext)
        except (InvalidToken, ValueError, OSError):
            _log.error("Failed to load tokens from %s", self._tokens_path, exc_info=True)
            return {}
        return data if isinstance(data, dict) else {}

    def _save_all(self, data: Dict[str, Dict]) -> None:
        if not data:
            if self._tokens_path.exists():
                self._tokens_path.unlink()
            return
        encrypted = self._get_fernet().encrypt(json.dumps(data, indent=2).encode())
        self._write_private(self._tokens_path, encrypted)

    def load(self, service: str) -> Optional[OAuthTokens]:
        entry = self._load_all().get(service)
        if not entry:
            return None
        try:
            return OAuthTokens.from_dict(entry)
        except KeyError:
            _log.error("Stored tokens for %s are incomplete", service)
            return None

    def save(self, service: str, tokens: OAuthTokens) -> None:
        data = self._load_all()
        data[service] = asdict(tokens)
        self._save_all(data)
        _log.debug("Tokens saved for %s", service)

    def delete(self, service: str) -> bool:
        """Remove a service's tokens. Returns True if any were stored."""
        data = self._load_all()
        if service not in data:
            return False
        del data[service]
        self._save_all(data)
        _log.debug("Tokens deleted for %s", service)
        return True

    def services(self) -> List[str]:
        return sorted(self._load_all())

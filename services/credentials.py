"""Storage for the Pinboard ``username:token`` credential."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional, Protocol

from core.logging_utils import get_logger
from core.settings import CREDENTIAL_PATH


logger = get_logger("credentials")

SEPARATOR = ":"


class CredentialError(Exception):
    pass


class CredentialValidationError(CredentialError, ValueError):
    pass


class MissingCredentialError(CredentialError):
    def __init__(self, message: str = "Pinboard token is not set") -> None:
        super().__init__(message)


class CredentialStoreError(CredentialError):
    """The secret store exists but could not be read or written."""


class CredentialProvider(Protocol):
    def get(self) -> Optional[str]: ...

    def set(self, credential: str) -> None: ...

    def clear(self) -> None: ...


def validate_credential(value: Optional[str]) -> str:
    clean = (value or "").strip()
    if SEPARATOR not in clean:
        raise CredentialValidationError("Pinboard token should look like username:TOKEN")
    return clean


def require_credential(provider: CredentialProvider) -> str:
    credential = provider.get()
    if not credential:
        raise MissingCredentialError()
    return credential


class MemoryCredentialStore:
    def __init__(self, credential: Optional[str] = None) -> None:
        self._credential = credential

    def get(self) -> Optional[str]:
        return self._credential

    def set(self, credential: str) -> None:
        self._credential = credential

    def clear(self) -> None:
        self._credential = None


class FileCredentialStore:
    """JSON file in the secrets directory, readable only by the owner."""

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path or CREDENTIAL_PATH)

    def get(self) -> Optional[str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise CredentialStoreError(f"failed to read credential store: {exc}") from exc
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise CredentialStoreError("credential store is corrupt") from exc
        token = data.get("auth_token") if isinstance(data, dict) else None
        return str(token) if token else None

    def set(self, credential: str) -> None:
        payload = json.dumps({"auth_token": credential})
        tmp_path = self.path.with_suffix(".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise CredentialStoreError(f"failed to write credential store: {exc}") from exc
        finally:
            if tmp_path.exists():
                try:
                    tmp_path.unlink()
                except OSError:
                    pass
        logger.info("Pinboard credential saved")

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise CredentialStoreError(f"failed to remove credential: {exc}") from exc
        logger.info("Pinboard credential removed")


__all__ = [
    "CredentialError",
    "CredentialProvider",
    "CredentialStoreError",
    "CredentialValidationError",
    "FileCredentialStore",
    "MemoryCredentialStore",
    "MissingCredentialError",
    "require_credential",
    "validate_credential",
]

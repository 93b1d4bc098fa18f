"""Local identity storage for returning chat visitors.

A small JSON key/value file plays the part of browser local storage: the
identity is stored as a JSON string under a single well-known key, next to
whatever else the host application keeps there.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from ..core.config import get_settings
from ..schemas.identity import VisitorIdentity

logger = logging.getLogger(__name__)


class LocalIdentityStore:
    """Persists a visitor's name, contact details and active ticket."""

    def __init__(self, path: Path | None = None, key: str | None = None):
        settings = get_settings()
        self.path = Path(path) if path is not None else settings.identity_store_path
        self.key = key or settings.identity_store_key

    def _read_all(self) -> dict:
        if not self.path.exists():
            return {}
        data = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("local storage root is not an object")
        return data

    def _write_all(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding="utf-8")

    def load(self) -> VisitorIdentity | None:
        """Return the stored identity, or None when absent or unreadable."""
        try:
            raw = self._read_all().get(self.key)
            if raw is None:
                return None
            return VisitorIdentity.model_validate_json(raw)
        except (OSError, ValueError, TypeError, ValidationError) as exc:
            logger.warning("Ignoring unreadable visitor identity in %s: %s", self.path, exc)
            return None

    def save(self, identity: VisitorIdentity) -> None:
        """Persist the identity. Storage errors are logged, not raised."""
        try:
            try:
                data = self._read_all()
            except ValueError:
                data = {}
            data[self.key] = identity.model_dump_json()
            self._write_all(data)
        except OSError:
            logger.exception("Failed to persist visitor identity to %s", self.path)

    def clear(self) -> None:
        """Forget the stored identity."""
        try:
            try:
                data = self._read_all()
            except ValueError:
                data = {}
            if data.pop(self.key, None) is not None:
                self._write_all(data)
        except OSError:
            logger.exception("Failed to clear visitor identity in %s", self.path)

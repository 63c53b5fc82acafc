"""Schema-versioned JSON persistence for credentials and recent files.

Every file is an envelope:

    {"schema": "<kind>", "version": <int>, "data": <payload>}

Reads never raise: a missing file is "absent", an unreadable one is logged and
treated as absent. Writes go through a temp file + os.replace so a reader sees
either the old or the new document, never a partial one.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, List, Optional

from core.errors import PersistenceError
from core.models import Credentials, RecentFile

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


class JSONStore:
    def __init__(self, path: Path, *, schema: str, private: bool = False) -> None:
        self._path = Path(path)
        self._schema = schema
        self._private = private

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> Optional[Any]:
        """Return the stored payload, or None when absent or undecodable."""
        try:
            return self._decode()
        except PersistenceError as e:
            logger.warning("Ignoring unreadable %s store at %s: %s", self._schema, self._path, e)
            return None

    def _decode(self) -> Optional[Any]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PersistenceError(f"Cannot read {self._path}: {e}") from e
        except UnicodeDecodeError as e:
            raise PersistenceError(f"{self._path} is not UTF-8 text: {e}") from e

        try:
            doc = json.loads(raw)
        except ValueError as e:
            raise PersistenceError(f"Invalid JSON: {e}") from e

        if not isinstance(doc, dict) or doc.get("schema") != self._schema:
            raise PersistenceError("Unexpected document schema")

        version = doc.get("version")
        if not isinstance(version, int) or isinstance(version, bool) or version < 1:
            raise PersistenceError(f"Invalid schema version: {version!r}")
        if version > SCHEMA_VERSION:
            # Newer writer: decode best-effort, unknown fields are ignored downstream
            logger.info("Reading %s store written by schema v%d (current v%d)", self._schema, version, SCHEMA_VERSION)

        return doc.get("data")

    def write(self, data: Any) -> None:
        doc = {"schema": self._schema, "version": SCHEMA_VERSION, "data": data}
        directory = self._path.parent

        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", dir=directory)
        except OSError as e:
            raise PersistenceError(f"Cannot write {self._path}: {e}") from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(doc, f, indent=2, ensure_ascii=False)
            if self._private:
                os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self._path)
        except OSError as e:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise PersistenceError(f"Cannot write {self._path}: {e}") from e


class CredentialStore:
    FILE_NAME = "credentials.json"

    def __init__(self, path: Path) -> None:
        self._store = JSONStore(path, schema="credentials", private=True)

    @classmethod
    def in_dir(cls, state_dir: Path) -> "CredentialStore":
        return cls(Path(state_dir) / cls.FILE_NAME)

    def load(self) -> Optional[Credentials]:
        data = self._store.read()
        if data is None:
            return None
        try:
            return Credentials.from_dict(data)
        except PersistenceError as e:
            logger.warning("Ignoring stored credentials: %s", e)
            return None

    def save(self, credentials: Credentials) -> None:
        self._store.write(credentials.to_dict())


class RecentFilesStore:
    FILE_NAME = "recent_files.json"

    def __init__(self, path: Path) -> None:
        self._store = JSONStore(path, schema="recent_files")

    @classmethod
    def in_dir(cls, state_dir: Path) -> "RecentFilesStore":
        return cls(Path(state_dir) / cls.FILE_NAME)

    def load(self) -> List[RecentFile]:
        data = self._store.read()
        if data is None:
            return []
        if not isinstance(data, list):
            logger.warning("Ignoring recent files store: payload is not a list")
            return []

        out: List[RecentFile] = []
        for raw in data:
            # Drop individual bad records instead of the whole history
            try:
                out.append(RecentFile.from_dict(raw))
            except PersistenceError as e:
                logger.warning("Skipping unreadable recent file record: %s", e)
        return out

    def save(self, entries: List[RecentFile]) -> None:
        self._store.write([e.to_dict() for e in entries])

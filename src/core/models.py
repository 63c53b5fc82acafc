"""Immutable dataclasses shared by the client, the recent-files store and the tools.

Includes the breadcrumb/recent-file records that get persisted, the device
credentials triple, and RequestResult, the two-variant outcome of a request.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

from core.errors import PersistenceError, SparkleShareError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(raw: Any) -> datetime:
    if not isinstance(raw, str):
        raise PersistenceError(f"Invalid timestamp: {raw!r}")
    try:
        value = datetime.fromisoformat(raw)
    except ValueError as e:
        raise PersistenceError(f"Invalid timestamp: {raw!r}") from e
    # Naive timestamps are stored as UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class PathComponent:
    """One breadcrumb node between the root and a file's parent."""

    name: str
    ssid: str
    type: str = "dir"

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "ssid": self.ssid, "type": self.type}

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "PathComponent":
        if not isinstance(raw, Mapping) or not isinstance(raw.get("ssid"), str):
            raise PersistenceError("Path component without ssid")
        return cls(
            name=str(raw.get("name") or ""),
            ssid=raw["ssid"],
            type=str(raw.get("type") or "dir"),
        )


@dataclass(frozen=True)
class RecentFile:
    """Snapshot of an accessed file plus its breadcrumb path.

    Identity rules:
      - add (upsert) matches on file_ssid alone
      - removal matches on (file_ssid, path_components)
    """

    file_name: str
    file_ssid: str
    file_url: str = ""
    file_mime: str = ""
    file_size: int = 0

    project_folder_ssid: str = ""
    project_folder_name: str = ""

    path_components: Tuple[PathComponent, ...] = ()
    access_date: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        # Naive dates are taken as UTC so entries always compare
        if self.access_date.tzinfo is None:
            object.__setattr__(self, "access_date", self.access_date.replace(tzinfo=timezone.utc))

    @property
    def logical_key(self) -> Tuple[str, Tuple[PathComponent, ...]]:
        return (self.file_ssid, self.path_components)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_name": self.file_name,
            "file_ssid": self.file_ssid,
            "file_url": self.file_url,
            "file_mime": self.file_mime,
            "file_size": self.file_size,
            "project_folder_ssid": self.project_folder_ssid,
            "project_folder_name": self.project_folder_name,
            "path_components": [c.to_dict() for c in self.path_components],
            "access_date": self.access_date.isoformat(),
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "RecentFile":
        # Unknown keys are ignored so newer writers stay readable
        if not isinstance(raw, Mapping):
            raise PersistenceError("Recent file record is not an object")
        ssid = raw.get("file_ssid")
        if not isinstance(ssid, str) or not ssid:
            raise PersistenceError("Recent file record without file_ssid")

        components = raw.get("path_components") or []
        if not isinstance(components, list):
            raise PersistenceError("path_components must be a list")

        try:
            size = int(raw.get("file_size") or 0)
        except (TypeError, ValueError) as e:
            raise PersistenceError("file_size must be an integer") from e

        return cls(
            file_name=str(raw.get("file_name") or ""),
            file_ssid=ssid,
            file_url=str(raw.get("file_url") or ""),
            file_mime=str(raw.get("file_mime") or ""),
            file_size=size,
            project_folder_ssid=str(raw.get("project_folder_ssid") or ""),
            project_folder_name=str(raw.get("project_folder_name") or ""),
            path_components=tuple(PathComponent.from_dict(c) for c in components),
            access_date=_parse_datetime(raw.get("access_date")),
        )


@dataclass(frozen=True)
class Credentials:
    address: str
    ident_code: str
    auth_code: str

    def to_dict(self) -> Dict[str, str]:
        return {"address": self.address, "ident_code": self.ident_code, "auth_code": self.auth_code}

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Credentials":
        if not isinstance(raw, Mapping):
            raise PersistenceError("Credential record is not an object")
        values = [raw.get(k) for k in ("address", "ident_code", "auth_code")]
        if not all(isinstance(v, str) and v for v in values):
            raise PersistenceError("Credential record is incomplete")
        return cls(*values)

    def __repr__(self) -> str:
        # Keep the auth code out of logs and tracebacks
        return f"Credentials(address={self.address!r}, ident_code={self.ident_code!r}, auth_code='***')"


@dataclass(frozen=True)
class RequestResult:
    """Outcome of a single request: either a payload or an error.

    `payload` is the decoded JSON value, or raw bytes for non-JSON requests.
    On failure `payload` still carries whatever JSON the server sent back.
    """

    request: Any = None
    response: Any = None
    payload: Any = None
    error: Optional[SparkleShareError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def status_code(self) -> Optional[int]:
        return getattr(self.response, "status_code", None)

    def raise_for_error(self) -> "RequestResult":
        if self.error is not None:
            raise self.error
        return self

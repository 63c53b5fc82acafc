from __future__ import annotations

import re
from typing import Optional
from urllib.parse import quote

import httpx

from core.errors import ValidationError


_METHOD_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_-]*$")


def normalize_address(address: object) -> str:
    # Accept str or httpx.URL; keep scheme + host (+ optional path prefix), no trailing "/"
    raw = str(address or "").strip()
    try:
        url = httpx.URL(raw)
    except (httpx.InvalidURL, TypeError) as e:
        raise ValidationError(f"Invalid server address: {raw!r}") from e
    if url.scheme not in ("http", "https") or not url.host:
        raise ValidationError(f"Server address must be an http(s) URL: {raw!r}")
    if url.query or url.fragment:
        raise ValidationError("Server address must not carry a query or fragment")
    return raw.rstrip("/")


def normalize_link_code(code: str) -> str:
    code_clean = (code or "").strip()
    if not code_clean:
        raise ValidationError("Link code must be non-empty")
    if any(ch.isspace() for ch in code_clean):
        raise ValidationError("Link code must not contain whitespace")
    return code_clean


def normalize_method(method: str) -> str:
    method_clean = (method or "").strip().strip("/")
    if not _METHOD_RE.match(method_clean):
        raise ValidationError(f"Invalid API method: {method!r}")
    return method_clean


def build_api_path(method: str, ssid: str = "", path: Optional[str] = None) -> str:
    """Build the part after `/api/`: `{method}/{ssid}` or `{method}/{ssid}?{path}`.

    `path` is an already-encoded query string as handed out by the server
    (e.g. `path=notes%2Fa.md&hash=...`); it is passed through unchanged.
    """
    out = normalize_method(method)
    ssid_clean = (ssid or "").strip()
    if ssid_clean:
        out = f"{out}/{quote(ssid_clean, safe='')}"

    query = (path or "").strip().lstrip("?")
    if query:
        out = f"{out}?{query}"
    return out

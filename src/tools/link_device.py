"""MCP tools that link this device to a SparkleShare dashboard and check the link.

Registers 'link_device' (one-shot link code exchange) and 'connection_status'
(validates the stored credentials without issuing a new code).
"""

from __future__ import annotations

from typing import Any, Dict

from mcp.server.fastmcp import FastMCP

from clients.sparkleshare import ConnectionManager
from core.errors import ValidationError


def register(mcp: FastMCP, *, connection: ConnectionManager) -> None:
    @mcp.tool(name="link_device")
    async def link_device(address: str, code: str) -> Dict[str, Any]:
        """Link this device to a SparkleShare dashboard.

        Params:
          - address: dashboard base URL, e.g. "https://sync.example.org".
          - code: the short-lived link code shown by the dashboard.

        Returns:
          {"linked": True, "address": ..., "ident": ...} on success.

        Raises:
          ValidationError for malformed input, AuthError when the code is
          invalid, expired or already used, NetworkError / ServerError otherwise.
          The previous link (if any) is kept on failure.
        """
        if not address or not address.strip():
            raise ValidationError("Missing address")
        if not code or not code.strip():
            raise ValidationError("Missing link code")

        result = await connection.link_device_with_address(address, code)
        result.raise_for_error()
        return {"linked": True, "address": connection.address, "ident": connection.ident_code}

    @mcp.tool(name="connection_status")
    async def connection_status() -> Dict[str, Any]:
        """Check whether the stored device link is accepted by the server.

        Returns:
          {"linked": bool, "address": str|None, "reachable": bool, "error": str|None}
        """
        if not connection.is_linked:
            return {"linked": False, "address": None, "reachable": False, "error": None}

        result = await connection.establish_connection()
        return {
            "linked": True,
            "address": connection.address,
            "reachable": result.ok,
            "error": None if result.ok else str(result.error),
        }

"""MCP tools over the recent-files history.

Registers 'recent_files', 'remove_recent_file' and 'clear_recent_files'.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from core.errors import ValidationError
from core.recent_files import RecentFilesManager


def register(mcp: FastMCP, *, recent_files: RecentFilesManager) -> None:
    @mcp.tool(name="recent_files")
    async def list_recent_files(limit: int = 0) -> List[Dict[str, Any]]:
        """Return recently opened files, most recent first.

        Params:
          - limit: maximum number of entries (0 = all).
        """
        entries = recent_files.recent_files()
        if limit > 0:
            entries = entries[:limit]
        return [e.to_dict() for e in entries]

    @mcp.tool(name="remove_recent_file")
    async def remove_recent_file(file_ssid: str, path_ssids: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        """Remove one entry from the history.

        The entry must match both the file id and its folder path (the ssids of
        `path_components`, root first); the same file reached through another
        path stays. Returns the remaining history.
        """
        if not file_ssid or not file_ssid.strip():
            raise ValidationError("Missing file_ssid")

        wanted = list(path_ssids or [])
        for entry in recent_files.recent_files():
            if entry.file_ssid == file_ssid.strip() and [c.ssid for c in entry.path_components] == wanted:
                recent_files.remove_recent_file(entry)
                break

        return [e.to_dict() for e in recent_files.recent_files()]

    @mcp.tool(name="clear_recent_files")
    async def clear_recent_files() -> Dict[str, Any]:
        """Forget every recently opened file."""
        recent_files.clear_recent_files()
        return {"cleared": True}

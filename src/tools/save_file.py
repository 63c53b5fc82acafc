"""MCP tool that saves text content to a file on a linked SparkleShare dashboard."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from clients.sparkleshare import ConnectionManager
from core.recent_files import RecentFilesManager
from tools.read_file import build_file


def register(
    mcp: FastMCP,
    *,
    connection: ConnectionManager,
    recent_files: Optional[RecentFilesManager] = None,
) -> None:
    @mcp.tool(name="save_file")
    async def save_file(
        file_ssid: str,
        content: str,
        folder_ssid: str = "",
        url: str = "",
        name: str = "",
        mime: str = "",
        folder_name: str = "",
        path_ssids: Optional[List[str]] = None,
        path_names: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Upload new text content for a file.

        Params:
          - file_ssid: file id from list_folder (required).
          - content: the full new text of the file.
          - folder_ssid / url / name / mime / folder_name / path_ssids /
            path_names: as for read_file.

        Returns:
          {"saved": True, "ssid": ..., "filesize": ...}

        Raises:
          ValidationError for missing inputs; AuthError, NetworkError or
          ServerError when the server rejects the save. Nothing is retried.
        """
        f = build_file(
            connection,
            file_ssid=file_ssid,
            folder_ssid=folder_ssid,
            url=url,
            name=name,
            mime=mime,
            folder_name=folder_name,
            path_ssids=path_ssids,
            path_names=path_names,
            recent_files=recent_files,
        )
        result = await f.save_content(content)
        result.raise_for_error()
        return {"saved": True, "ssid": f.ssid, "filesize": f.filesize}

"""MCP tool that lists project folders or the contents of one folder.

Registers the 'list_folder' tool. Without a folder_ssid it lists the project
folders of the linked dashboard; with one it lists that folder (or a
sub-folder of it when `url` is the sub-folder's url from a previous listing).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from clients.sparkleshare import ConnectionManager, Folder, RootFolder
from core.recent_files import RecentFilesManager
from tools.read_file import build_folder_chain


def register(
    mcp: FastMCP,
    *,
    connection: ConnectionManager,
    recent_files: Optional[RecentFilesManager] = None,
) -> None:
    @mcp.tool(name="list_folder")
    async def list_folder(
        folder_ssid: str = "",
        url: str = "",
        name: str = "",
        path_ssids: Optional[List[str]] = None,
        path_names: Optional[List[str]] = None,
    ) -> List[Dict[str, Any]]:
        """List items of a folder.

        Params:
          - folder_ssid: project folder id; empty lists all project folders.
          - url: sub-folder url as returned by an earlier listing (optional).
          - name: display name of the folder (optional).
          - path_ssids / path_names: folder ids (and names) root first, down
            to and including the sub-folder being listed. Pass an item's
            "path_ssids" plus its own "ssid" to list a sub-folder.

        Returns:
          List of {"name", "ssid", "type", "url", "mime", "path_ssids"[, "filesize"]}
          where "path_ssids" is the item's breadcrumb, root first.

        Raises:
          ValidationError for an inconsistent breadcrumb, AuthError when the
          device is not linked or the link was revoked, NetworkError /
          ServerError / MalformedResponseError otherwise.
        """
        project, deepest = build_folder_chain(
            connection,
            folder_ssid=folder_ssid,
            folder_name=name if not path_ssids else "",
            path_ssids=path_ssids,
            path_names=path_names,
            recent_files=recent_files,
        )

        if project is None:
            folder: Folder = RootFolder(connection, recent_files=recent_files)
        elif not (url and url.strip()):
            folder = project
        elif deepest is not project:
            deepest.url = url.strip()
            folder = deepest
        else:
            folder = Folder(
                connection,
                name="",
                ssid="",
                url=url.strip(),
                project_folder=project,
                parent=project,
                recent_files=recent_files,
            )

        result = await folder.load_items()
        result.raise_for_error()
        return [
            {**item.to_dict(), "path_ssids": [c.ssid for c in item.path_components()]}
            for item in folder.items
        ]

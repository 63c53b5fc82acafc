"""MCP tool that reads a file from a linked SparkleShare dashboard.

Registers the 'read_file' tool which loads the file content, records it in
the recent-files history and returns it as text (truncated to max_chars).
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from mcp.server.fastmcp import FastMCP

from clients.sparkleshare import ConnectionManager, File, Folder
from config import MAX_FILE_CHARS
from core.errors import ValidationError
from core.recent_files import RecentFilesManager


def build_folder_chain(
    connection: ConnectionManager,
    *,
    folder_ssid: str = "",
    folder_name: str = "",
    path_ssids: Optional[List[str]] = None,
    path_names: Optional[List[str]] = None,
    recent_files: Optional[RecentFilesManager] = None,
) -> Tuple[Optional[Folder], Optional[Folder]]:
    """Rebuild (project folder, deepest folder) from a breadcrumb.

    `path_ssids` lists folder ids root first, as returned by list_folder; its
    first entry is the project folder. `path_names` is aligned with it.
    """
    ssids = [(s or "").strip() for s in (path_ssids or [])]
    if any(not s for s in ssids):
        raise ValidationError("path_ssids must not contain empty ids")
    names = list(path_names or [])

    project_ssid = (folder_ssid or "").strip() or (ssids[0] if ssids else "")
    if not project_ssid:
        return None, None
    if ssids and ssids[0] != project_ssid:
        raise ValidationError("path_ssids must start with folder_ssid")

    project = Folder(
        connection,
        name=folder_name or (names[0] if names else ""),
        ssid=project_ssid,
        recent_files=recent_files,
    )
    parent = project
    for i, ssid in enumerate(ssids[1:], start=1):
        parent = Folder(
            connection,
            name=names[i] if i < len(names) else "",
            ssid=ssid,
            project_folder=project,
            parent=parent,
            recent_files=recent_files,
        )
    return project, parent


def build_file(
    connection: ConnectionManager,
    *,
    file_ssid: str,
    folder_ssid: str = "",
    url: str = "",
    name: str = "",
    mime: str = "",
    folder_name: str = "",
    path_ssids: Optional[List[str]] = None,
    path_names: Optional[List[str]] = None,
    recent_files: Optional[RecentFilesManager] = None,
) -> File:
    """Rebuild a File handle from the identifiers a listing returned."""
    if not file_ssid or not file_ssid.strip():
        raise ValidationError("Missing file_ssid")

    project, parent = build_folder_chain(
        connection,
        folder_ssid=folder_ssid,
        folder_name=folder_name,
        path_ssids=path_ssids,
        path_names=path_names,
        recent_files=recent_files,
    )

    return File(
        connection,
        name=name or file_ssid.strip(),
        ssid=file_ssid.strip(),
        url=(url or "").strip(),
        mime=mime,
        project_folder=project,
        parent=parent,
        recent_files=recent_files,
    )


def register(
    mcp: FastMCP,
    *,
    connection: ConnectionManager,
    recent_files: Optional[RecentFilesManager] = None,
) -> None:
    @mcp.tool(name="read_file")
    async def read_file(
        file_ssid: str,
        folder_ssid: str = "",
        url: str = "",
        name: str = "",
        mime: str = "",
        folder_name: str = "",
        path_ssids: Optional[List[str]] = None,
        path_names: Optional[List[str]] = None,
        max_chars: int = MAX_FILE_CHARS,
    ) -> str:
        """Read a file and return its UTF-8 contents.

        Params:
          - file_ssid: file id from list_folder (required).
          - folder_ssid: id of the project folder holding the file.
          - url: file url from list_folder.
          - name / mime / folder_name: metadata kept in the recent-files history.
          - path_ssids / path_names: the file's breadcrumb from list_folder
            (folder ids root first, project folder included).
          - max_chars: maximum characters to return (default from config).

        Returns:
          The file contents. Content longer than max_chars is truncated and
          the suffix "\\n\\n...[TRUNCATED]..." appended.

        Raises:
          ValidationError for missing inputs; AuthError, NetworkError or
          ServerError when the server cannot deliver the file.
        """
        if max_chars <= 0:
            raise ValidationError("max_chars must be positive")

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
        result = await f.load_content()
        result.raise_for_error()

        text = (f.content or b"").decode("utf-8", errors="replace")
        if len(text) > max_chars:
            return text[:max_chars] + "\n\n...[TRUNCATED]..."
        return text

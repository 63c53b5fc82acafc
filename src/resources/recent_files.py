"""Read-only MCP resource exposing the recent-files history as JSON."""

import json

from mcp.server.fastmcp import FastMCP

from core.recent_files import RecentFilesManager


def register_resources(mcp: FastMCP, *, recent_files: RecentFilesManager) -> None:
    """
    Register SparkleShare resources for the MCP server.
    """

    @mcp.resource(
        "sparkleshare://recent-files",
        mime_type="application/json",
        description="Recently opened SparkleShare files, most recent first",
    )
    def recent_files_resource() -> str:
        return json.dumps([e.to_dict() for e in recent_files.recent_files()], ensure_ascii=False)

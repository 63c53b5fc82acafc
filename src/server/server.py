"""Server bootstrap for the SparkleShare MCP service.

Creates the FastMCP instance, restores the device link and the recent-files
history from the state directory, wires tools and resources, and starts the
MCP server (stdio transport).
"""

import logging

from mcp.server.fastmcp import FastMCP

from clients.sparkleshare import ConnectionManager
from config import (
    DEVICE_NAME,
    HTTP_TIMEOUT,
    HTTP_VERIFY,
    LOG_LEVEL,
    MAX_CONCURRENT_REQUESTS,
    MAX_RECENT_FILES,
    STATE_DIR,
)
from core.recent_files import RecentFilesManager

from tools.link_device import register as register_link_device
from tools.list_folder import register as register_list_folder
from tools.read_file import register as register_read_file
from tools.save_file import register as register_save_file
from tools.recent_files import register as register_recent_files

from resources.recent_files import register_resources

logger = logging.getLogger(__name__)

mcp = FastMCP("sparkleshare-mcp")


def _setup_logging() -> None:
    # stdout carries the stdio transport; basicConfig logs to stderr
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


def register_all() -> None:
    connection = ConnectionManager.from_storage(
        STATE_DIR,
        timeout=HTTP_TIMEOUT,
        verify=HTTP_VERIFY,
        max_concurrency=MAX_CONCURRENT_REQUESTS,
        device_name=DEVICE_NAME,
    )
    recent_files = RecentFilesManager.from_storage(STATE_DIR, max_entries=MAX_RECENT_FILES)

    register_link_device(mcp, connection=connection)
    register_list_folder(mcp, connection=connection, recent_files=recent_files)
    register_read_file(mcp, connection=connection, recent_files=recent_files)
    register_save_file(mcp, connection=connection, recent_files=recent_files)
    register_recent_files(mcp, recent_files=recent_files)
    register_resources(mcp, recent_files=recent_files)

    logger.info("State directory: %s (linked: %s)", STATE_DIR, connection.is_linked)


_setup_logging()
register_all()


def main() -> None:
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()

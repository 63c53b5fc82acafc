"""Delegate protocols consumed by whatever sits on top of the client.

One method per outcome, mirroring the success/failure split of every request.
Delegates are optional; the client also returns a RequestResult.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, List, Protocol

if TYPE_CHECKING:
    from clients.sparkleshare.connection import ConnectionManager
    from clients.sparkleshare.items import File, Folder, FolderItem
    from core.errors import SparkleShareError


class ConnectionDelegate(Protocol):
    def connection_establishing_success(self, connection: "ConnectionManager") -> Any:
        ...

    def connection_establishing_failed(self, connection: "ConnectionManager") -> Any:
        ...

    def connection_linking_success(self, connection: "ConnectionManager") -> Any:
        ...

    def connection_linking_failed(self, connection: "ConnectionManager", error: str) -> Any:
        ...


class FileDelegate(Protocol):
    def file_content_loaded(self, file: "File", content: bytes) -> Any:
        ...

    def file_content_loading_failed(self, file: "File") -> Any:
        ...

    def file_content_saved(self, file: "File") -> Any:
        ...

    def file_content_saving_failed(self, file: "File", error: "SparkleShareError") -> Any:
        ...


class FolderDelegate(Protocol):
    def folder_items_loaded(self, folder: "Folder", items: List["FolderItem"]) -> Any:
        ...

    def folder_items_loading_failed(self, folder: "Folder", error: "SparkleShareError") -> Any:
        ...

    def folder_info_loaded(self, folder: "Folder") -> Any:
        ...

    def folder_info_loading_failed(self, folder: "Folder", error: "SparkleShareError") -> Any:
        ...

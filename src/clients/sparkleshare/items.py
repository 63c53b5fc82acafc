"""Remote tree nodes: FolderItem and its File / Folder specialisations.

A FolderItem is a thin request builder around its identity. It maps itself to
the three request shapes the dashboard API understands and leaves execution to
the shared ConnectionManager:

    GET  /api/{method}/{ssid}
    GET  /api/{method}/{ssid}?{path}
    POST /api/{method}/{ssid}[?{path}]   (raw text body)

Files and sub-folders are addressed through their project folder's ssid plus
the opaque `url` query the server handed out when listing the folder.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Any, List, Mapping, Optional, Tuple

from core.errors import MalformedResponseError, PersistenceError, ValidationError
from core.interfaces import FileDelegate, FolderDelegate
from core.models import PathComponent, RecentFile, RequestResult, utcnow

from .connection import ConnectionManager, FailureFn, SuccessFn, notify, resolve

if TYPE_CHECKING:
    from core.recent_files import RecentFilesManager

logger = logging.getLogger(__name__)


class FolderItem:
    item_type = "item"

    def __init__(
        self,
        connection: ConnectionManager,
        *,
        name: str,
        ssid: str,
        url: str = "",
        mime: str = "",
        project_folder: Optional["Folder"] = None,
        parent: Optional["Folder"] = None,
    ) -> None:
        # Non-owning references: the connection belongs to the server context,
        # parents own their children, never the other way round.
        self.connection = connection
        self.project_folder = project_folder
        self.parent = parent

        self.name = name
        self._ssid = ssid
        self.url = url
        self.mime = mime
        self._completely_loaded = False

    @property
    def ssid(self) -> str:
        return self._ssid

    @property
    def completely_loaded(self) -> bool:
        return self._completely_loaded

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, ssid={self.ssid!r})"

    def to_dict(self) -> dict:
        return {"name": self.name, "ssid": self.ssid, "type": self.item_type, "url": self.url, "mime": self.mime}

    # --- request shapes ---
    # A malformed method name resolves `failure` like any other failed request

    async def send_request_with_self_url_and_method(
        self,
        method: str,
        success: Optional[SuccessFn] = None,
        failure: Optional[FailureFn] = None,
        *,
        expect_json: bool = True,
    ) -> RequestResult:
        try:
            path = self.connection.api_path(method, self.ssid)
        except ValidationError as e:
            return await resolve(RequestResult(error=e), success, failure)
        return await self.connection.send_request(path, success, failure, expect_json=expect_json)

    async def send_request_with_method(
        self,
        method: str,
        path: Optional[str],
        success: Optional[SuccessFn] = None,
        failure: Optional[FailureFn] = None,
        *,
        expect_json: bool = True,
    ) -> RequestResult:
        try:
            api_path = self.connection.api_path(method, self.ssid, path)
        except ValidationError as e:
            return await resolve(RequestResult(error=e), success, failure)
        return await self.connection.send_request(api_path, success, failure, expect_json=expect_json)

    async def send_post_request_with_method_and_data(
        self,
        method: str,
        data: str,
        success: Optional[SuccessFn] = None,
        failure: Optional[FailureFn] = None,
        *,
        path: Optional[str] = None,
    ) -> RequestResult:
        try:
            api_path = self.connection.api_path(method, self.ssid, path)
        except ValidationError as e:
            return await resolve(RequestResult(error=e), success, failure)
        return await self.connection.send_post_request(api_path, data, success, failure)

    # --- tree helpers ---

    def _addressing(self) -> Tuple["FolderItem", Optional[str]]:
        # (item whose ssid goes into the endpoint, query path)
        folder = self.project_folder
        if folder is not None and folder is not self and self.url:
            return folder, self.url
        return self, None

    def path_components(self) -> Tuple[PathComponent, ...]:
        """Breadcrumb from the top-most named folder down to the immediate parent."""
        chain: List[PathComponent] = []
        node = self.parent
        while node is not None:
            if node.ssid or node.name:
                chain.append(PathComponent(name=node.name, ssid=node.ssid, type=node.item_type))
            node = node.parent

        if not chain and self.project_folder is not None and self.project_folder is not self:
            pf = self.project_folder
            chain.append(PathComponent(name=pf.name, ssid=pf.ssid, type=pf.item_type))

        return tuple(reversed(chain))


class File(FolderItem):
    item_type = "file"

    LOAD_METHOD = "getFile"
    SAVE_METHOD = "putFile"

    def __init__(
        self,
        connection: ConnectionManager,
        *,
        name: str,
        ssid: str,
        url: str = "",
        mime: str = "",
        filesize: int = 0,
        project_folder: Optional["Folder"] = None,
        parent: Optional["Folder"] = None,
        delegate: Optional[FileDelegate] = None,
        recent_files: Optional["RecentFilesManager"] = None,
    ) -> None:
        super().__init__(
            connection,
            name=name,
            ssid=ssid,
            url=url,
            mime=mime,
            project_folder=project_folder,
            parent=parent,
        )
        self.filesize = int(filesize or 0)
        self.content: Optional[bytes] = None
        self.delegate = delegate
        self.recent_files = recent_files

    def to_dict(self) -> dict:
        return {**super().to_dict(), "filesize": self.filesize}

    async def load_content(self) -> RequestResult:
        """Fetch the file bytes. A failure leaves any cached content alone."""
        target, query = self._addressing()

        async def on_success(request: Any, response: Any, payload: Any) -> None:
            content = bytes(payload or b"")
            self.content = content
            self.filesize = len(content)
            self._completely_loaded = True
            self._record_access()
            await notify(self.delegate, "file_content_loaded", self, content)

        async def on_failure(request: Any, response: Any, error: Any, payload: Any) -> None:
            logger.warning("Loading %s failed: %s", self.name or self.ssid, error)
            await notify(self.delegate, "file_content_loading_failed", self)

        if query is None:
            return await target.send_request_with_self_url_and_method(
                self.LOAD_METHOD, on_success, on_failure, expect_json=False
            )
        return await target.send_request_with_method(
            self.LOAD_METHOD, query, on_success, on_failure, expect_json=False
        )

    async def save_content(self, text: str) -> RequestResult:
        """Upload `text`; local content only changes once the server acknowledged it."""
        target, query = self._addressing()
        data = text or ""

        async def on_success(request: Any, response: Any, payload: Any) -> None:
            content = data.encode("utf-8")
            self.content = content
            self.filesize = len(content)
            self._record_access()
            await notify(self.delegate, "file_content_saved", self)

        async def on_failure(request: Any, response: Any, error: Any, payload: Any) -> None:
            logger.warning("Saving %s failed: %s", self.name or self.ssid, error)
            await notify(self.delegate, "file_content_saving_failed", self, error)

        return await target.send_post_request_with_method_and_data(
            self.SAVE_METHOD, data, on_success, on_failure, path=query
        )

    def to_recent_file(self) -> RecentFile:
        pf = self.project_folder
        return RecentFile(
            file_name=self.name,
            file_ssid=self.ssid,
            file_url=self.url,
            file_mime=self.mime,
            file_size=self.filesize,
            project_folder_ssid=pf.ssid if pf is not None else "",
            project_folder_name=pf.name if pf is not None else "",
            path_components=self.path_components(),
            access_date=utcnow(),
        )

    def _record_access(self) -> None:
        if self.recent_files is None:
            return
        try:
            self.recent_files.add_recent_file(self.to_recent_file())
        except PersistenceError as e:
            logger.warning("Could not record %s as recent: %s", self.name or self.ssid, e)


class Folder(FolderItem):
    """Project folder or sub-folder; owns the items listed in it."""

    item_type = "dir"

    CONTENT_METHOD = "getFolderContent"
    REVISION_METHOD = "getFolderRevision"

    def __init__(
        self,
        connection: ConnectionManager,
        *,
        name: str,
        ssid: str,
        url: str = "",
        mime: str = "",
        project_folder: Optional["Folder"] = None,
        parent: Optional["Folder"] = None,
        delegate: Optional[FolderDelegate] = None,
        recent_files: Optional["RecentFilesManager"] = None,
    ) -> None:
        super().__init__(
            connection,
            name=name,
            ssid=ssid,
            url=url,
            mime=mime,
            project_folder=project_folder,
            parent=parent,
        )
        self.delegate = delegate
        self.recent_files = recent_files
        self.items: List[FolderItem] = []
        self.revision: Optional[str] = None

    @property
    def is_project_folder(self) -> bool:
        return self.project_folder is None or self.project_folder is self

    def _project(self) -> "Folder":
        return self if self.project_folder is None else self.project_folder

    async def load_items(self) -> RequestResult:
        target, query = self._addressing()
        result = await target.send_request_with_method(self.CONTENT_METHOD, query)
        return await self._apply_listing(result)

    async def load_info(self) -> RequestResult:
        async def on_success(request: Any, response: Any, payload: Any) -> None:
            self.revision = self._parse_revision(payload)
            self._completely_loaded = True
            await notify(self.delegate, "folder_info_loaded", self)

        async def on_failure(request: Any, response: Any, error: Any, payload: Any) -> None:
            await notify(self.delegate, "folder_info_loading_failed", self, error)

        return await self._project().send_request_with_self_url_and_method(
            self.REVISION_METHOD, on_success, on_failure
        )

    async def _apply_listing(self, result: RequestResult) -> RequestResult:
        if result.ok and not isinstance(result.payload, list):
            result = replace(result, error=MalformedResponseError("Folder listing is not a list"))
        return await resolve(result, *self._listing_callbacks())

    def _listing_callbacks(self) -> Tuple[SuccessFn, FailureFn]:
        async def on_success(request: Any, response: Any, payload: Any) -> None:
            self.items = self._build_items(payload)
            await notify(self.delegate, "folder_items_loaded", self, list(self.items))

        async def on_failure(request: Any, response: Any, error: Any, payload: Any) -> None:
            logger.warning("Listing %s failed: %s", self.name or self.ssid, error)
            await notify(self.delegate, "folder_items_loading_failed", self, error)

        return on_success, on_failure

    def _build_items(self, payload: Any) -> List[FolderItem]:
        out: List[FolderItem] = []
        for raw in payload:
            if isinstance(raw, Mapping):
                item = self._make_item(raw)
                if item is not None:
                    out.append(item)
        return out

    def _make_item(self, raw: Mapping[str, Any]) -> Optional[FolderItem]:
        ssid = str(raw.get("id") or raw.get("ssid") or "")
        name = str(raw.get("name") or "")
        if not ssid and not name:
            return None

        common = dict(
            name=name,
            ssid=ssid,
            url=str(raw.get("url") or ""),
            mime=str(raw.get("mime") or ""),
            project_folder=self._project(),
            parent=self,
        )
        if raw.get("type") == "file":
            return File(self.connection, filesize=_as_int(raw.get("fileSize")), recent_files=self.recent_files, **common)
        return Folder(self.connection, recent_files=self.recent_files, **common)

    @staticmethod
    def _parse_revision(payload: Any) -> Optional[str]:
        if isinstance(payload, Mapping):
            payload = payload.get("revision")
        return None if payload is None else str(payload)


class RootFolder(Folder):
    """Unnamed top of the tree; its items are the project folders."""

    LIST_METHOD = "getFolderList"

    def __init__(
        self,
        connection: ConnectionManager,
        *,
        delegate: Optional[FolderDelegate] = None,
        recent_files: Optional["RecentFilesManager"] = None,
    ) -> None:
        super().__init__(connection, name="", ssid="", delegate=delegate, recent_files=recent_files)

    async def load_items(self) -> RequestResult:
        result = await self.send_request_with_self_url_and_method(self.LIST_METHOD)
        return await self._apply_listing(result)

    def _make_item(self, raw: Mapping[str, Any]) -> Optional[FolderItem]:
        ssid = str(raw.get("id") or raw.get("ssid") or "")
        if not ssid:
            return None
        # Project folders are their own addressing root
        return Folder(
            self.connection,
            name=str(raw.get("name") or ""),
            ssid=ssid,
            parent=self,
            recent_files=self.recent_files,
        )


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0

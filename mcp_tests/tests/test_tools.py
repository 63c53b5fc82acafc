import json
from datetime import datetime, timezone

import httpx
import pytest

from core.errors import AuthError, ServerError, ValidationError
from core.models import PathComponent, RecentFile
from core.recent_files import RecentFilesManager
from resources import recent_files as recent_resource
from tools import link_device as link_tool
from tools import list_folder as list_tool
from tools import read_file as read_tool
from tools import recent_files as recent_tool
from tools import save_file as save_tool


@pytest.fixture
def recent(tmp_path):
    return RecentFilesManager.from_storage(tmp_path / "recent")


# ---------------------------
# link_device / connection_status
# ---------------------------

@pytest.mark.asyncio
async def test_link_device_tool(connection, patch_transport, dummy_mcp):
    patch_transport(connection, lambda request: httpx.Response(200, json={"ident": "dev-17", "authCode": "tok-99"}))
    link_tool.register(dummy_mcp, connection=connection)

    out = await dummy_mcp.tools["link_device"](address="https://sync.example.org", code="ABC123")

    assert out == {"linked": True, "address": "https://sync.example.org", "ident": "dev-17"}


@pytest.mark.asyncio
async def test_link_device_tool_raises_auth_error(connection, patch_transport, dummy_mcp):
    patch_transport(connection, lambda request: httpx.Response(403, json={"error": "expired"}))
    link_tool.register(dummy_mcp, connection=connection)

    with pytest.raises(AuthError):
        await dummy_mcp.tools["link_device"](address="https://sync.example.org", code="ABC123")


@pytest.mark.asyncio
async def test_link_device_tool_validates_inputs(connection, dummy_mcp):
    link_tool.register(dummy_mcp, connection=connection)

    with pytest.raises(ValidationError):
        await dummy_mcp.tools["link_device"](address=" ", code="ABC123")
    with pytest.raises(ValidationError):
        await dummy_mcp.tools["link_device"](address="https://sync.example.org", code="")


@pytest.mark.asyncio
async def test_connection_status_unlinked(connection, dummy_mcp):
    link_tool.register(dummy_mcp, connection=connection)

    out = await dummy_mcp.tools["connection_status"]()

    assert out == {"linked": False, "address": None, "reachable": False, "error": None}


@pytest.mark.asyncio
async def test_connection_status_unreachable(linked_connection, patch_transport, dummy_mcp):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    patch_transport(linked_connection, handler)
    link_tool.register(dummy_mcp, connection=linked_connection)

    out = await dummy_mcp.tools["connection_status"]()

    assert out["linked"] is True
    assert out["reachable"] is False
    assert "refused" in out["error"]


# ---------------------------
# list_folder
# ---------------------------

@pytest.mark.asyncio
async def test_list_folder_root_and_project(linked_connection, patch_transport, dummy_mcp):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/getFolderList":
            return httpx.Response(200, json=[{"name": "Project", "id": "p1"}])
        assert request.url.path == "/api/getFolderContent/p1"
        assert request.url.params.get("path") == "docs"
        return httpx.Response(200, json=[{"name": "a.md", "id": "h1", "type": "file", "url": "path=docs%2Fa.md"}])

    patch_transport(linked_connection, handler)
    list_tool.register(dummy_mcp, connection=linked_connection)

    roots = await dummy_mcp.tools["list_folder"]()
    assert roots == [{"name": "Project", "ssid": "p1", "type": "dir", "url": "", "mime": "", "path_ssids": []}]

    items = await dummy_mcp.tools["list_folder"](folder_ssid="p1", url="path=docs")
    assert items == [
        {
            "name": "a.md",
            "ssid": "h1",
            "type": "file",
            "url": "path=docs%2Fa.md",
            "mime": "",
            "path_ssids": ["p1"],
            "filesize": 0,
        }
    ]


# ---------------------------
# read_file / save_file
# ---------------------------

@pytest.mark.asyncio
async def test_read_file_tool_returns_text_and_records_recent(linked_connection, patch_transport, dummy_mcp, recent):
    patch_transport(linked_connection, lambda request: httpx.Response(200, content="# Tïtle".encode("utf-8")))
    read_tool.register(dummy_mcp, connection=linked_connection, recent_files=recent)

    out = await dummy_mcp.tools["read_file"](
        file_ssid="h1", folder_ssid="p1", url="path=a.md", name="a.md", folder_name="Project"
    )

    assert out == "# Tïtle"
    (entry,) = recent.recent_files()
    assert entry.file_ssid == "h1"
    assert entry.project_folder_name == "Project"
    assert entry.path_components == (PathComponent("Project", "p1", "dir"),)


@pytest.mark.asyncio
async def test_read_file_tool_truncates(linked_connection, patch_transport, dummy_mcp):
    patch_transport(linked_connection, lambda request: httpx.Response(200, content=b"a" * 30))
    read_tool.register(dummy_mcp, connection=linked_connection)

    out = await dummy_mcp.tools["read_file"](file_ssid="f42", max_chars=10)

    assert out.startswith("a" * 10)
    assert "TRUNCATED" in out


@pytest.mark.asyncio
async def test_read_file_tool_validates(linked_connection, dummy_mcp):
    read_tool.register(dummy_mcp, connection=linked_connection)

    with pytest.raises(ValidationError):
        await dummy_mcp.tools["read_file"](file_ssid="  ")
    with pytest.raises(ValidationError):
        await dummy_mcp.tools["read_file"](file_ssid="f42", max_chars=0)


@pytest.mark.asyncio
async def test_save_file_tool(linked_connection, patch_transport, dummy_mcp, recent):
    seen = []
    patch_transport(linked_connection, lambda request: seen.append(request) or httpx.Response(200))
    save_tool.register(dummy_mcp, connection=linked_connection, recent_files=recent)

    out = await dummy_mcp.tools["save_file"](file_ssid="f42", content="hello")

    assert out == {"saved": True, "ssid": "f42", "filesize": 5}
    assert seen[0].method == "POST"
    assert seen[0].url.path == "/api/putFile/f42"
    assert [e.file_ssid for e in recent.recent_files()] == ["f42"]


@pytest.mark.asyncio
async def test_save_file_tool_raises_server_error(linked_connection, patch_transport, dummy_mcp, recent):
    patch_transport(linked_connection, lambda request: httpx.Response(500, json={"error": "nope"}))
    save_tool.register(dummy_mcp, connection=linked_connection, recent_files=recent)

    with pytest.raises(ServerError):
        await dummy_mcp.tools["save_file"](file_ssid="f42", content="hello")
    assert recent.recent_files() == []


@pytest.mark.asyncio
async def test_nested_file_keeps_full_breadcrumb(linked_connection, patch_transport, dummy_mcp, recent):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/getFolderContent/p1":
            assert request.url.params.get("path") == "docs"
            return httpx.Response(200, json=[{"name": "a.md", "id": "h1", "type": "file", "url": "path=docs%2Fa.md"}])
        assert request.url.path == "/api/getFile/p1"
        assert request.url.params.get("path") == "docs/a.md"
        return httpx.Response(200, content=b"nested")

    patch_transport(linked_connection, handler)
    list_tool.register(dummy_mcp, connection=linked_connection, recent_files=recent)
    read_tool.register(dummy_mcp, connection=linked_connection, recent_files=recent)
    recent_tool.register(dummy_mcp, recent_files=recent)

    (item,) = await dummy_mcp.tools["list_folder"](
        folder_ssid="p1", url="path=docs", path_ssids=["p1", "s1"], path_names=["Project", "docs"]
    )
    assert item["path_ssids"] == ["p1", "s1"]

    out = await dummy_mcp.tools["read_file"](
        file_ssid=item["ssid"],
        url=item["url"],
        name=item["name"],
        path_ssids=item["path_ssids"],
        path_names=["Project", "docs"],
    )

    assert out == "nested"
    (entry,) = recent.recent_files()
    assert entry.project_folder_ssid == "p1"
    assert entry.path_components == (PathComponent("Project", "p1"), PathComponent("docs", "s1"))

    # Project-only path does not match the nested entry
    remaining = await dummy_mcp.tools["remove_recent_file"](file_ssid="h1", path_ssids=["p1"])
    assert [e["file_ssid"] for e in remaining] == ["h1"]
    remaining = await dummy_mcp.tools["remove_recent_file"](file_ssid="h1", path_ssids=["p1", "s1"])
    assert remaining == []


@pytest.mark.asyncio
async def test_breadcrumb_must_start_at_the_project_folder(linked_connection, dummy_mcp):
    read_tool.register(dummy_mcp, connection=linked_connection)

    with pytest.raises(ValidationError):
        await dummy_mcp.tools["read_file"](file_ssid="h1", folder_ssid="p1", path_ssids=["p2", "s1"])
    with pytest.raises(ValidationError):
        await dummy_mcp.tools["read_file"](file_ssid="h1", path_ssids=["p1", " "])


# ---------------------------
# recent files tools + resource
# ---------------------------

def _entry(ssid, minute, path=()):
    return RecentFile(
        file_name=f"{ssid}.md",
        file_ssid=ssid,
        path_components=tuple(path),
        access_date=datetime(2026, 3, 1, 12, minute, tzinfo=timezone.utc),
    )


@pytest.mark.asyncio
async def test_recent_files_tools(dummy_mcp, recent):
    recent.add_recent_file(_entry("a", 0, [PathComponent("Project", "p1")]))
    recent.add_recent_file(_entry("b", 5))
    recent_tool.register(dummy_mcp, recent_files=recent)

    listed = await dummy_mcp.tools["recent_files"]()
    assert [e["file_ssid"] for e in listed] == ["b", "a"]
    assert [e["file_ssid"] for e in await dummy_mcp.tools["recent_files"](limit=1)] == ["b"]

    # Wrong path: nothing removed
    remaining = await dummy_mcp.tools["remove_recent_file"](file_ssid="a", path_ssids=["p2"])
    assert [e["file_ssid"] for e in remaining] == ["b", "a"]

    remaining = await dummy_mcp.tools["remove_recent_file"](file_ssid="a", path_ssids=["p1"])
    assert [e["file_ssid"] for e in remaining] == ["b"]

    assert await dummy_mcp.tools["clear_recent_files"]() == {"cleared": True}
    assert recent.recent_files() == []


def test_recent_files_resource(dummy_mcp, recent):
    recent.add_recent_file(_entry("a", 0))
    recent_resource.register_resources(dummy_mcp, recent_files=recent)

    body = dummy_mcp.resources["sparkleshare://recent-files"]()

    assert [e["file_ssid"] for e in json.loads(body)] == ["a"]

import httpx
import pytest

from clients.sparkleshare import ConnectionManager
from core.models import Credentials
from core.storage import CredentialStore


ADDRESS = "https://sync.example.org"


class DummyMCP:
    """Minimal FastMCP stand-in to capture tool and resource registration."""

    def __init__(self) -> None:
        self.tools = {}
        self.resources = {}

    def tool(self, *, name: str):
        def _decorator(fn):
            self.tools[name] = fn
            return fn
        return _decorator

    def resource(self, uri: str, **kwargs):
        def _decorator(fn):
            self.resources[uri] = fn
            return fn
        return _decorator


class RecordingDelegate:
    """Collects every delegate call as (method_name, *args)."""

    def __init__(self) -> None:
        self.calls = []

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)

        def _record(*args):
            self.calls.append((name, *args))
        return _record

    def names(self):
        return [c[0] for c in self.calls]


@pytest.fixture
def dummy_mcp():
    return DummyMCP()


@pytest.fixture
def delegate():
    return RecordingDelegate()


@pytest.fixture
def state_dir(tmp_path):
    return tmp_path / "state"


@pytest.fixture
def connection(state_dir):
    return ConnectionManager.from_storage(state_dir, timeout=5.0, device_name="test-device")


@pytest.fixture
def linked_connection(state_dir):
    CredentialStore.in_dir(state_dir).save(Credentials(ADDRESS, "dev-17", "tok-99"))
    return ConnectionManager.from_storage(state_dir, timeout=5.0, device_name="test-device")


@pytest.fixture
def patch_transport(monkeypatch):
    """
    Patch httpx.AsyncClient so ConnectionManager._create_client() talks to an
    httpx.MockTransport. Everything else the real client factory sets
    (base_url, signing headers, timeout, verify) is kept.

    handler(request) -> httpx.Response (sync or async).
    Returns the list of keyword arguments each AsyncClient was built with.
    """
    orig = httpx.AsyncClient

    def _patch(connection: ConnectionManager, handler):
        transport = httpx.MockTransport(handler)
        created = []

        def patched_async_client(*args, **kwargs):
            created.append(dict(kwargs))
            kwargs["transport"] = transport
            return orig(*args, **kwargs)

        monkeypatch.setattr(httpx, "AsyncClient", patched_async_client)
        return created

    return _patch

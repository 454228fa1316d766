"""
HTTP Gateway Tests

Error mapping over a mocked transport, plus the store running against the
real API application in-process.
"""

import asyncio
import json

import httpx
import pytest

from timber_backend.api.server import create_app
from timber_backend.config import ServerConfig
from timber_backend.contracts import DecodeError, ServerError, TransportError, ValidationError
from timber_backend.normalization import build_empty_matrix
from timber_backend.storage import InMemoryStorageBackend, MatrixStorageConfig, MatrixStorageEngine
from timber_frontend.gateway import GatewayConfig, HttpMatrixGateway
from timber_frontend.state import MatrixStore

from .fixtures import item_45x90, make_clock, stacked_bay_matrix


BASE_URL = "http://matrix.test"


class ReadOnlyBackend(InMemoryStorageBackend):
    """Serves reads; every write fails."""

    def write_bay(self, bay, column):
        raise OSError("read-only filesystem")


def gateway_for(handler, requests=None):
    """Gateway whose transport answers with `handler`, recording requests."""
    def record(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(record))
    return HttpMatrixGateway(GatewayConfig(base_url=BASE_URL), client=client)


def respond(status, body=None, text=None):
    def handler(request):
        if text is not None:
            return httpx.Response(status, text=text)
        return httpx.Response(status, json=body)
    return handler


# =============================================================================
# WIRE FORMAT
# =============================================================================

class TestRequests:

    def test_fetch_normalizes_partial_matrix(self):
        partial = {"B01": {"L01": {"items": [item_45x90()], "updated_at": "t"}}}
        gateway = gateway_for(respond(200, partial))

        matrix = asyncio.run(gateway.fetch_full_matrix())

        assert matrix["B01"]["L01"]["bay"] == "B01"
        assert matrix["B13"]["L10"] is None

    def test_replace_bay_sends_patch_body(self):
        requests = []
        gateway = gateway_for(respond(200, build_empty_matrix()), requests)
        levels = {"L01": None}

        asyncio.run(gateway.replace_bay("B04", levels))

        request = requests[0]
        assert request.method == "PATCH"
        assert str(request.url) == f"{BASE_URL}/matrix"
        assert json.loads(request.content) == {"bay": "B04", "levels": {"L01": None}}

    def test_replace_matrix_sends_put(self):
        requests = []
        gateway = gateway_for(respond(200, build_empty_matrix()), requests)

        asyncio.run(gateway.replace_matrix(stacked_bay_matrix()))

        assert requests[0].method == "PUT"
        assert json.loads(requests[0].content)["B01"]["L01"]["bundle"] == "first"

    def test_bay_out_of_range_never_hits_the_wire(self):
        requests = []
        gateway = gateway_for(respond(200, build_empty_matrix()), requests)

        with pytest.raises(ValidationError):
            asyncio.run(gateway.replace_bay("B99", {}))
        assert requests == []


# =============================================================================
# ERROR MAPPING
# =============================================================================

class TestErrors:

    def test_server_error_message_is_surfaced(self):
        gateway = gateway_for(respond(400, {"error": "Bay is out of range"}))

        with pytest.raises(ServerError) as exc_info:
            asyncio.run(gateway.fetch_full_matrix())

        assert exc_info.value.message == "Bay is out of range"
        assert exc_info.value.status_code == 400

    def test_error_without_body_uses_reason_phrase(self):
        gateway = gateway_for(respond(503, text=""))

        with pytest.raises(ServerError) as exc_info:
            asyncio.run(gateway.fetch_full_matrix())

        assert exc_info.value.message == "Service Unavailable"
        assert exc_info.value.status_code == 503

    def test_connection_refused_is_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransportError):
            asyncio.run(gateway_for(handler).fetch_full_matrix())

    def test_timeout_is_transport_error(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(TransportError) as exc_info:
            asyncio.run(gateway_for(handler).replace_bay("B01", {}))
        assert "timed out" in exc_info.value.message

    @pytest.mark.parametrize("text", ["<html>oops</html>", "[]", ""])
    def test_malformed_success_body_is_decode_error(self, text):
        gateway = gateway_for(respond(200, text=text))

        with pytest.raises(DecodeError):
            asyncio.run(gateway.fetch_full_matrix())


class TestGatewayConfig:

    def test_from_env(self):
        config = GatewayConfig.from_env({
            "TIMBER_MATRIX_API_URL": "http://yard:4000",
            "TIMBER_MATRIX_API_TIMEOUT": "2.5",
        })
        assert config.base_url == "http://yard:4000"
        assert config.timeout == 2.5

    def test_defaults(self):
        config = GatewayConfig.from_env({})
        assert config.base_url == "http://localhost:4000"
        assert config.timeout == 10.0


# =============================================================================
# STORE AGAINST THE API
# =============================================================================

class TestStoreOverHttp:

    def run_session(self, storage, session):
        app = create_app(config=ServerConfig(storage=MatrixStorageConfig()), storage=storage)

        async def scenario():
            transport = httpx.ASGITransport(app=app)
            async with httpx.AsyncClient(transport=transport) as client:
                gateway = HttpMatrixGateway(GatewayConfig(base_url="http://test"), client=client)
                store = MatrixStore(gateway, clock=make_clock())
                await store.load_matrix()
                await session(store)
                return store

        return asyncio.run(scenario())

    def test_save_reaches_storage(self):
        storage = MatrixStorageEngine(backend=InMemoryStorageBackend())

        async def session(store):
            store.unlock("0000")
            await store.save_cell("B02", "L01", [item_45x90()])

        store = self.run_session(storage, session)

        persisted = storage.get_matrix()["B02"]["L01"]
        assert persisted["updated_by"] == "Steve (Factory Manager)"
        assert store.matrix == storage.get_matrix()
        assert store.error is None

    def test_failed_write_rolls_back_with_server_message(self):
        storage = MatrixStorageEngine(backend=ReadOnlyBackend(stacked_bay_matrix()))
        seen = {}

        async def session(store):
            before = store.matrix
            with pytest.raises(ServerError):
                await store.clear_cell("B01", "L02")
            seen["before"] = before

        store = self.run_session(storage, session)

        assert store.matrix == seen["before"]
        assert store.error == "Internal server error"
        assert not store.syncing

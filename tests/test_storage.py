"""Unit tests for the storage gateway lifecycle and index provisioning."""
import asyncio

import pytest
from pymongo.errors import OperationFailure, ServerSelectionTimeoutError

from slip_api.config import mask_mongo_uri
from slip_api.exceptions import StorageUnavailableError
from slip_api.storage import INDEX_SPECS, StorageGateway, StorageState, ensure_indexes
from slip_api.storage import gateway as gateway_module


class _Database:
    def __init__(self, name):
        self.name = name

    def __getitem__(self, collection_name):
        return f"{self.name}.{collection_name}"

    async def command(self, name):
        return {"ok": 1}


class _Admin:
    def __init__(self, error=None):
        self.error = error

    async def command(self, name):
        # Yield like a network round trip so concurrent connects interleave
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return {"ok": 1}


class _Client:
    instances = []
    error = None

    def __init__(self, uri, **kwargs):
        self.uri = uri
        self.kwargs = kwargs
        self.admin = _Admin(type(self).error)
        self.closed = False
        type(self).instances.append(self)

    def __getitem__(self, name):
        return _Database(name)

    async def close(self):
        self.closed = True


@pytest.fixture
def mongo_client(monkeypatch):
    _Client.instances = []
    _Client.error = None
    monkeypatch.setattr(gateway_module, "AsyncMongoClient", _Client)
    return _Client


class TestStorageGateway:
    """Test suite for the connection state machine."""

    def test_starts_disconnected_and_refuses_collections(self):
        """Should raise StorageUnavailableError before connecting."""
        gateway = StorageGateway(uri="mongodb://localhost:1", database_name="t")

        assert gateway.state == StorageState.DISCONNECTED
        with pytest.raises(StorageUnavailableError):
            gateway.collection("master_slips")

    @pytest.mark.asyncio
    async def test_connect_success(self, mongo_client):
        """Should reach READY after a successful ping and expose collections."""
        gateway = StorageGateway(uri="mongodb://db:27017", database_name="slips", timeout_ms=1500)

        assert await gateway.connect() is True

        assert gateway.state == StorageState.READY
        assert gateway.collection("master_slips") == "slips.master_slips"
        assert mongo_client.instances[0].kwargs == {"serverSelectionTimeoutMS": 1500}
        assert await gateway.ping() is True

    @pytest.mark.asyncio
    async def test_connect_failure_degrades_without_raising(self, mongo_client):
        """Should end DEGRADED, keep the error and close the failed client."""
        mongo_client.error = ServerSelectionTimeoutError("no servers available")
        gateway = StorageGateway(uri="mongodb://db:27017", database_name="slips")

        assert await gateway.connect() is False

        assert gateway.state == StorageState.DEGRADED
        assert "no servers available" in gateway.last_error
        assert mongo_client.instances[0].closed is True
        with pytest.raises(StorageUnavailableError):
            gateway.collection("generated_slips")

    @pytest.mark.asyncio
    async def test_reconnect_after_failure(self, mongo_client):
        """Should reach READY on a later attempt once the server is back."""
        mongo_client.error = ServerSelectionTimeoutError("down")
        gateway = StorageGateway(uri="mongodb://db:27017", database_name="slips")
        await gateway.connect()

        mongo_client.error = None
        assert await gateway.connect() is True
        assert gateway.is_ready
        assert gateway.last_error is None

    @pytest.mark.asyncio
    async def test_concurrent_connects_share_one_client(self, mongo_client):
        """Should open a single client when several connects race."""
        gateway = StorageGateway(uri="mongodb://db:27017", database_name="slips")

        results = await asyncio.gather(*(gateway.connect() for _ in range(5)))

        assert results == [True] * 5
        assert gateway.is_ready
        assert len(mongo_client.instances) == 1
        assert mongo_client.instances[0].closed is False

    @pytest.mark.asyncio
    async def test_concurrent_failed_connects_leave_nothing_open(self, mongo_client):
        """Should close every client opened by racing connects that fail."""
        mongo_client.error = ServerSelectionTimeoutError("down")
        gateway = StorageGateway(uri="mongodb://db:27017", database_name="slips")

        results = await asyncio.gather(*(gateway.connect() for _ in range(3)))

        assert results == [False] * 3
        assert gateway.state == StorageState.DEGRADED
        assert all(client.closed for client in mongo_client.instances)

    @pytest.mark.asyncio
    async def test_unknown_collection(self, mongo_client):
        """Should reject collection names outside the configured set."""
        gateway = StorageGateway(uri="mongodb://db:27017", database_name="slips")
        await gateway.connect()

        with pytest.raises(KeyError):
            gateway.collection("bets")

    @pytest.mark.asyncio
    async def test_mark_degraded_and_close(self, mongo_client):
        """Should leave READY on a reported failure and DISCONNECTED on close."""
        gateway = StorageGateway(uri="mongodb://db:27017", database_name="slips")
        await gateway.connect()

        gateway.mark_degraded("connection reset")
        assert gateway.state == StorageState.DEGRADED
        assert gateway.describe()["collections"] == []

        await gateway.close()
        assert gateway.state == StorageState.DISCONNECTED


class TestEnsureIndexes:
    """Test suite for best-effort index creation."""

    @pytest.mark.asyncio
    async def test_creates_every_index(self, gateway):
        """Should create every configured index."""
        ensured = await ensure_indexes(gateway)

        assert ensured == {name: len(specs) for name, specs in INDEX_SPECS.items()}
        unique = [
            index["fields"] for index in gateway.collections["master_slips"].indexes
            if index["unique"]
        ]
        assert unique == [["master_slip_id"]]

    @pytest.mark.asyncio
    async def test_failures_are_skipped(self, gateway):
        """Should log and skip a collection whose index creation fails."""
        gateway.collections["matches"].fail_with = OperationFailure("not allowed")

        ensured = await ensure_indexes(gateway)

        assert ensured["matches"] == 0
        assert ensured["master_slips"] == len(INDEX_SPECS["master_slips"])

    @pytest.mark.asyncio
    async def test_skipped_while_disconnected(self):
        """Should do nothing when storage is not ready."""
        from fakes import FakeGateway

        assert await ensure_indexes(FakeGateway(connected=False)) == {}


def test_mask_mongo_uri():
    """Should hide the password of a connection string."""
    assert mask_mongo_uri("mongodb://user:secret@db:27017/x") == "mongodb://user:****@db:27017/x"
    assert mask_mongo_uri("mongodb://127.0.0.1:27017") == "mongodb://127.0.0.1:27017"

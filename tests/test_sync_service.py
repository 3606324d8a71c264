"""Unit tests for SyncService.

Test Strategy:
1. Test that one payload lands in every collection with normalized keys
2. Test idempotency: replaying a payload converges without duplicates
3. Test payload validation happens before any write
4. Test partial failure leaves earlier steps applied and a retry converges
"""
import re

import pytest
from pymongo.errors import OperationFailure

from fakes import FakeGateway
from slip_api.exceptions import PayloadValidationError, StorageUnavailableError
from slip_api.services import SyncService


def _docs(gateway, name):
    return gateway.collections[name].documents


class TestSyncService:
    """Test suite for bulk slip synchronization."""

    @pytest.mark.asyncio
    async def test_sync_writes_every_collection(self, gateway, sample_sync_payload):
        """Should upsert master slip, slips, legs, optimized slips and matches."""
        report = await SyncService(gateway).sync(sample_sync_payload, "req_test")

        assert report.master_slip_id == "123"
        assert report.counts() == {
            "master_slips": 1,
            "generated_slips": 2,
            "generated_slip_legs": 3,
            "optimized_slips": 1,
            "matches": 1,
            "master_slip_matches": 2,
        }

        master = _docs(gateway, "master_slips")[0]
        assert master["master_slip_id"] == "123"
        assert master["user_id"] == "u-9"
        assert master["created_at"] is not None

        slip_ids = sorted(doc["slip_id"] for doc in _docs(gateway, "generated_slips"))
        assert slip_ids == ["7", "s-8"]
        assert {doc["master_slip_id"] for doc in _docs(gateway, "generated_slips")} == {"123"}

        optimized = _docs(gateway, "optimized_slips")[0]
        assert optimized["master_slip_id"] == 123

        scoped = _docs(gateway, "master_slip_matches")
        assert {doc["master_slip_id"] for doc in scoped} == {123}

    @pytest.mark.asyncio
    async def test_sync_stores_legs_with_positions(self, gateway, sample_sync_payload):
        """Should store each leg with its slip keys and array position."""
        await SyncService(gateway).sync(sample_sync_payload, "req_test")

        legs = sorted(
            _docs(gateway, "generated_slip_legs"),
            key=lambda leg: (leg["slip_id"], leg["position"])
        )
        assert [(leg["slip_id"], leg["position"], leg["match_id"]) for leg in legs] == [
            ("7", 0, 55),
            ("7", 1, 56),
            ("s-8", 0, "57"),
        ]
        assert legs[0]["master_slip_id"] == "123"
        assert legs[0]["match"] is None
        assert legs[1]["match"] == {"home_team": "Lyon", "away_team": "Nice"}

    @pytest.mark.asyncio
    async def test_sync_extracts_canonical_match_from_camel_case(self, gateway, sample_sync_payload):
        """Should register match_data under the match id with snake_case team names."""
        await SyncService(gateway).sync(sample_sync_payload, "req_test")

        registry = _docs(gateway, "matches")
        assert len(registry) == 1
        assert registry[0]["id"] == 55
        assert registry[0]["home_team"] == "Arsenal"
        assert registry[0]["away_team"] == "Chelsea"

    @pytest.mark.asyncio
    async def test_sync_is_idempotent(self, gateway, sample_sync_payload):
        """Should converge to the same documents when a payload is replayed."""
        service = SyncService(gateway)
        await service.sync(sample_sync_payload, "req_1")
        first_created = _docs(gateway, "master_slips")[0]["created_at"]

        await service.sync(sample_sync_payload, "req_2")

        assert len(_docs(gateway, "master_slips")) == 1
        assert len(_docs(gateway, "generated_slips")) == 2
        assert len(_docs(gateway, "generated_slip_legs")) == 3
        assert len(_docs(gateway, "optimized_slips")) == 1
        assert len(_docs(gateway, "master_slip_matches")) == 2
        assert len(_docs(gateway, "matches")) == 1
        assert _docs(gateway, "master_slips")[0]["created_at"] == first_created

    @pytest.mark.asyncio
    async def test_resync_with_fewer_legs_removes_dropped_legs(self, gateway):
        """Should delete stored legs that a later push no longer carries."""
        service = SyncService(gateway)
        await service.sync({
            "master_slip": {"id": 1},
            "generated_slips": [
                {"id": 7, "legs": [
                    {"id": 70, "match_id": 1, "odds": 1.5},
                    {"id": 71, "match_id": 2, "odds": 2.0},
                    {"id": 72, "match_id": 3, "odds": 2.5},
                ]},
                {"id": 8, "legs": [{"match_id": 4, "odds": 3.0}]},
            ],
        })

        await service.sync({
            "master_slip": {"id": 1},
            "generated_slips": [
                {"id": 7, "legs": [{"id": 71, "match_id": 2, "odds": 2.2}]},
            ],
        })

        legs = _docs(gateway, "generated_slip_legs")
        slip_7 = [leg for leg in legs if leg["slip_id"] == "7"]
        assert [(leg["id"], leg["position"], leg["odds"]) for leg in slip_7] == [(71, 0, 2.2)]
        # Slips absent from the push keep their legs
        assert [leg["match_id"] for leg in legs if leg["slip_id"] == "8"] == [4]

    @pytest.mark.asyncio
    async def test_resync_with_empty_legs_clears_slip(self, gateway):
        """Should remove every stored leg when a slip is re-pushed with no legs."""
        service = SyncService(gateway)
        await service.sync({
            "master_slip": {"id": 1},
            "generated_slips": [{"id": 7, "legs": [{"match_id": 1}, {"match_id": 2}]}],
        })
        await service.sync({
            "master_slip": {"id": 1},
            "generated_slips": [{"id": 7, "legs": []}],
        })

        assert _docs(gateway, "generated_slip_legs") == []

    @pytest.mark.asyncio
    async def test_resync_without_legs_key_keeps_stored_legs(self, gateway):
        """Should leave stored legs alone when a re-push omits the legs array."""
        service = SyncService(gateway)
        await service.sync({
            "master_slip": {"id": 1},
            "generated_slips": [{"id": 7, "legs": [{"match_id": 1}]}],
        })
        await service.sync({
            "master_slip": {"id": 1},
            "generated_slips": [{"id": 7, "status": "settled"}],
        })

        assert len(_docs(gateway, "generated_slip_legs")) == 1

    @pytest.mark.asyncio
    async def test_sync_keeps_original_created_at(self, gateway):
        """Should only set created_at when the master slip is first inserted."""
        service = SyncService(gateway)
        await service.sync({"master_slip": {"id": 1, "created_at": "2025-05-01T00:00:00.000Z"}})
        await service.sync({"master_slip": {"id": 1, "created_at": "2026-05-01T00:00:00.000Z", "status": "won"}})

        master = _docs(gateway, "master_slips")[0]
        assert master["created_at"] == "2025-05-01T00:00:00.000Z"
        assert master["status"] == "won"

    @pytest.mark.asyncio
    async def test_master_slip_key_forms_address_one_document(self, gateway):
        """Should treat id 123, id 123.0 and master_slip_id "123" as one master slip."""
        service = SyncService(gateway)
        await service.sync({"master_slip": {"id": 123}})
        await service.sync({"master_slip": {"id": 123.0, "status": "won"}})
        await service.sync({"master_slip": {"master_slip_id": "123", "stake": 5}})

        documents = _docs(gateway, "master_slips")
        assert len(documents) == 1
        assert documents[0]["status"] == "won"
        assert documents[0]["stake"] == 5

    @pytest.mark.asyncio
    async def test_slip_key_stable_across_resync(self, gateway):
        """Should upsert the same slip whether it arrives as id 7 or slip_id "7"."""
        service = SyncService(gateway)
        await service.sync({"master_slip": {"id": 1}, "generated_slips": [{"id": 7}]})
        await service.sync({"master_slip": {"id": 1}, "generated_slips": [{"id": 7, "slip_id": "7"}]})
        await service.sync({"master_slip": {"id": 1}, "generated_slips": [{"slip_id": "7", "stake": 3}]})

        slips = _docs(gateway, "generated_slips")
        assert len(slips) == 1
        assert slips[0]["slip_id"] == "7"
        assert slips[0]["stake"] == 3

    @pytest.mark.asyncio
    async def test_slip_without_id_gets_synthesized_id(self, gateway):
        """Should give an id-less generated slip a gen_ identifier."""
        await SyncService(gateway).sync({
            "master_slip": {"id": 1},
            "generated_slips": [{"confidence_score": 50, "legs": []}],
        })

        slip = _docs(gateway, "generated_slips")[0]
        assert re.fullmatch(r"gen_\d+_[a-z0-9]+", slip["slip_id"])

    @pytest.mark.asyncio
    async def test_match_without_match_data_is_not_extracted(self, gateway):
        """Should store the scoped match but skip the registry for empty match_data."""
        report = await SyncService(gateway).sync({
            "master_slip": {"id": 1},
            "matches": [
                {"id": 1, "match_id": 10, "match_data": {}},
                {"id": 2, "match_id": 11, "match_data": None},
            ],
        })

        assert report.master_slip_matches == 2
        assert report.matches == 0
        assert _docs(gateway, "matches") == []

    @pytest.mark.asyncio
    async def test_missing_master_slip_rejected_before_writes(self, gateway):
        """Should raise a validation error without touching storage."""
        with pytest.raises(PayloadValidationError) as exc_info:
            await SyncService(gateway).sync({"generated_slips": []})

        assert exc_info.value.status_code == 400
        assert exc_info.value.error == "Invalid payload: master_slip is required"
        assert all(not collection.calls for collection in gateway.collections.values())

    @pytest.mark.asyncio
    async def test_missing_master_slip_key_rejected(self, gateway):
        """Should require master_slip.id or master_slip.master_slip_id."""
        with pytest.raises(PayloadValidationError):
            await SyncService(gateway).sync({"master_slip": {"user_id": "u-1"}})

    @pytest.mark.asyncio
    async def test_non_list_array_rejected(self, gateway):
        """Should reject generated_slips that is not a list."""
        with pytest.raises(PayloadValidationError):
            await SyncService(gateway).sync({"master_slip": {"id": 1}, "generated_slips": "x"})

    @pytest.mark.asyncio
    async def test_partial_failure_then_retry_converges(self, gateway, sample_sync_payload):
        """Should keep earlier steps on failure and converge on retry."""
        service = SyncService(gateway)
        gateway.collections["optimized_slips"].fail_with = OperationFailure("write failed")

        with pytest.raises(OperationFailure):
            await service.sync(sample_sync_payload, "req_fail")

        assert len(_docs(gateway, "master_slips")) == 1
        assert len(_docs(gateway, "generated_slips")) == 2
        assert _docs(gateway, "master_slip_matches") == []

        gateway.collections["optimized_slips"].fail_with = None
        await service.sync(sample_sync_payload, "req_retry")

        assert len(_docs(gateway, "generated_slips")) == 2
        assert len(_docs(gateway, "optimized_slips")) == 1
        assert len(_docs(gateway, "master_slip_matches")) == 2

    @pytest.mark.asyncio
    async def test_sync_requires_ready_storage(self, sample_sync_payload):
        """Should raise StorageUnavailableError while disconnected."""
        gateway = FakeGateway(connected=False)

        with pytest.raises(StorageUnavailableError):
            await SyncService(gateway).sync(sample_sync_payload)

    def test_report_response_envelope(self):
        """Should render the success envelope with counts and details."""
        from slip_api.services import SyncReport

        report = SyncReport(master_slip_id="9", master_slips=1, generated_slips=2)
        response = report.to_response()

        assert response["success"] is True
        assert response["message"] == "Successfully synced master slip 9"
        assert response["synced"]["generated_slips"] == 2
        assert response["details"]["master_slip_id"] == "9"

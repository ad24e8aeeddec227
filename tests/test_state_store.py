"""
Tests for the wizard record model and its storage backends
"""

import json
from unittest.mock import AsyncMock

import pytest

from qrconnect.onboarding import (
    JSONFileStorage,
    MemoryStorage,
    OnboardingState,
    OnboardingStep,
    OnboardingStore,
    RedisStorage,
    SessionStore,
    create_storage,
)


class TestOnboardingState:
    def test_defaults(self):
        state = OnboardingState()
        assert state.step == OnboardingStep.NAMING_INSTANCE
        assert state.token == ""
        assert state.pairing_code == ""

    def test_serialized_with_camel_case_keys(self):
        state = OnboardingState(step=3, instance_name="Clinic One", token="t", qr_base64="QR")
        data = json.loads(state.to_json())
        assert data["step"] == 3
        assert data["instanceName"] == "Clinic One"
        assert data["qrBase64"] == "QR"
        assert data["pairingCode"] == ""

    def test_loads_stored_record(self):
        raw = '{"step": 2, "instanceName": "Clinic One", "token": "abc", "phone": "", "qrBase64": "", "pairingCode": ""}'
        state = OnboardingState.from_json(raw)
        assert state.step == OnboardingStep.ENTERING_PHONE
        assert state.instance_name == "Clinic One"
        assert state.token == "abc"

    @pytest.mark.parametrize("raw", [None, "", "{not json", '{"step": 7}', "[]"])
    def test_damaged_record_loads_as_none(self, raw):
        assert OnboardingState.from_json(raw) is None


class TestOnboardingStore:
    @pytest.mark.asyncio
    async def test_save_load_clear(self):
        storage = MemoryStorage()
        store = OnboardingStore(storage)

        assert await store.load() is None

        await store.save(OnboardingState(step=2, token="abc"))
        assert "onboarding_state" in storage.data
        loaded = await store.load()
        assert loaded.step == OnboardingStep.ENTERING_PHONE
        assert loaded.token == "abc"

        await store.clear()
        assert await store.load() is None

    @pytest.mark.asyncio
    async def test_corrupt_record_loads_as_none(self):
        store = OnboardingStore(MemoryStorage({"onboarding_state": "garbage"}))
        assert await store.load() is None


class TestSessionStore:
    @pytest.mark.asyncio
    async def test_token_lifecycle(self):
        storage = MemoryStorage()
        session = SessionStore(storage)

        assert not await session.is_authenticated()
        await session.set_token("tok-1")
        assert storage.data["instance-token"] == '"tok-1"'
        assert await session.get_token() == "tok-1"
        assert await session.is_authenticated()

        await session.clear_token()
        assert await session.get_token() is None

    @pytest.mark.asyncio
    async def test_phone_is_kept_apart(self):
        storage = MemoryStorage()
        session = SessionStore(storage)
        await session.set_phone("41999999999")
        assert storage.data["instance-phone"] == '"41999999999"'
        assert await session.get_phone() == "41999999999"

    @pytest.mark.asyncio
    async def test_unreadable_value_is_absent(self):
        session = SessionStore(MemoryStorage({"instance-token": "not-json"}))
        assert await session.get_token() is None


class TestJSONFileStorage:
    @pytest.mark.asyncio
    async def test_values_survive_a_new_instance(self, tmp_path):
        path = tmp_path / "state" / "state.json"
        await JSONFileStorage(str(path)).set("instance-token", '"abc"')

        reopened = JSONFileStorage(str(path))
        assert await reopened.get("instance-token") == '"abc"'

        await reopened.delete("instance-token")
        assert await reopened.get("instance-token") is None
        assert json.loads(path.read_text()) == {}

    @pytest.mark.asyncio
    async def test_corrupt_file_reads_empty(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{broken")
        storage = JSONFileStorage(str(path))

        assert await storage.get("onboarding_state") is None
        await storage.set("onboarding_state", "{}")
        assert await storage.get("onboarding_state") == "{}"


class TestRedisStorage:
    @pytest.mark.asyncio
    async def test_keys_are_prefixed(self):
        client = AsyncMock()
        client.get.return_value = '"tok"'
        storage = RedisStorage(prefix="qrconnect:", client=client)

        await storage.set("instance-token", '"tok"')
        assert await storage.get("instance-token") == '"tok"'
        await storage.delete("instance-token")
        await storage.close()

        client.set.assert_awaited_once_with("qrconnect:instance-token", '"tok"')
        client.get.assert_awaited_once_with("qrconnect:instance-token")
        client.delete.assert_awaited_once_with("qrconnect:instance-token")
        client.aclose.assert_awaited_once()


class TestCreateStorage:
    def test_backends(self, tmp_path):
        assert isinstance(create_storage("memory"), MemoryStorage)
        assert isinstance(create_storage("file"), JSONFileStorage)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_storage("sqlite")

"""
Client-side persistence for the wizard record and the session credential.

Storage backends hold plain strings under fixed keys:
- MemoryStorage: process-local dict (tests, one-shot runs)
- JSONFileStorage: one JSON document on disk (default)
- RedisStorage: redis.asyncio, for deployments sharing state

Redis Key Schema:
    {prefix}onboarding_state - wizard record JSON
    {prefix}instance-token   - session credential (JSON string)
    {prefix}instance-phone   - last submitted phone (JSON string)
"""
import asyncio
import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Dict, Optional

import redis.asyncio as redis

from qrconnect.config import (
    ONBOARDING_STATE_KEY,
    REDIS_KEY_PREFIX,
    REDIS_URL,
    SESSION_PHONE_KEY,
    SESSION_TOKEN_KEY,
    STATE_BACKEND,
    STATE_FILE,
)

from .state import OnboardingState

logger = logging.getLogger(__name__)


class Storage(ABC):
    """Async string key/value storage."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    async def close(self) -> None:
        pass


class MemoryStorage(Storage):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


class JSONFileStorage(Storage):
    """
    All keys in one JSON object on disk.

    Writes go through a temporary file and os.replace so a crash never leaves
    a half-written document. An unreadable file is treated as empty.
    """

    def __init__(self, path: str = STATE_FILE):
        self.path = path
        self._lock = asyncio.Lock()

    def _read(self) -> Dict[str, str]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning(f"State file {self.path} unreadable, starting empty: {e}")
            return {}
        if not isinstance(data, dict):
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: Dict[str, str]) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, self.path)

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
        return data.get(key)

    async def set(self, key: str, value: str) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            data[key] = value
            await asyncio.to_thread(self._write, data)

    async def delete(self, key: str) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            if key in data:
                del data[key]
                await asyncio.to_thread(self._write, data)


class RedisStorage(Storage):
    """Keys live under a common prefix in Redis."""

    def __init__(self, url: str = REDIS_URL, prefix: str = REDIS_KEY_PREFIX, client=None):
        self.prefix = prefix
        self.client = client or redis.from_url(url, decode_responses=True)

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def get(self, key: str) -> Optional[str]:
        return await self.client.get(self._key(key))

    async def set(self, key: str, value: str) -> None:
        await self.client.set(self._key(key), value)

    async def delete(self, key: str) -> None:
        await self.client.delete(self._key(key))

    async def close(self) -> None:
        await self.client.aclose()


def create_storage(backend: str = STATE_BACKEND) -> Storage:
    """Build the storage backend named by QRCONNECT_STATE_BACKEND."""
    backend = (backend or "file").lower()
    if backend == "memory":
        return MemoryStorage()
    if backend == "redis":
        return RedisStorage()
    if backend == "file":
        return JSONFileStorage()
    raise ValueError(f"Unknown state backend: {backend}")


class OnboardingStore:
    """load / save / clear for the wizard record."""

    def __init__(self, storage: Storage, key: str = ONBOARDING_STATE_KEY):
        self.storage = storage
        self.key = key

    async def load(self) -> Optional[OnboardingState]:
        """Saved record, or None when absent or unreadable."""
        return OnboardingState.from_json(await self.storage.get(self.key))

    async def save(self, state: OnboardingState) -> None:
        await self.storage.set(self.key, state.to_json())

    async def clear(self) -> None:
        await self.storage.delete(self.key)


class SessionStore:
    """The authenticated instance credential, kept apart from wizard progress."""

    def __init__(self, storage: Storage):
        self.storage = storage

    async def _get(self, key: str) -> Optional[str]:
        raw = await self.storage.get(key)
        if raw is None:
            return None
        try:
            value = json.loads(raw)
        except ValueError:
            return None
        return value if isinstance(value, str) and value else None

    async def get_token(self) -> Optional[str]:
        return await self._get(SESSION_TOKEN_KEY)

    async def set_token(self, token: str) -> None:
        await self.storage.set(SESSION_TOKEN_KEY, json.dumps(token))

    async def clear_token(self) -> None:
        await self.storage.delete(SESSION_TOKEN_KEY)

    async def is_authenticated(self) -> bool:
        return await self.get_token() is not None

    async def get_phone(self) -> Optional[str]:
        return await self._get(SESSION_PHONE_KEY)

    async def set_phone(self, phone: str) -> None:
        await self.storage.set(SESSION_PHONE_KEY, json.dumps(phone))

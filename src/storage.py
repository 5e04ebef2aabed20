"""Settings stores and factory."""

import asyncio
import copy
import os
from typing import Dict, Optional

from constants import DEFAULT_SETTINGS
from interfaces import ISettingsStore
from json_utils import json_dumps, json_loads


def with_defaults(data: Optional[Dict[str, object]]) -> Dict[str, object]:
    merged = copy.deepcopy(DEFAULT_SETTINGS)
    if data:
        merged.update(copy.deepcopy(data))
    return merged


class MemorySettingsStore(ISettingsStore):
    def __init__(self, initial: Optional[Dict[str, object]] = None):
        self.data: Dict[str, object] = copy.deepcopy(initial or {})
        self.writes = []

    async def read_all(self) -> Dict[str, object]:
        return with_defaults(self.data)

    async def write(self, patch: Dict[str, object]) -> None:
        patch = copy.deepcopy(patch)
        self.writes.append(patch)
        self.data.update(patch)


class JsonFileSettingsStore(ISettingsStore):
    """Settings kept as one JSON object on disk; writes merge the patch."""

    def __init__(self, config):
        self.settings_file = config.settings_file
        self._write_lock = asyncio.Lock()

    def load(self) -> Dict[str, object]:
        if not os.path.exists(self.settings_file):
            return {}
        with open(self.settings_file, "rb") as f:
            raw = f.read()
        if not raw.strip():
            return {}
        data = json_loads(raw)
        if not isinstance(data, dict):
            raise ValueError(f"File {self.settings_file} does not hold a JSON object")
        return data

    def save(self, patch: Dict[str, object]) -> None:
        data = self.load()
        data.update(patch)
        directory = os.path.dirname(os.path.abspath(self.settings_file))
        os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.settings_file}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(json_dumps(data, pretty=True))
        os.replace(tmp_path, self.settings_file)

    async def read_all(self) -> Dict[str, object]:
        loop = asyncio.get_running_loop()
        data = await loop.run_in_executor(None, self.load)
        return with_defaults(data)

    async def write(self, patch: Dict[str, object]) -> None:
        if not patch:
            return
        loop = asyncio.get_running_loop()
        async with self._write_lock:
            await loop.run_in_executor(None, self.save, dict(patch))


class SettingsStoreFactory:
    @staticmethod
    def create(config, logger) -> ISettingsStore:
        if not config.settings_file:
            return MemorySettingsStore()
        store = JsonFileSettingsStore(config)
        try:
            store.load()
        except (OSError, ValueError) as e:
            logger.error(f"\033[91m[ERROR]: Cannot read settings file {config.settings_file}: {e}\033[0m")
            raise SystemExit(1)
        return store

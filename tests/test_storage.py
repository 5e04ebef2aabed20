import os
import sys
import tempfile
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from config import RedirectorConfig
from storage import JsonFileSettingsStore, MemorySettingsStore, SettingsStoreFactory


class SilentLogger:
    def error(self, *a, **k):
        pass


class TestJsonFileSettingsStore(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.config = RedirectorConfig()
        self.config.settings_file = os.path.join(self.tmpdir.name, "settings.json")

    def tearDown(self):
        self.tmpdir.cleanup()

    async def test_missing_file_reads_defaults(self):
        data = await JsonFileSettingsStore(self.config).read_all()
        self.assertEqual(data["trigger_sites"], [])
        self.assertIsNone(data["snooze_until"])
        self.assertFalse(data["focus_mode"])
        self.assertEqual(data["redirect_delay"], 0)

    async def test_write_merges_patch(self):
        store = JsonFileSettingsStore(self.config)
        await store.write({"trigger_sites": ["a.com"], "focus_mode": True})
        await store.write({"redirect_stats": {"a.com": 1}})
        data = await store.read_all()
        self.assertEqual(data["trigger_sites"], ["a.com"])
        self.assertTrue(data["focus_mode"])
        self.assertEqual(data["redirect_stats"], {"a.com": 1})
        self.assertFalse(os.path.exists(self.config.settings_file + ".tmp"))

    def test_factory_rejects_broken_file(self):
        with open(self.config.settings_file, "w", encoding="utf-8") as f:
            f.write("[1, 2")
        with self.assertRaises(SystemExit):
            SettingsStoreFactory.create(self.config, SilentLogger())

    def test_factory_without_file_uses_memory(self):
        self.config.settings_file = None
        self.assertIsInstance(SettingsStoreFactory.create(self.config, SilentLogger()), MemorySettingsStore)


class TestMemorySettingsStore(unittest.IsolatedAsyncioTestCase):
    async def test_reads_are_snapshots(self):
        store = MemorySettingsStore({"destinations": ["a.org"]})
        data = await store.read_all()
        data["destinations"].append("b.org")
        self.assertEqual((await store.read_all())["destinations"], ["a.org"])


if __name__ == "__main__":
    unittest.main()

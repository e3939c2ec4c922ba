import asyncio
import json
import tempfile
import unittest
from pathlib import Path

from album_edge.cache.filesystem import FileSystemCacheStore
from album_edge.cache.generations import CacheFamily
from album_edge.cache.snapshot import CacheEntry
from album_edge.core.models import EdgeRequest, EdgeResponse
from album_edge.errors import CacheStorageError, QuotaExceededError, StorageUnavailableError

from support import SCOPE, make_worker, ok


def _entry(path: str, body: bytes, stored_at: str = "2026-01-01T00:00:00.000000Z") -> CacheEntry:
    response = EdgeResponse.build(
        200,
        body,
        headers={"Content-Type": "audio/mpeg", "ETag": '"abc"'},
        status_text="OK",
        url=SCOPE + path,
    )
    return CacheEntry(key=SCOPE + path, response=response, stored_at=stored_at)


class FileSystemCacheStoreTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.store = FileSystemCacheStore(self.root)

    async def asyncTearDown(self) -> None:
        self._tmp.cleanup()

    async def test_round_trips_status_headers_and_body(self) -> None:
        await self.store.put("media-v1", _entry("song.mp3", b"\x00\x01\x02"))

        entry = await self.store.get("media-v1", SCOPE + "song.mp3")

        self.assertIsNotNone(entry)
        self.assertEqual(entry.response.status, 200)
        self.assertEqual(entry.response.status_text, "OK")
        self.assertEqual(entry.response.body, b"\x00\x01\x02")
        self.assertEqual(entry.response.headers["content-type"], "audio/mpeg")
        self.assertEqual(entry.response.headers["ETag"], '"abc"')

    async def test_generations_are_directories(self) -> None:
        await self.store.create_generation("core-v1")
        await self.store.create_generation("album-offline-v1")

        self.assertEqual(list(await self.store.generation_names()), ["album-offline-v1", "core-v1"])
        self.assertTrue(await self.store.delete_generation("core-v1"))
        self.assertFalse(await self.store.delete_generation("core-v1"))
        self.assertFalse((self.root / "core-v1").exists())

    async def test_keys_follow_insertion_time(self) -> None:
        await self.store.put("runtime-v1", _entry("b.json", b"2", "2026-01-01T00:00:02.000000Z"))
        await self.store.put("runtime-v1", _entry("a.json", b"1", "2026-01-01T00:00:01.000000Z"))

        self.assertEqual(list(await self.store.keys("runtime-v1")), [SCOPE + "a.json", SCOPE + "b.json"])

    async def test_delete_entry(self) -> None:
        await self.store.put("runtime-v1", _entry("a.json", b"1"))

        self.assertTrue(await self.store.delete("runtime-v1", SCOPE + "a.json"))
        self.assertIsNone(await self.store.get("runtime-v1", SCOPE + "a.json"))
        self.assertEqual(list((self.root / "runtime-v1").iterdir()), [])

    async def test_truncated_body_is_a_miss(self) -> None:
        await self.store.put("media-v1", _entry("song.mp3", b"0123456789"))
        body_file = next((self.root / "media-v1").glob("*.body"))
        body_file.write_bytes(b"01234")

        self.assertIsNone(await self.store.get("media-v1", SCOPE + "song.mp3"))

    async def test_corrupt_metadata_is_a_miss(self) -> None:
        await self.store.put("media-v1", _entry("song.mp3", b"0123"))
        meta_file = next((self.root / "media-v1").glob("*.json"))
        meta_file.write_text("{not json", encoding="utf-8")

        self.assertIsNone(await self.store.get("media-v1", SCOPE + "song.mp3"))

    async def test_well_formed_json_of_wrong_shape_is_a_miss(self) -> None:
        await self.store.put("media-v1", _entry("song.mp3", b"0123"))
        meta_file = next((self.root / "media-v1").glob("*.json"))

        for payload in ({"key": SCOPE + "song.mp3", "status": None}, ["not", "an", "object"], {"status": 200}):
            with self.subTest(payload=payload):
                meta_file.write_text(json.dumps(payload), encoding="utf-8")
                self.assertIsNone(await self.store.get("media-v1", SCOPE + "song.mp3"))

    async def test_keys_skip_metadata_of_wrong_shape(self) -> None:
        await self.store.put("runtime-v1", _entry("a.json", b"1"))
        await self.store.put("runtime-v1", _entry("b.json", b"2"))
        (self.root / "runtime-v1" / "broken.json").write_text(json.dumps([1, 2]), encoding="utf-8")
        (self.root / "runtime-v1" / "keyless.json").write_text(json.dumps({"status": 200}), encoding="utf-8")

        self.assertEqual(sorted(await self.store.keys("runtime-v1")), [SCOPE + "a.json", SCOPE + "b.json"])

    async def test_metadata_is_plain_json(self) -> None:
        await self.store.put("media-v1", _entry("song.mp3", b"0123"))
        meta = json.loads(next((self.root / "media-v1").glob("*.json")).read_text(encoding="utf-8"))

        self.assertEqual(meta["key"], SCOPE + "song.mp3")
        self.assertEqual(meta["body_size"], 4)

    async def test_quota_counts_existing_bodies_and_overwrites(self) -> None:
        await self.store.put("media-v1", _entry("a.mp3", b"x" * 6))
        store = FileSystemCacheStore(self.root, max_bytes=10)

        with self.assertRaises(QuotaExceededError):
            await store.put("media-v1", _entry("b.mp3", b"x" * 5))
        await store.put("media-v1", _entry("a.mp3", b"x" * 10))

    async def test_disabled_store_raises(self) -> None:
        store = FileSystemCacheStore(self.root, enabled=False)
        with self.assertRaises(StorageUnavailableError):
            await store.get("media-v1", SCOPE + "a.mp3")

    async def test_rejects_path_like_generation_names(self) -> None:
        with self.assertRaises(CacheStorageError):
            await self.store.create_generation("../escape")


class FileSystemBackedWorkerTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.worker, self.fetcher, self.store = make_worker(store=FileSystemCacheStore(self.root))
        await self.worker.activate()

    async def asyncTearDown(self) -> None:
        self._tmp.cleanup()

    async def test_damaged_entry_falls_through_to_network(self) -> None:
        url = SCOPE + "img/cover.webp"
        handle = self.worker.caches.handle_for(CacheFamily.IMAGES)
        await self.worker.caches.put(handle, url, ok(b"old", "image/webp"))
        meta_file = next((self.root / handle.name).glob("*.json"))
        meta_file.write_text(json.dumps({"key": url, "status": None}), encoding="utf-8")
        self.fetcher.route(url, ok(b"fresh", "image/webp"))

        response = await self.worker.handle_fetch(EdgeRequest.build(url, destination="image"))

        self.assertEqual(response.status, 200)
        self.assertEqual(response.body, b"fresh")

    async def test_large_body_reads_do_not_block_other_tasks(self) -> None:
        url = SCOPE + "music/album.mp3"
        handle = self.worker.caches.handle_for(CacheFamily.MEDIA)
        await self.worker.caches.put(handle, url, ok(b"x" * (4 * 1024 * 1024), "audio/mpeg"))
        ticks = 0

        async def ticker() -> None:
            nonlocal ticks
            while True:
                ticks += 1
                await asyncio.sleep(0)

        task = asyncio.create_task(ticker())
        try:
            request = EdgeRequest.build(url, destination="audio", headers={"Range": "bytes=0-99"}, client_id="page")
            response = await self.worker.handle_fetch(request)
        finally:
            task.cancel()

        self.assertEqual(response.status, 206)
        self.assertGreater(ticks, 0)


if __name__ == "__main__":
    unittest.main()

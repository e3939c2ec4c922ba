import unittest

from album_edge.cache.generations import CacheFamily, GenerationNaming
from album_edge.cache.manager import CacheGenerationManager
from album_edge.cache.memory import InMemoryCacheStore
from album_edge.core.models import EdgeResponse

from support import SCOPE, ok


class GenerationNamingTests(unittest.TestCase):
    def test_versioned_and_stable_names(self) -> None:
        naming = GenerationNaming(version="8.0.2")
        self.assertEqual(naming.name_for(CacheFamily.CORE), "core-v8.0.2")
        self.assertEqual(naming.name_for(CacheFamily.MEDIA), "media-v8.0.2")
        self.assertEqual(naming.name_for(CacheFamily.OFFLINE), "album-offline-v1")
        self.assertEqual(naming.name_for(CacheFamily.META), "album-meta-v1")

    def test_family_of_older_versions(self) -> None:
        naming = GenerationNaming(version="2")
        self.assertEqual(naming.family_of("runtime-v1"), CacheFamily.RUNTIME)
        self.assertEqual(naming.family_of("album-offline-v1"), CacheFamily.OFFLINE)
        self.assertIsNone(naming.family_of("workbox-precache"))


class CacheGenerationManagerTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.store = InMemoryCacheStore()
        self.manager = CacheGenerationManager(self.store, GenerationNaming(version="1"))

    async def test_open_is_idempotent(self) -> None:
        first = await self.manager.open(CacheFamily.CORE)
        second = await self.manager.open(CacheFamily.CORE)
        self.assertEqual(first, second)
        self.assertEqual(list(await self.store.generation_names()), ["core-v1"])

    async def test_match_ignores_fragment_and_respects_query(self) -> None:
        handle = await self.manager.open(CacheFamily.RUNTIME)
        await self.manager.put(handle, SCOPE + "albums.json?v=1", ok(b"{}", "application/json"))

        self.assertIsNotNone(await self.manager.match(SCOPE + "albums.json?v=1#top", handle))
        self.assertIsNone(await self.manager.match(SCOPE + "albums.json?v=2", handle))
        self.assertIsNone(await self.manager.match(SCOPE + "albums.json", handle))
        self.assertIsNotNone(await self.manager.match(SCOPE + "albums.json?v=2", handle, ignore_search=True))
        self.assertIsNotNone(await self.manager.match(SCOPE + "albums.json", handle, ignore_search=True))

    async def test_match_without_handle_searches_all_generations(self) -> None:
        offline = await self.manager.open(CacheFamily.OFFLINE)
        await self.manager.put(offline, SCOPE + "img/cover.png", ok(b"png", "image/png"))

        found = await self.manager.match(SCOPE + "img/cover.png")

        self.assertIsNotNone(found)
        self.assertEqual(found.body, b"png")

    async def test_put_overwrites_existing_entry(self) -> None:
        handle = await self.manager.open(CacheFamily.IMAGES)
        await self.manager.put(handle, SCOPE + "a.png", ok(b"old"))
        await self.manager.put(handle, SCOPE + "a.png", ok(b"new"))

        self.assertEqual((await self.manager.match(SCOPE + "a.png", handle)).body, b"new")
        self.assertEqual(list(await self.manager.keys(handle)), [SCOPE + "a.png"])

    async def test_reconcile_drops_stale_and_unknown_but_keeps_offline(self) -> None:
        old = CacheGenerationManager(self.store, GenerationNaming(version="1"))
        for family in (CacheFamily.CORE, CacheFamily.RUNTIME, CacheFamily.MEDIA, CacheFamily.OFFLINE):
            handle = await old.open(family)
            await old.put(handle, SCOPE + "song.mp3", ok(b"data", "audio/mpeg"))
        await self.store.create_generation("legacy-cache")

        deleted = await self.manager.reconcile("2")

        self.assertEqual(sorted(deleted), ["core-v1", "legacy-cache", "media-v1", "runtime-v1"])
        self.assertEqual(list(await self.store.generation_names()), ["album-offline-v1"])
        found = await self.manager.match(SCOPE + "song.mp3")
        self.assertIsNotNone(found)
        self.assertEqual(self.manager.naming.name_for(CacheFamily.CORE), "core-v2")
        entry = await self.manager.match_in(SCOPE + "song.mp3", (CacheFamily.MEDIA,))
        self.assertIsNone(entry)

    async def test_disabled_storage_is_never_fatal(self) -> None:
        manager = CacheGenerationManager(InMemoryCacheStore(enabled=False), GenerationNaming(version="1"))
        handle = await manager.open(CacheFamily.RUNTIME)

        stored = await manager.put(handle, SCOPE + "x.json", ok(b"{}"))

        self.assertFalse(stored)
        self.assertIsNone(await manager.match(SCOPE + "x.json"))
        self.assertEqual(await manager.reconcile(), [])

    async def test_quota_exceeded_drops_write(self) -> None:
        manager = CacheGenerationManager(InMemoryCacheStore(max_bytes=10), GenerationNaming(version="1"))
        handle = await manager.open(CacheFamily.MEDIA)

        self.assertTrue(await manager.put(handle, SCOPE + "small.mp3", ok(b"12345")))
        self.assertFalse(await manager.put(handle, SCOPE + "big.mp3", ok(b"x" * 20)))
        self.assertIsNone(await manager.match(SCOPE + "big.mp3", handle))

    async def test_delete_entry(self) -> None:
        handle = await self.manager.open(CacheFamily.OFFLINE)
        await self.manager.put(handle, SCOPE + "a.png", EdgeResponse.opaque(SCOPE + "a.png", b"?"))

        self.assertTrue(await self.manager.delete(handle, SCOPE + "a.png"))
        self.assertFalse(await self.manager.delete(handle, SCOPE + "a.png"))


if __name__ == "__main__":
    unittest.main()

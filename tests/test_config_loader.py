import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from pydantic import ValidationError

from album_edge.config import ConfigLoadRequest, YamlConfigLoader

PREFIX = "ALBUM_EDGE_TEST__"

BASE_YAML = """
app:
  version: "3.1.0"
  scope_url: "https://albums.test"
  upstream_url: "https://origin.test/site"
logging:
  level: "INFO"
  file:
    path: ""
    rotation:
      backup_count: 2
"""


class YamlConfigLoaderTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.yaml_path = Path(self._tmp.name) / "edge.yaml"

    async def _load(self, text: str, env: dict[str, str] | None = None):
        self.yaml_path.write_text(text, encoding="utf-8")
        request = ConfigLoadRequest(yaml_path=str(self.yaml_path), env_prefix=PREFIX, dotenv_path=None)
        with mock.patch.dict(os.environ, env or {}):
            return await YamlConfigLoader().load(request)

    async def test_defaults_fill_omitted_sections(self) -> None:
        config = await self._load(BASE_YAML)

        self.assertEqual(config.app.scope_url, "https://albums.test/")
        self.assertEqual(config.app.upstream_url, "https://origin.test/site/")
        self.assertEqual(config.cache.offline_generation, "album-offline-v1")
        self.assertEqual(config.timeouts.json_seconds, 4.0)
        self.assertEqual(config.timeouts.range_background_seconds, 30.0)
        self.assertEqual(config.server.messages_path, "/__edge__/messages")

    async def test_environment_overrides_yaml(self) -> None:
        config = await self._load(
            BASE_YAML,
            {
                f"{PREFIX}APP__VERSION": "3.2.0",
                f"{PREFIX}TIMEOUTS__JSON_SECONDS": "1.5",
                f"{PREFIX}CACHE__BACKEND": "memory",
            },
        )

        self.assertEqual(config.app.version, "3.2.0")
        self.assertEqual(config.timeouts.json_seconds, 1.5)
        self.assertEqual(config.cache.backend, "memory")

    async def test_unknown_override_path_is_rejected(self) -> None:
        with self.assertRaises(KeyError):
            await self._load(BASE_YAML, {f"{PREFIX}CACHE__COLOUR": "blue"})

    async def test_unknown_section_is_rejected(self) -> None:
        with self.assertRaises(KeyError):
            await self._load(BASE_YAML, {f"{PREFIX}NOPE__VALUE": "1"})

    async def test_invalid_values_fail_validation(self) -> None:
        with self.assertRaises(ValidationError):
            await self._load(BASE_YAML.replace("https://origin.test/site", "ftp://origin.test"))

    async def test_non_mapping_yaml_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            await self._load("- just\n- a list\n")


if __name__ == "__main__":
    unittest.main()

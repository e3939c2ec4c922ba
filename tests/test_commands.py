import unittest

from pydantic import ValidationError

from album_edge.messaging.commands import (
    CacheResources,
    ClearOfflineCache,
    GetVersion,
    RequestOfflineState,
    SetOfflineMode,
    SkipWaiting,
    parse_command,
)


class ParseCommandTests(unittest.TestCase):
    def test_set_offline_mode(self) -> None:
        command = parse_command({"type": "SET_OFFLINE_MODE", "value": True})
        self.assertIsInstance(command, SetOfflineMode)
        self.assertTrue(command.value)

    def test_set_offline_mode_defaults_to_false(self) -> None:
        self.assertFalse(parse_command({"type": "SET_OFFLINE_MODE"}).value)

    def test_cache_files_accepts_files_alias(self) -> None:
        command = parse_command({"type": "CACHE_FILES", "files": ["a.png", "b.mp3"]})
        self.assertIsInstance(command, CacheResources)
        self.assertEqual(command.resources, ["a.png", "b.mp3"])

    def test_offline_cache_add_uses_same_command(self) -> None:
        command = parse_command({"type": "OFFLINE_CACHE_ADD", "resources": ["a.png"]})
        self.assertIsInstance(command, CacheResources)
        self.assertEqual(command.resources, ["a.png"])

    def test_clear_cache_with_offline_mode(self) -> None:
        command = parse_command({"type": "CLEAR_CACHE", "offlineMode": False})
        self.assertIsInstance(command, ClearOfflineCache)
        self.assertIs(command.offline_mode, False)

    def test_clear_current_without_offline_mode(self) -> None:
        command = parse_command({"type": "OFFLINE_CACHE_CLEAR_CURRENT"})
        self.assertIsInstance(command, ClearOfflineCache)
        self.assertIsNone(command.offline_mode)

    def test_json_text_frames(self) -> None:
        self.assertIsInstance(parse_command('{"type": "SKIP_WAITING"}'), SkipWaiting)
        self.assertIsInstance(parse_command(b'{"type": "GET_SW_VERSION"}'), GetVersion)
        self.assertIsInstance(parse_command('{"type": "REQUEST_OFFLINE_STATE"}'), RequestOfflineState)

    def test_unknown_fields_are_ignored(self) -> None:
        command = parse_command({"type": "SKIP_WAITING", "sentAt": 123})
        self.assertIsInstance(command, SkipWaiting)

    def test_unknown_type_is_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            parse_command({"type": "REBOOT"})

    def test_missing_type_is_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            parse_command({"value": True})

    def test_bad_field_is_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            parse_command({"type": "CACHE_FILES", "files": "not-a-list"})

    def test_undecodable_text_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            parse_command("{not json")


if __name__ == "__main__":
    unittest.main()

"""Tests for the shared directory contract."""

from __future__ import annotations

import json
from pathlib import Path
import tempfile
import unittest
from unittest.mock import patch

from permission_broker.exceptions import MalformedRequestError
from permission_broker.store import RequestStore, default_directory


class DefaultDirectoryTests(unittest.TestCase):
    def test_defaults_to_temp_directory(self) -> None:
        with patch("permission_broker.store.tempfile.gettempdir", return_value="/var/tmp"):
            self.assertEqual(default_directory(), Path("/var/tmp/claude-permission"))

    def test_custom_base_and_name(self) -> None:
        self.assertEqual(
            default_directory("/srv/broker", "requests"), Path("/srv/broker/requests")
        )


class RequestStoreTests(unittest.TestCase):
    """Validate discovery, decoding and removal of request artifacts."""

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.directory = Path(self._tmp.name) / "claude-permission"
        self.store = RequestStore(self.directory)

    def _write(self, name: str, content: str) -> Path:
        self.store.ensure_directory()
        path = self.directory / name
        path.write_text(content, encoding="utf-8")
        return path

    def test_ensure_directory_creates_missing_directory(self) -> None:
        self.assertFalse(self.directory.exists())
        self.assertTrue(self.store.ensure_directory())
        self.assertTrue(self.directory.is_dir())

    def test_ensure_directory_reports_failure(self) -> None:
        blocker = Path(self._tmp.name) / "blocker"
        blocker.write_text("", encoding="utf-8")
        store = RequestStore(blocker / "nested")
        self.assertFalse(store.ensure_directory())

    def test_list_requests_filters_and_sorts(self) -> None:
        self._write("request-b.json", "{}")
        self._write("request-a.json", "{}")
        self._write("response-a.json", "{}")
        self._write("request-c.txt", "{}")
        (self.directory / "request-dir.json").mkdir()

        names = [path.name for path in self.store.list_requests()]
        self.assertEqual(names, ["request-a.json", "request-b.json"])

    def test_list_requests_on_missing_directory_is_empty(self) -> None:
        self.assertEqual(self.store.list_requests(), [])

    def test_read_request(self) -> None:
        path = self._write(
            "request-1.json",
            json.dumps({"requestId": "r1", "toolName": "Bash", "inputs": {"command": "ls"}}),
        )
        request = self.store.read_request(path)
        self.assertEqual(request.request_id, "r1")
        self.assertEqual(request.inputs, {"command": "ls"})

    def test_read_request_rejects_malformed_content(self) -> None:
        cases = {
            "request-json.json": "{not json",
            "request-list.json": "[1, 2]",
            "request-field.json": json.dumps({"requestId": "r1", "inputs": {}}),
        }
        for name, content in cases.items():
            with self.subTest(name=name):
                path = self._write(name, content)
                with self.assertRaises(MalformedRequestError) as ctx:
                    self.store.read_request(path)
                self.assertEqual(ctx.exception.path, path)

    def test_read_request_rejects_invalid_utf8(self) -> None:
        self.store.ensure_directory()
        path = self.directory / "request-u1.json"
        path.write_bytes(b'{"requestId":"u1","toolName":"\xff","inputs":{}}')

        with self.assertRaises(MalformedRequestError) as ctx:
            self.store.read_request(path)
        self.assertEqual(ctx.exception.reason, "invalid UTF-8")

    def test_read_request_missing_file_raises_os_error(self) -> None:
        with self.assertRaises(OSError):
            self.store.read_request(self.directory / "request-gone.json")

    def test_remove_request_is_tolerant_of_missing_files(self) -> None:
        path = self._write("request-1.json", "{}")
        self.assertTrue(self.store.remove_request(path))
        self.assertFalse(path.exists())
        self.assertTrue(self.store.remove_request(path))

    def test_response_path(self) -> None:
        self.assertEqual(
            self.store.response_path("r1"), self.directory / "response-r1.json"
        )


if __name__ == "__main__":
    unittest.main()

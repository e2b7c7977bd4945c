"""Tests for domain exception hierarchy."""

from __future__ import annotations

from pathlib import Path
import unittest

from permission_broker.exceptions import (
    AuthorityError,
    ConfigValidationError,
    MalformedRequestError,
    PermissionBrokerError,
)


class ExceptionHierarchyTests(unittest.TestCase):
    """Validate exception inheritance contract."""

    def test_exception_hierarchy(self) -> None:
        self.assertTrue(issubclass(PermissionBrokerError, RuntimeError))
        self.assertTrue(issubclass(ConfigValidationError, PermissionBrokerError))
        self.assertTrue(issubclass(MalformedRequestError, PermissionBrokerError))
        self.assertTrue(issubclass(AuthorityError, PermissionBrokerError))

    def test_malformed_request_carries_path_and_reason(self) -> None:
        path = Path("/tmp/claude-permission/request-1.json")
        error = MalformedRequestError(path, "invalid JSON")
        self.assertEqual(error.path, path)
        self.assertEqual(error.reason, "invalid JSON")
        self.assertIn("request-1.json", str(error))


if __name__ == "__main__":
    unittest.main()

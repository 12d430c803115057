"""Tests for OperationResult."""

from bulkrun.core.errors import ErrorCategory, InvalidBundleError
from bulkrun.ops.result import OperationResult, start_timer


class TestOperationResult:
    def test_ok(self):
        result = OperationResult.ok({"n": 1}, warnings=["w"])
        assert result.success
        assert result.to_dict() == {"success": True, "data": {"n": 1}, "warnings": ["w"]}

    def test_fail(self):
        result = OperationResult.fail("DECLINED", "Aborted by operator")
        assert not result.success
        assert result.error.code == "DECLINED"
        assert result.to_dict()["error"] == {
            "code": "DECLINED",
            "message": "Aborted by operator",
            "retryable": False,
        }

    def test_from_error(self):
        result = OperationResult.from_error(InvalidBundleError("node", ["blog"]))
        assert result.error.code == "INVALID_BUNDLE"
        assert result.error.category == ErrorCategory.SELECTION
        assert result.error.details == {"record_type": "node", "bundles": ["blog"]}


class TestTimer:
    def test_elapsed_is_non_negative(self):
        assert start_timer().elapsed_ms >= 0

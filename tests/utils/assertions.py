"""
Custom assertions and verification helpers for tests.

Provides reusable checks on the OperationResult returned by every service call.
"""

from typing import Any

from clinicbook.core.domain import ErrorKind
from clinicbook.domains.clinic.application.dto import OperationResult


def assert_succeeded(result: OperationResult) -> Any:
    """
    Assert that an operation succeeded and return its value.

    Raises:
        AssertionError: If the result is a failure
    """
    assert result.success, f"Expected success, got {result.error_kind}: {result.error_message}"
    return result.value


def assert_failed(result: OperationResult, kind: ErrorKind, code: str | None = None) -> None:
    """
    Assert that an operation failed with the given error kind (and code).

    Args:
        result: Operation result to check
        kind: Expected error kind
        code: Expected machine-readable error code, if relevant
    """
    assert not result.success, f"Expected {kind.value} failure, got success: {result.value!r}"
    assert result.error_kind == kind, f"Expected {kind.value}, got {result.error_kind}: {result.error_message}"
    if code is not None:
        assert result.error_code == code, f"Expected code {code}, got {result.error_code}"
    assert result.events == []

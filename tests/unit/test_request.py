"""Unit tests for request.py - classify_request."""
from __future__ import annotations

import pytest

from latch.errors import UnclassifiableRequestError
from latch.request import RequestDescriptor, classify_request


class TestClassifyRequest:
    @pytest.mark.parametrize(
        ("method", "params", "verb"),
        [
            ("GET", None, "query"),
            ("GET", {}, "query"),
            ("GET", {"id": "42"}, "get"),
            ("GET", {"id": 42}, "get"),
            ("GET", {"id": "count"}, "count"),
            ("GET", {"id": "meta"}, "meta"),
            ("GET", {"id": "some-slug"}, "query"),
            ("DELETE", {"id": "42"}, "delete"),
            ("POST", None, "create"),
            ("POST", {"id": "42"}, "save"),
            ("get", {"id": "7"}, "get"),
            ("GET", {"id": "42\n"}, "query"),
            ("GET", {"id": "\u0664\u0662"}, "query"),
        ],
    )
    def test_verb_table(self, method: str, params: dict[str, object] | None, verb: str) -> None:
        assert classify_request({"method": method, "params": params}) == verb

    def test_accepts_descriptor_model(self) -> None:
        assert classify_request(RequestDescriptor(method="POST")) == "create"

    @pytest.mark.parametrize(
        "request_data",
        [
            {"method": "PUT", "params": {"id": "1"}},
            {"method": "DELETE"},
            {"method": "PATCH"},
        ],
    )
    def test_unclassifiable(self, request_data: dict[str, object]) -> None:
        with pytest.raises(UnclassifiableRequestError):
            classify_request(request_data)

    def test_missing_method_is_unclassifiable(self) -> None:
        with pytest.raises(UnclassifiableRequestError, match="Invalid request descriptor"):
            classify_request({"params": {"id": "1"}})

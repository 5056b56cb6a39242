"""Tests for wire envelope implementation."""

import json

import pytest

from aria2ws.error import ErrorCode, RpcError
from aria2ws.wire import (
    JsonRpcRequest,
    JsonRpcResponse,
    build_request,
    decode_frame,
    envelope_from_json,
    parse_frame,
    serialize_frame,
)


class TestJsonRpcRequest:
    """Tests for request envelopes."""

    def test_to_json(self) -> None:
        request = JsonRpcRequest("aria2.tellStatus", ["2089b05ecca3d829"], "abc")
        assert request.to_json() == {
            "jsonrpc": "2.0",
            "id": "abc",
            "method": "aria2.tellStatus",
            "params": ["2089b05ecca3d829"],
        }

    def test_notification_has_no_id(self) -> None:
        notification = JsonRpcRequest("aria2.onDownloadStart", [{"gid": "1"}])
        assert notification.is_notification
        assert "id" not in notification.to_json()

    def test_from_json_defaults_params(self) -> None:
        request = JsonRpcRequest.from_json({"jsonrpc": "2.0", "method": "system.listMethods"})
        assert request.params == []
        assert request.id is None

    def test_from_json_null_params(self) -> None:
        request = JsonRpcRequest.from_json({"method": "m", "params": None})
        assert request.params == []

    def test_from_json_rejects_non_string_method(self) -> None:
        with pytest.raises(RpcError) as exc_info:
            JsonRpcRequest.from_json({"method": 5})
        assert exc_info.value.code == ErrorCode.MALFORMED_FRAME

    def test_from_json_rejects_object_params(self) -> None:
        with pytest.raises(RpcError):
            JsonRpcRequest.from_json({"method": "m", "params": {"a": 1}})


class TestJsonRpcResponse:
    """Tests for response envelopes."""

    def test_result(self) -> None:
        response = JsonRpcResponse.from_json({"jsonrpc": "2.0", "id": "1", "result": "OK"})
        assert not response.has_error
        assert response.unwrap() == "OK"

    def test_null_result(self) -> None:
        response = JsonRpcResponse.from_json({"id": "1", "result": None})
        assert response.unwrap() is None

    def test_error(self) -> None:
        error = {"code": 1, "message": "GID 1 is not found"}
        response = JsonRpcResponse.from_json({"id": "1", "error": error})
        assert response.has_error
        with pytest.raises(RpcError) as exc_info:
            response.unwrap()
        assert exc_info.value.code == ErrorCode.SERVER
        assert exc_info.value.data == error

    def test_error_to_json(self) -> None:
        response = JsonRpcResponse("1", error={"code": 1}, has_error=True)
        assert response.to_json() == {"jsonrpc": "2.0", "id": "1", "error": {"code": 1}}

    def test_neither_result_nor_error(self) -> None:
        with pytest.raises(RpcError) as exc_info:
            JsonRpcResponse.from_json({"id": "1"})
        assert exc_info.value.code == ErrorCode.MALFORMED_FRAME


class TestFrames:
    """Tests for frame parsing and serialization."""

    def test_serialize_batch(self) -> None:
        frame = serialize_frame(
            [JsonRpcRequest("a", [], "1"), JsonRpcRequest("b", [1], "2")]
        )
        assert [item["method"] for item in json.loads(frame)] == ["a", "b"]

    def test_parse_request(self) -> None:
        parsed = parse_frame('{"jsonrpc":"2.0","method":"aria2.onDownloadStop","params":[]}')
        assert parsed == JsonRpcRequest("aria2.onDownloadStop", [])

    def test_parse_batch(self) -> None:
        parsed = parse_frame('[{"id":"1","result":1},{"id":"2","error":{"code":1}}]')
        assert isinstance(parsed, list)
        assert parsed[0] == JsonRpcResponse("1", result=1)
        assert parsed[1].has_error

    def test_parse_invalid_json(self) -> None:
        with pytest.raises(RpcError) as exc_info:
            parse_frame("{not json")
        assert exc_info.value.code == ErrorCode.MALFORMED_FRAME

    def test_decode_frame_bytes(self) -> None:
        assert decode_frame(b'{"a": 1}') == {"a": 1}

    def test_envelope_must_be_object(self) -> None:
        with pytest.raises(RpcError):
            envelope_from_json("text")


class TestBuildRequest:
    """Tests for request construction."""

    def test_without_token(self) -> None:
        request = build_request("aria2.addUri", [["http://a"]], "id")
        assert request.params == [["http://a"]]

    def test_token_prepended(self) -> None:
        request = build_request("aria2.addUri", ["x"], "id", "token:s3cr3t")
        assert request.params == ["token:s3cr3t", "x"]

    def test_params_not_aliased(self) -> None:
        params = ["x"]
        request = build_request("m", params, "id")
        params.append("y")
        assert request.params == ["x"]

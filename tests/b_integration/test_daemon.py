"""End-to-end tests against an in-process stand-in for the aria2 daemon."""

import asyncio
import base64
import json
from collections.abc import AsyncIterator
from typing import Any

import aiohttp
import pytest
from aiohttp import web

from aria2ws import ClientConfig, ErrorCode, HttpClient, MulticallItem, RpcError, WebSocketClient
from aria2ws.router import ON_DOWNLOAD_COMPLETE, ON_DOWNLOAD_START

SECRET = "s3cr3t"


class FakeDaemon:
    """Answers a handful of aria2 methods over WebSocket and HTTP GET."""

    def __init__(self, secret: str | None = None) -> None:
        self.secret = secret
        self.received: list[Any] = []
        self.sockets: list[web.WebSocketResponse] = []
        self._runner: web.AppRunner | None = None
        self.port = 0

    async def start(self) -> None:
        app = web.Application()
        app.router.add_get("/jsonrpc", self._handle)
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, "127.0.0.1", 0)
        await site.start()
        self.port = self._runner.addresses[0][1]

    async def stop(self) -> None:
        for ws in list(self.sockets):
            await ws.close()
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    def config(self, **kwargs: Any) -> ClientConfig:
        return ClientConfig(host="127.0.0.1", port=self.port, **kwargs)

    async def notify(self, method: str, gid: str) -> None:
        frame = {"jsonrpc": "2.0", "method": method, "params": [{"gid": gid}]}
        for ws in self.sockets:
            await ws.send_str(json.dumps(frame))

    async def _handle(self, request: web.Request) -> web.StreamResponse:
        if request.headers.get("Upgrade", "").lower() == "websocket":
            return await self._handle_websocket(request)
        return await self._handle_get(request)

    async def _handle_websocket(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        self.sockets.append(ws)
        try:
            async for msg in ws:
                if msg.type != aiohttp.WSMsgType.TEXT:
                    continue
                message = json.loads(msg.data)
                self.received.append(message)
                if isinstance(message, list):
                    await ws.send_str(json.dumps([self._answer(item) for item in message]))
                    continue
                await ws.send_str(json.dumps(self._answer(message)))
                if message["method"] == "aria2.addUri":
                    await self.notify(ON_DOWNLOAD_START, "2089b05ecca3d829")
        finally:
            self.sockets.remove(ws)
        return ws

    async def _handle_get(self, request: web.Request) -> web.Response:
        params = json.loads(base64.b64decode(request.query["params"]))
        if request.query.get("method"):
            message = {
                "jsonrpc": "2.0",
                "id": request.query.get("id"),
                "method": request.query["method"],
                "params": params,
            }
            self.received.append(message)
            answer: Any = self._answer(message)
            status = 400 if "error" in answer else 200
        else:
            self.received.append(params)
            answer = [self._answer(item) for item in params]
            status = 200
        return web.json_response(answer, status=status)

    def _answer(self, message: dict[str, Any]) -> dict[str, Any]:
        params = list(message.get("params", []))
        if self.secret is not None:
            if not params or params[0] != f"token:{self.secret}":
                return self._error(message, 1, "Unauthorized")
            params = params[1:]

        match message["method"]:
            case "aria2.getVersion":
                result: Any = {"version": "1.37.0", "enabledFeatures": ["BitTorrent"]}
            case "aria2.addUri":
                result = "2089b05ecca3d829"
            case "aria2.tellStatus":
                if params[0] != "2089b05ecca3d829":
                    return self._error(message, 1, f"GID {params[0]} is not found")
                result = {
                    "gid": params[0],
                    "status": "active",
                    "totalLength": "34896138",
                    "completedLength": "1024",
                    "downloadSpeed": "2048",
                    "connections": "3",
                }
            case "aria2.getGlobalStat":
                result = {"downloadSpeed": "2048", "numActive": "1", "numWaiting": "0"}
            case _:
                return self._error(message, 1, f"No such method: {message['method']}")
        return {"jsonrpc": "2.0", "id": message.get("id"), "result": result}

    @staticmethod
    def _error(message: dict[str, Any], code: int, text: str) -> dict[str, Any]:
        return {"jsonrpc": "2.0", "id": message.get("id"), "error": {"code": code, "message": text}}


@pytest.fixture
async def daemon() -> AsyncIterator[FakeDaemon]:
    server = FakeDaemon(secret=SECRET)
    await server.start()
    yield server
    await server.stop()


@pytest.mark.asyncio
class TestWebSocketClient:
    """Tests for the WebSocket client against the stand-in daemon."""

    async def test_call(self, daemon: FakeDaemon) -> None:
        async with WebSocketClient(daemon.config(secret=SECRET)) as aria2:
            version = await aria2.get_version()

        assert version["version"] == "1.37.0"
        assert daemon.received[0]["params"] == ["token:s3cr3t"]

    async def test_concurrent_calls(self, daemon: FakeDaemon) -> None:
        async with WebSocketClient(daemon.config(secret=SECRET)) as aria2:
            status, stat = await asyncio.gather(
                aria2.tell_status("2089b05ecca3d829"), aria2.get_global_stat()
            )

        assert status["completedLength"] == 1024
        assert status["connections"] == 3
        assert stat == {"downloadSpeed": 2048, "numActive": 1, "numWaiting": 0}

    async def test_server_error(self, daemon: FakeDaemon) -> None:
        async with WebSocketClient(daemon.config(secret=SECRET)) as aria2:
            with pytest.raises(RpcError) as exc_info:
                await aria2.tell_status("ffffffffffffffff")

        assert exc_info.value.code == ErrorCode.SERVER
        assert exc_info.value.data == {"code": 1, "message": "GID ffffffffffffffff is not found"}

    async def test_wrong_secret(self, daemon: FakeDaemon) -> None:
        async with WebSocketClient(daemon.config(secret="wrong")) as aria2:
            with pytest.raises(RpcError, match="Unauthorized"):
                await aria2.get_version()

    async def test_notification(self, daemon: FakeDaemon) -> None:
        async with WebSocketClient(daemon.config(secret=SECRET)) as aria2:
            started = aria2.when(ON_DOWNLOAD_START)
            gid = await aria2.add_uri("http://example.org/file")

            (event,) = await asyncio.wait_for(started, 5)
            assert event == {"gid": gid}

    async def test_notification_for_other_event_is_not_delivered(
        self, daemon: FakeDaemon
    ) -> None:
        completed: list[Any] = []
        async with WebSocketClient(daemon.config(secret=SECRET)) as aria2:
            aria2.on(ON_DOWNLOAD_COMPLETE, completed.append)
            started = aria2.when(ON_DOWNLOAD_START)
            await aria2.add_uri("http://example.org/file")
            await asyncio.wait_for(started, 5)

        assert completed == []

    async def test_multicall(self, daemon: FakeDaemon) -> None:
        async with WebSocketClient(daemon.config(secret=SECRET)) as aria2:
            futures = await aria2.multicall(
                [
                    MulticallItem("aria2.getVersion"),
                    MulticallItem("aria2.tellStatus", ["missing"]),
                ]
            )
            results = await asyncio.gather(*futures, return_exceptions=True)

        assert results[0]["version"] == "1.37.0"
        assert isinstance(results[1], RpcError)
        assert results[1].code == ErrorCode.SERVER
        [batch] = daemon.received
        assert all(item["params"][0] == "token:s3cr3t" for item in batch)

    async def test_server_going_away_rejects_pending_calls(self, daemon: FakeDaemon) -> None:
        aria2 = WebSocketClient(daemon.config(secret=SECRET))
        closed = asyncio.get_running_loop().create_future()
        aria2.events.on("ws.close", closed.set_result)
        await aria2.connect()

        await daemon.stop()
        error = await asyncio.wait_for(closed, 5)
        assert error.code == ErrorCode.CONNECTION_CLOSED

        with pytest.raises(RpcError) as exc_info:
            await aria2.get_version()
        assert exc_info.value.code == ErrorCode.NOT_CONNECTED
        await aria2.close()

    async def test_connect_refused(self) -> None:
        server = FakeDaemon()
        await server.start()
        config = server.config()
        await server.stop()

        aria2 = WebSocketClient(config)
        with pytest.raises(RpcError) as exc_info:
            await aria2.connect()
        assert exc_info.value.code == ErrorCode.TRANSPORT


@pytest.mark.asyncio
class TestHttpClient:
    """Tests for the HTTP client against the stand-in daemon."""

    async def test_call(self, daemon: FakeDaemon) -> None:
        async with HttpClient(daemon.config(secret=SECRET)) as aria2:
            status = await aria2.tell_status("2089b05ecca3d829")

        assert status["totalLength"] == 34896138
        assert daemon.received[0]["params"] == ["token:s3cr3t", "2089b05ecca3d829"]

    async def test_server_error_with_error_status(self, daemon: FakeDaemon) -> None:
        async with HttpClient(daemon.config(secret=SECRET)) as aria2:
            with pytest.raises(RpcError) as exc_info:
                await aria2.call("aria2.nope")

        assert exc_info.value.code == ErrorCode.SERVER
        assert exc_info.value.server_code == 1

    async def test_multicall_token_first(self, daemon: FakeDaemon) -> None:
        async with HttpClient(daemon.config(secret=SECRET)) as aria2:
            futures = await aria2.multicall(
                [
                    MulticallItem("aria2.getGlobalStat"),
                    MulticallItem("aria2.tellStatus", ["2089b05ecca3d829"]),
                ]
            )

        stat, status = [future.result() for future in futures]
        assert stat["numActive"] == "1"
        assert status["gid"] == "2089b05ecca3d829"
        [batch] = daemon.received
        assert batch[1]["params"] == ["token:s3cr3t", "2089b05ecca3d829"]

    async def test_unreachable_daemon(self) -> None:
        server = FakeDaemon()
        await server.start()
        config = server.config(timeout=5.0)
        await server.stop()

        async with HttpClient(config) as aria2:
            with pytest.raises(RpcError) as exc_info:
                await aria2.get_version()
        assert exc_info.value.code == ErrorCode.TRANSPORT

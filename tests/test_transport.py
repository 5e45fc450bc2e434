"""Tests for the MCP Streamable HTTP transport (FastAPI app)."""

import json
import threading

from fastapi.testclient import TestClient

from edt_mcp.context import ServerContext
from edt_mcp.mcp.constants import HEADER_SESSION_ID, PROTOCOL_VERSION

SSE = "text/event-stream"


def _rpc(method: str, id=1, **params) -> dict:
    request = {"jsonrpc": "2.0", "method": method}
    if id is not None:
        request["id"] = id
    if params:
        request["params"] = params
    return request


def _parse_sse(text: str) -> tuple[int, dict]:
    assert text.endswith("\n\n")
    lines = text.strip("\n").split("\n")
    assert lines[0].startswith("id: ")
    assert lines[1].startswith("data: ")
    return int(lines[0][len("id: "):]), json.loads(lines[1][len("data: "):])


class TestPost:
    def test_initialize_sets_session_header(self, client: TestClient) -> None:
        response = client.post("/mcp", content='{"jsonrpc":"2.0","method":"initialize","id":7}')
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/json"
        assert response.headers[HEADER_SESSION_ID]
        data = response.json()
        assert data["id"] == 7
        assert data["result"]["protocolVersion"] == PROTOCOL_VERSION
        assert data["result"]["serverInfo"]["name"] == "edt-mcp-test"

    def test_session_ids_are_unique(self, client: TestClient) -> None:
        first = client.post("/mcp", json=_rpc("initialize"))
        second = client.post("/mcp", json=_rpc("initialize"))
        assert first.headers[HEADER_SESSION_ID] != second.headers[HEADER_SESSION_ID]

    def test_no_session_header_for_other_methods(self, client: TestClient) -> None:
        response = client.post("/mcp", json=_rpc("tools/list"))
        assert HEADER_SESSION_ID not in response.headers

    def test_notification_returns_202(self, client: TestClient) -> None:
        response = client.post("/mcp", json=_rpc("notifications/initialized", id=None))
        assert response.status_code == 202
        assert response.content == b""
        assert response.headers.get("content-length", "0") == "0"

    def test_notification_with_sse_accept_returns_202(self, client: TestClient) -> None:
        response = client.post(
            "/mcp",
            json=_rpc("notifications/initialized", id=None),
            headers={"Accept": f"application/json, {SSE}"},
        )
        assert response.status_code == 202
        assert response.content == b""

    def test_tools_call(self, client: TestClient) -> None:
        response = client.post(
            "/mcp", json=_rpc("tools/call", id=33, name="echo", arguments={"message": "ping"})
        )
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == 33
        assert json.loads(data["result"]["content"][0]["text"]) == {"message": "ping"}

    def test_protocol_errors_use_http_200(self, client: TestClient) -> None:
        response = client.post("/mcp", content="{broken")
        assert response.status_code == 200
        assert response.json()["error"]["code"] == -32600

        response = client.post("/mcp", json=_rpc("tools/call", name="missing"))
        assert response.status_code == 200
        assert response.json()["error"]["code"] == -32601

    def test_internal_errors_use_http_200(self, client: TestClient) -> None:
        response = client.post("/mcp", json=_rpc("tools/call", name="broken_json"))
        assert response.status_code == 200
        assert response.json()["error"]["code"] == -32603


class TestSse:
    def test_sse_framing(self, client: TestClient) -> None:
        response = client.post(
            "/mcp",
            json=_rpc("tools/list", id=12),
            headers={"Accept": f"application/json, {SSE}"},
        )
        assert response.status_code == 200
        assert response.headers["content-type"].startswith(SSE)
        assert response.headers["cache-control"] == "no-cache"
        event_id, payload = _parse_sse(response.text)
        assert event_id >= 1
        assert payload["id"] == 12
        assert "tools" in payload["result"]

    def test_sse_initialize_sets_session_header(self, client: TestClient) -> None:
        response = client.post("/mcp", json=_rpc("initialize"), headers={"Accept": SSE})
        assert response.headers[HEADER_SESSION_ID]
        _, payload = _parse_sse(response.text)
        assert payload["result"]["protocolVersion"] == PROTOCOL_VERSION

    def test_event_ids_strictly_increase(self, client: TestClient) -> None:
        ids = []
        for n in range(5):
            response = client.post("/mcp", json=_rpc("tools/list", id=n), headers={"Accept": SSE})
            ids.append(_parse_sse(response.text)[0])
        assert ids == sorted(ids)
        assert len(set(ids)) == len(ids)

    def test_json_responses_do_not_consume_event_ids(
        self, client: TestClient, context: ServerContext
    ) -> None:
        client.post("/mcp", json=_rpc("tools/list"))
        assert context.event_counter.value == 0


class TestOrigin:
    def test_foreign_origin_rejected_before_counting(
        self, client: TestClient, context: ServerContext
    ) -> None:
        response = client.post(
            "/mcp", json=_rpc("tools/list"), headers={"Origin": "http://evil.example.com"}
        )
        assert response.status_code == 403
        assert response.json() == {
            "jsonrpc": "2.0",
            "error": {"code": -32600, "message": "Invalid Origin"},
        }
        assert context.request_counter.value == 0

    def test_lookalike_local_host_rejected(
        self, client: TestClient, context: ServerContext
    ) -> None:
        for origin in ("http://localhost.evil.example.com", "http://127.0.0.1.nip.io"):
            response = client.post("/mcp", json=_rpc("tools/list"), headers={"Origin": origin})
            assert response.status_code == 403
        assert context.request_counter.value == 0

    def test_local_origin_accepted_and_counted_once(
        self, client: TestClient, context: ServerContext
    ) -> None:
        response = client.post(
            "/mcp", json=_rpc("tools/list"), headers={"Origin": "http://localhost:3000"}
        )
        assert response.status_code == 200
        assert context.request_counter.value == 1

    def test_foreign_origin_rejected_for_get_and_delete(self, client: TestClient) -> None:
        headers = {"Origin": "https://attacker.test"}
        assert client.get("/mcp", headers=headers).status_code == 403
        assert client.delete("/mcp", headers=headers).status_code == 403

    def test_health_not_origin_checked(self, client: TestClient) -> None:
        response = client.get("/health", headers={"Origin": "http://evil.example.com"})
        assert response.status_code == 200


class TestOtherVerbs:
    def test_get_returns_server_info(self, client: TestClient, context: ServerContext) -> None:
        response = client.get("/mcp")
        assert response.status_code == 200
        assert response.json() == {
            "name": "edt-mcp-test",
            "version": "9.9.9",
            "edt_version": "2024.2.5",
            "protocol_version": PROTOCOL_VERSION,
            "status": "running",
        }
        assert context.request_counter.value == 0

    def test_get_sse_not_supported(self, client: TestClient) -> None:
        response = client.get("/mcp", headers={"Accept": SSE})
        assert response.status_code == 405
        assert response.json() == {"error": "Server-initiated SSE not supported"}

    def test_delete_is_accepted(self, client: TestClient) -> None:
        response = client.delete("/mcp", headers={HEADER_SESSION_ID: "anything"})
        assert response.status_code == 200
        assert response.content == b""

    def test_put_not_allowed(self, client: TestClient) -> None:
        response = client.put("/mcp", content="{}")
        assert response.status_code == 405
        assert response.json() == {"error": "Method not allowed"}

    def test_health(self, client: TestClient, context: ServerContext) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "edt_version": "2024.2.5"}
        assert context.request_counter.value == 0


class TestConcurrency:
    def test_concurrent_calls_keep_their_ids(
        self, client: TestClient, context: ServerContext
    ) -> None:
        results: dict[int, dict] = {}
        errors: list[BaseException] = []

        def call(request_id: int, tool: str) -> None:
            try:
                response = client.post("/mcp", json=_rpc("tools/call", id=request_id, name=tool))
                results[request_id] = response.json()
            except BaseException as e:  # surfaced by the assertion below
                errors.append(e)

        threads = [
            threading.Thread(target=call, args=(101, "json_report")),
            threading.Thread(target=call, args=(202, "markdown_report")),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert results[101]["id"] == 101
        assert results[101]["result"]["structuredContent"]["errors"] == 2
        assert results[202]["id"] == 202
        assert results[202]["result"]["content"][0]["type"] == "resource"
        assert context.request_counter.value == 2

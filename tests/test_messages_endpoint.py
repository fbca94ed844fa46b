"""End-to-end tests for /v1/messages through the bridge harness."""

import asyncio

import pytest

from ollama_bridge.config_loader import BridgeSettings
from ollama_bridge.testing import (
    FAKE_BACKEND_URL,
    BridgeHarness,
    FakeBackend,
    UpstreamResponse,
    broken_stream_transport,
    build_messages_request,
    event_types,
    parse_sse_events,
    unreachable_transport,
)

LIFECYCLE = [
    "message_start",
    "content_block_start",
    "content_block_stop",
    "message_stop",
]


class TestNonStreaming:
    """Tests for the buffered request/response path."""

    @pytest.mark.asyncio
    async def test_round_trip(self, bridge_harness):
        backend, bridge = bridge_harness
        backend.enqueue_chat_response(
            "Hello!",
            usage={"prompt_tokens": 9, "completion_tokens": 2, "total_tokens": 11},
        )

        async with bridge.make_async_client() as client:
            response = await client.post(
                "/v1/messages",
                json=build_messages_request(system="You are helpful."),
            )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/json")
        body = response.json()
        assert body["id"].startswith("msg_")
        assert body["type"] == "message"
        assert body["role"] == "assistant"
        assert body["model"] == "llama3.2"
        assert body["content"] == [{"type": "text", "text": "Hello!"}]
        assert body["stop_reason"] == "end_turn"
        assert body["usage"] == {"input_tokens": 9, "output_tokens": 2}

        assert len(backend.received) == 1
        sent = backend.received[0]
        assert sent["method"] == "POST"
        assert sent["path"] == "/v1/chat/completions"
        assert sent["json"] == {
            "model": "llama3.2:latest",
            "messages": [
                {"role": "system", "content": "You are helpful."},
                {"role": "user", "content": "Hi"},
            ],
            "max_tokens": 64,
            "temperature": 0.7,
            "top_p": 1.0,
            "stream": False,
        }

    @pytest.mark.asyncio
    async def test_role_override_resolves_model(self):
        backend = FakeBackend()
        backend.enqueue_chat_response("ok")
        settings = BridgeSettings(
            base_url=FAKE_BACKEND_URL,
            model_overrides={"sonnet": "qwen2.5-coder:7b"},
        )
        async with BridgeHarness(backend, settings=settings) as bridge:
            async with bridge.make_async_client() as client:
                response = await client.post(
                    "/v1/messages", json=build_messages_request(model="sonnet")
                )

        assert response.status_code == 200
        assert response.json()["model"] == "sonnet"
        assert backend.received[0]["json"]["model"] == "qwen2.5-coder:7b"

    @pytest.mark.asyncio
    async def test_non_stop_finish_reason_omits_stop_reason(self, bridge_harness):
        backend, bridge = bridge_harness
        backend.enqueue_chat_response("cut off", finish_reason="length")

        async with bridge.make_async_client() as client:
            response = await client.post("/v1/messages", json=build_messages_request())

        assert response.status_code == 200
        assert "stop_reason" not in response.json()

    @pytest.mark.asyncio
    async def test_backend_error_body_without_choices(self, bridge_harness):
        backend, bridge = bridge_harness
        backend.enqueue(
            UpstreamResponse(status_code=404, json_body={"error": {"message": "model not found"}})
        )

        async with bridge.make_async_client() as client:
            response = await client.post("/v1/messages", json=build_messages_request())

        assert response.status_code == 200
        body = response.json()
        assert body["content"] == []
        assert body["usage"] == {"input_tokens": 0, "output_tokens": 0}

    @pytest.mark.asyncio
    async def test_backend_non_json_body_is_500(self, bridge_harness):
        backend, bridge = bridge_harness
        backend.enqueue(UpstreamResponse(body="<html>oops</html>", media_type="text/html"))

        async with bridge.make_async_client() as client:
            response = await client.post("/v1/messages", json=build_messages_request())

        assert response.status_code == 500
        assert response.json()["type"] == "error"
        assert response.json()["error"]["type"] == "api_error"

    @pytest.mark.asyncio
    async def test_backend_unreachable_is_500(self):
        async with BridgeHarness(transport=unreachable_transport()) as bridge:
            async with bridge.make_async_client() as client:
                response = await client.post("/v1/messages", json=build_messages_request())

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["type"] == "api_error"
        assert "ConnectError" in error["message"]

    @pytest.mark.asyncio
    async def test_concurrent_requests_are_independent(self, bridge_harness):
        backend, bridge = bridge_harness
        for _ in range(5):
            backend.enqueue_chat_response("same")

        async with bridge.make_async_client() as client:
            responses = await asyncio.gather(*[
                client.post("/v1/messages", json=build_messages_request())
                for _ in range(5)
            ])

        assert [r.status_code for r in responses] == [200] * 5
        assert len({r.json()["id"] for r in responses}) == 5
        assert len(backend.received) == 5


class TestRequestValidation:
    """Tests for requests rejected before any backend call."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["GET", "PUT", "DELETE", "PATCH", "TRACE", "PROPFIND"])
    async def test_non_post_is_405(self, bridge_harness, method):
        backend, bridge = bridge_harness

        async with bridge.make_async_client() as client:
            response = await client.request(method, "/v1/messages")

        assert response.status_code == 405
        body = response.json()
        assert body["type"] == "error"
        assert body["error"]["type"] == "invalid_request_error"
        assert method in body["error"]["message"]
        assert backend.received == []

    @pytest.mark.asyncio
    async def test_empty_body_is_400(self, bridge_harness):
        backend, bridge = bridge_harness

        async with bridge.make_async_client() as client:
            response = await client.post("/v1/messages", content=b"")

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["type"] == "invalid_request_error"
        assert error["code"] == "empty_body"
        assert backend.received == []

    @pytest.mark.asyncio
    async def test_invalid_json_is_400(self, bridge_harness):
        backend, bridge = bridge_harness

        async with bridge.make_async_client() as client:
            response = await client.post(
                "/v1/messages",
                content=b'{"model": "llama3.2", ',
                headers={"content-type": "application/json"},
            )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "invalid_json"
        assert backend.received == []

    @pytest.mark.asyncio
    async def test_wrong_field_type_is_400(self, bridge_harness):
        backend, bridge = bridge_harness

        async with bridge.make_async_client() as client:
            response = await client.post(
                "/v1/messages", json=build_messages_request(messages="Hi")
            )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "invalid_field_type"
        assert backend.received == []


class TestStreaming:
    """Tests for the SSE path."""

    @pytest.mark.asyncio
    async def test_stream_round_trip(self, bridge_harness):
        backend, bridge = bridge_harness
        backend.enqueue_chat_stream(["Hel", "lo", "!"])

        async with bridge.make_async_client() as client:
            response = await client.post(
                "/v1/messages", json=build_messages_request(stream=True)
            )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"

        events = parse_sse_events(response.content)
        assert event_types(events) == [
            "message_start",
            "content_block_start",
            "content_block_delta",
            "content_block_delta",
            "content_block_delta",
            "content_block_stop",
            "message_stop",
        ]
        deltas = [e["delta"]["text"] for e in events if e["type"] == "content_block_delta"]
        assert deltas == ["Hel", "lo", "!"]
        assert events[0]["message"]["model"] == "unknown"
        assert backend.received[0]["json"]["stream"] is True

    @pytest.mark.asyncio
    async def test_stream_with_no_text_emits_four_events(self, bridge_harness):
        backend, bridge = bridge_harness
        backend.enqueue_chat_stream([])

        async with bridge.make_async_client() as client:
            response = await client.post(
                "/v1/messages", json=build_messages_request(stream=True)
            )

        assert response.status_code == 200
        assert event_types(parse_sse_events(response.content)) == LIFECYCLE

    @pytest.mark.asyncio
    async def test_stream_skips_malformed_lines(self, bridge_harness):
        backend, bridge = bridge_harness
        backend.enqueue(
            UpstreamResponse(
                stream=True,
                stream_lines=[
                    ": keep-alive\n\n",
                    b"data: {broken\n\n",
                    {"choices": [{"index": 0, "delta": {"content": "ok"}}]},
                ],
            )
        )

        async with bridge.make_async_client() as client:
            response = await client.post(
                "/v1/messages", json=build_messages_request(stream=True)
            )

        events = parse_sse_events(response.content)
        deltas = [e["delta"]["text"] for e in events if e["type"] == "content_block_delta"]
        assert deltas == ["ok"]
        assert event_types(events)[-1] == "message_stop"

    @pytest.mark.asyncio
    async def test_stream_with_backend_unreachable_still_completes(self):
        async with BridgeHarness(transport=unreachable_transport()) as bridge:
            async with bridge.make_async_client() as client:
                response = await client.post(
                    "/v1/messages", json=build_messages_request(stream=True)
                )

        assert response.status_code == 200
        assert event_types(parse_sse_events(response.content)) == LIFECYCLE

    @pytest.mark.asyncio
    async def test_stream_broken_midway_is_closed(self):
        transport = broken_stream_transport([
            b'data: {"choices":[{"index":0,"delta":{"content":"partial"}}]}\n\n',
        ])
        async with BridgeHarness(transport=transport) as bridge:
            async with bridge.make_async_client() as client:
                response = await client.post(
                    "/v1/messages", json=build_messages_request(stream=True)
                )

        assert response.status_code == 200
        events = parse_sse_events(response.content)
        assert event_types(events) == [
            "message_start",
            "content_block_start",
            "content_block_delta",
            "content_block_stop",
            "message_stop",
        ]
        assert events[2]["delta"]["text"] == "partial"


@pytest.mark.asyncio
async def test_say_hello_scenario(bridge_harness):
    backend, bridge = bridge_harness
    backend.enqueue_chat_response(
        "Hello! This is a test response.",
        finish_reason="stop",
        usage={"prompt_tokens": 10, "completion_tokens": 20, "total_tokens": 30},
    )

    async with bridge.make_async_client() as client:
        response = await client.post(
            "/v1/messages",
            json={
                "model": "llama3.2",
                "max_tokens": 50,
                "messages": [{"role": "user", "content": "Say hello"}],
                "stream": False,
            },
        )

    assert response.status_code == 200
    body = response.json()
    assert body["type"] == "message"
    assert body["role"] == "assistant"
    assert body["content"] == [{"type": "text", "text": "Hello! This is a test response."}]
    assert body["usage"] == {"input_tokens": 10, "output_tokens": 20}
    assert body["stop_reason"] == "end_turn"

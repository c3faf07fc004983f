from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from interaction_lifecycle.discord.errors import (
    DiscordAPIError,
    DiscordPermanentError,
    DiscordTransientError,
)
from interaction_lifecycle.discord.payloads import (
    AttachmentFile,
    WebhookExecuteRequest,
    WebhookMessageEditRequest,
    WebhookMultipartRequest,
)
from interaction_lifecycle.discord.rest import DiscordWebhookClient


async def _configure_mock_client(
    client: DiscordWebhookClient, transport: httpx.MockTransport
) -> None:
    await client._client.aclose()
    client._client = httpx.AsyncClient(
        base_url="https://discord.test/api/v10",
        transport=transport,
        timeout=10.0,
    )


def _client(**kwargs: Any) -> DiscordWebhookClient:
    kwargs.setdefault("bot_token", "abc123")
    kwargs.setdefault("retry_base_delay", 0.001)
    kwargs.setdefault("retry_max_delay", 0.01)
    return DiscordWebhookClient(base_url="https://discord.test/api/v10", **kwargs)


@pytest.mark.anyio
async def test_webhook_message_routes() -> None:
    observed: list[tuple[str, str, str]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        observed.append(
            (request.method, request.url.path, request.content.decode() or "")
        )
        if request.method == "DELETE":
            return httpx.Response(204)
        return httpx.Response(200, json={"id": "m-1"})

    client = _client()
    await _configure_mock_client(client, httpx.MockTransport(handler))
    try:
        edited = await client.modify_webhook_message(
            application_id=10,
            token="tok",
            message_ref="@original",
            request=WebhookMessageEditRequest(content="edited"),
        )
        deleted = await client.delete_webhook_message(
            application_id=10, token="tok", message_ref="123"
        )
    finally:
        await client.close()

    assert edited == {"id": "m-1"}
    assert deleted is None
    assert observed[0][:2] == ("PATCH", "/api/v10/webhooks/10/tok/messages/@original")
    assert json.loads(observed[0][2]) == {"content": "edited"}
    assert observed[1] == ("DELETE", "/api/v10/webhooks/10/tok/messages/123", "")


@pytest.mark.anyio
async def test_execute_webhook_sends_wait_flag_and_json_body() -> None:
    observed: dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        observed["path"] = request.url.path
        observed["wait"] = request.url.params.get("wait")
        observed["authorization"] = request.headers.get("Authorization")
        observed["body"] = json.loads(request.content)
        if observed["wait"] == "false":
            return httpx.Response(204)
        return httpx.Response(200, json={"id": "m-2", "content": "hi"})

    client = _client()
    await _configure_mock_client(client, httpx.MockTransport(handler))
    request = WebhookMultipartRequest(WebhookExecuteRequest(content="hi"))
    try:
        created = await client.execute_webhook(
            application_id=10, token="tok", request=request, wait=True
        )
        assert observed["wait"] == "true"
        fired = await client.execute_webhook(
            application_id=10, token="tok", request=request, wait=False
        )
    finally:
        await client.close()

    assert created == {"id": "m-2", "content": "hi"}
    assert fired == {}
    assert observed["wait"] == "false"
    assert observed["path"] == "/api/v10/webhooks/10/tok"
    assert observed["authorization"] == "Bot abc123"
    assert observed["body"] == {"content": "hi"}


@pytest.mark.anyio
async def test_execute_webhook_with_files_uses_multipart() -> None:
    observed: dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        observed["content_type"] = request.headers.get("Content-Type", "")
        observed["body"] = request.content
        return httpx.Response(200, json={"id": "m-3"})

    client = _client()
    await _configure_mock_client(client, httpx.MockTransport(handler))
    request = WebhookMultipartRequest(
        WebhookExecuteRequest(content="see attached"),
        files=(AttachmentFile("report.txt", b"report-bytes", "text/plain"),),
    )
    try:
        await client.execute_webhook(
            application_id=10, token="tok", request=request, wait=True
        )
    finally:
        await client.close()

    body = observed["body"]
    assert observed["content_type"].startswith("multipart/form-data")
    assert b'name="payload_json"' in body
    assert b'name="files[0]"; filename="report.txt"' in body
    assert b"report-bytes" in body
    assert b'"attachments": [{"id": 0, "filename": "report.txt"}]' in body


@pytest.mark.anyio
async def test_interaction_callback_route() -> None:
    observed: dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        observed["path"] = request.url.path
        observed["body"] = json.loads(request.content)
        return httpx.Response(204)

    client = _client()
    await _configure_mock_client(client, httpx.MockTransport(handler))
    try:
        await client.create_interaction_response(
            interaction_id=77,
            interaction_token="tok",
            payload={"type": 5, "data": {}},
        )
    finally:
        await client.close()

    assert observed["path"] == "/api/v10/interactions/77/tok/callback"
    assert observed["body"] == {"type": 5, "data": {}}


@pytest.mark.anyio
async def test_rate_limit_retry_after_retries_and_succeeds() -> None:
    attempts = {"count": 0}

    def handler(_request: httpx.Request) -> httpx.Response:
        attempts["count"] += 1
        if attempts["count"] < 3:
            return httpx.Response(429, headers={"Retry-After": "0"}, json={})
        return httpx.Response(200, json={"id": "m-4"})

    client = _client()
    await _configure_mock_client(client, httpx.MockTransport(handler))
    try:
        payload = await client.modify_webhook_message(
            application_id=10,
            token="tok",
            message_ref="5",
            request=WebhookMessageEditRequest(content="x"),
        )
    finally:
        await client.close()

    assert payload == {"id": "m-4"}
    assert attempts["count"] == 3


@pytest.mark.anyio
async def test_server_errors_exhaust_retries() -> None:
    attempts = {"count": 0}

    def handler(_request: httpx.Request) -> httpx.Response:
        attempts["count"] += 1
        return httpx.Response(502, text="bad gateway")

    client = _client(max_retries=2)
    await _configure_mock_client(client, httpx.MockTransport(handler))
    try:
        with pytest.raises(DiscordTransientError) as excinfo:
            await client.delete_webhook_message(
                application_id=10, token="tok", message_ref="@original"
            )
    finally:
        await client.close()

    assert attempts["count"] == 3
    assert excinfo.value.status_code == 502


@pytest.mark.anyio
async def test_client_errors_are_not_retried() -> None:
    attempts = {"count": 0}

    def handler(_request: httpx.Request) -> httpx.Response:
        attempts["count"] += 1
        return httpx.Response(404, json={"message": "Unknown Webhook"})

    client = _client()
    await _configure_mock_client(client, httpx.MockTransport(handler))
    try:
        with pytest.raises(DiscordPermanentError) as excinfo:
            await client.modify_webhook_message(
                application_id=10,
                token="expired",
                message_ref="@original",
                request=WebhookMessageEditRequest(content="x"),
            )
    finally:
        await client.close()

    assert attempts["count"] == 1
    assert excinfo.value.status_code == 404
    assert "Unknown Webhook" in str(excinfo.value)


@pytest.mark.anyio
async def test_network_errors_are_retried_then_surface() -> None:
    attempts = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        attempts["count"] += 1
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(max_retries=1)
    await _configure_mock_client(client, httpx.MockTransport(handler))
    try:
        with pytest.raises(DiscordTransientError):
            await client.get_current_application()
    finally:
        await client.close()

    assert attempts["count"] == 2


@pytest.mark.anyio
async def test_non_json_success_is_api_error() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>")

    client = _client()
    await _configure_mock_client(client, httpx.MockTransport(handler))
    try:
        with pytest.raises(DiscordAPIError):
            await client.get_current_application()
    finally:
        await client.close()


@pytest.mark.anyio
async def test_execute_webhook_server_error_is_not_resent() -> None:
    attempts = {"count": 0}

    def handler(_request: httpx.Request) -> httpx.Response:
        attempts["count"] += 1
        return httpx.Response(502, text="bad gateway")

    client = _client(max_retries=2)
    await _configure_mock_client(client, httpx.MockTransport(handler))
    try:
        with pytest.raises(DiscordAPIError) as excinfo:
            await client.execute_webhook(
                application_id=10,
                token="tok",
                request=WebhookMultipartRequest(WebhookExecuteRequest(content="hi")),
                wait=True,
            )
    finally:
        await client.close()

    assert attempts["count"] == 1
    assert not isinstance(excinfo.value, DiscordTransientError)
    assert excinfo.value.status_code == 502


@pytest.mark.anyio
async def test_interaction_callback_read_timeout_is_not_resent() -> None:
    attempts = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        attempts["count"] += 1
        raise httpx.ReadTimeout("timed out", request=request)

    client = _client(max_retries=2)
    await _configure_mock_client(client, httpx.MockTransport(handler))
    try:
        with pytest.raises(DiscordAPIError) as excinfo:
            await client.create_interaction_response(
                interaction_id=77, interaction_token="tok", payload={"type": 5}
            )
    finally:
        await client.close()

    assert attempts["count"] == 1
    assert not isinstance(excinfo.value, DiscordTransientError)


@pytest.mark.anyio
async def test_execute_webhook_connect_error_is_retried() -> None:
    attempts = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        attempts["count"] += 1
        if attempts["count"] == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json={"id": "m-9"})

    client = _client(max_retries=2)
    await _configure_mock_client(client, httpx.MockTransport(handler))
    try:
        created = await client.execute_webhook(
            application_id=10,
            token="tok",
            request=WebhookMultipartRequest(WebhookExecuteRequest(content="hi")),
            wait=True,
        )
    finally:
        await client.close()

    assert created == {"id": "m-9"}
    assert attempts["count"] == 2

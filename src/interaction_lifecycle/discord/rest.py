from __future__ import annotations

import json
import logging
from io import BytesIO
from typing import Any, Optional

import httpx

from ..core.logging_utils import log_event
from ..core.retry import retry_transient
from .config import DiscordWebhookConfig
from .constants import DISCORD_API_BASE_URL
from .errors import DiscordAPIError, DiscordPermanentError, DiscordTransientError
from .payloads import JsonObject, WebhookMessageEditRequest, WebhookMultipartRequest

logger = logging.getLogger(__name__)

# Raised before the request reached Discord, so any call may be re-sent.
_UNSENT_NETWORK_ERRORS = (
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.PoolTimeout,
)
_RETRYABLE_NETWORK_ERRORS = _UNSENT_NETWORK_ERRORS + (
    httpx.ReadError,
    httpx.WriteError,
    httpx.ReadTimeout,
    httpx.WriteTimeout,
)


def _retry_after_seconds(response: httpx.Response) -> Optional[float]:
    raw = response.headers.get("Retry-After")
    if raw is None:
        try:
            body = response.json()
        except ValueError:
            return None
        raw = body.get("retry_after") if isinstance(body, dict) else None
    if raw is None:
        return None
    try:
        return max(float(raw), 0.0)
    except (TypeError, ValueError):
        return 0.0


def _body_preview(response: httpx.Response) -> str:
    return (response.text or "").strip().replace("\n", " ")[:200]


class DiscordWebhookClient:
    """Executes interaction callback and webhook message calls over HTTP.

    Rate limits (429), server errors (5xx) and network failures are retried
    up to ``max_retries`` times; everything else surfaces immediately.
    Calls that create something (the interaction callback and webhook
    execution) are only re-sent when the earlier attempt is known not to
    have been applied: a 429 or a failure to connect.
    """

    def __init__(
        self,
        *,
        bot_token: Optional[str] = None,
        timeout_seconds: float = 10.0,
        base_url: str = DISCORD_API_BASE_URL,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
        retry_max_delay: float = 30.0,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout_seconds)
        self._headers: dict[str, str] = {}
        if bot_token:
            self._headers["Authorization"] = f"Bot {bot_token}"
        self._send = retry_transient(
            max_attempts=max_retries + 1,
            base_wait=retry_base_delay,
            max_wait=retry_max_delay,
            logger=logger,
        )(self._send_once)

    @classmethod
    def from_config(cls, config: DiscordWebhookConfig) -> "DiscordWebhookClient":
        return cls(
            bot_token=config.bot_token,
            timeout_seconds=config.timeout_seconds,
            base_url=config.base_url,
            max_retries=config.max_retries,
            retry_base_delay=config.retry_base_delay,
            retry_max_delay=config.retry_max_delay,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "DiscordWebhookClient":
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.close()

    async def _send_once(
        self,
        method: str,
        path: str,
        *,
        json_payload: Optional[JsonObject] = None,
        form_data: Optional[dict[str, str]] = None,
        files: Optional[list[tuple[str, tuple[str, Any, Optional[str]]]]] = None,
        params: Optional[dict[str, str]] = None,
        idempotent: bool = True,
    ) -> httpx.Response:
        if files:
            # httpx consumes file objects; rewind them for retried attempts.
            for _, (_, file_obj, _) in files:
                file_obj.seek(0)
        try:
            response = await self._client.request(
                method,
                path,
                json=json_payload,
                data=form_data,
                files=files,
                params=params,
                headers=self._headers,
            )
        except _RETRYABLE_NETWORK_ERRORS as exc:
            log_event(
                logger,
                logging.WARNING,
                "discord.webhook.network_error",
                method=method,
                path=path,
                exc=exc,
            )
            if not idempotent and not isinstance(exc, _UNSENT_NETWORK_ERRORS):
                raise DiscordAPIError(
                    f"Discord API network error for {method} {path}; "
                    f"request may have been applied: {exc}"
                ) from exc
            raise DiscordTransientError(
                f"Discord API network error for {method} {path}: {exc}"
            ) from exc
        except httpx.HTTPError as exc:
            raise DiscordAPIError(
                f"Discord API network error for {method} {path}: {exc}"
            ) from exc

        status_code = response.status_code
        if 200 <= status_code < 300:
            return response
        if status_code == 429:
            retry_after = _retry_after_seconds(response)
            log_event(
                logger,
                logging.INFO,
                "discord.webhook.rate_limited",
                method=method,
                path=path,
                retry_after=retry_after,
            )
            raise DiscordTransientError(
                f"Discord API rate limit exceeded for {method} {path}",
                status_code=status_code,
                retry_after=retry_after,
            )
        message = (
            f"Discord API request failed for {method} {path}: "
            f"status={status_code} body={_body_preview(response)!r}"
        )
        if 500 <= status_code < 600:
            if not idempotent:
                raise DiscordAPIError(message, status_code=status_code)
            raise DiscordTransientError(message, status_code=status_code)
        raise DiscordPermanentError(message, status_code=status_code)

    async def _request_json(
        self, method: str, path: str, **kwargs: Any
    ) -> JsonObject:
        response = await self._send(method, path, **kwargs)
        if not response.content:
            return {}
        try:
            payload = response.json()
        except ValueError as exc:
            raise DiscordAPIError(
                f"Discord API returned non-JSON success response for {method} {path}",
                status_code=response.status_code,
            ) from exc
        return payload if isinstance(payload, dict) else {}

    async def create_interaction_response(
        self,
        *,
        interaction_id: int,
        interaction_token: str,
        payload: JsonObject,
    ) -> None:
        await self._send(
            "POST",
            f"/interactions/{interaction_id}/{interaction_token}/callback",
            json_payload=payload,
            idempotent=False,
        )

    async def get_current_application(self) -> JsonObject:
        return await self._request_json("GET", "/oauth2/applications/@me")

    async def execute_webhook(
        self,
        *,
        application_id: int,
        token: str,
        request: WebhookMultipartRequest,
        wait: bool,
    ) -> JsonObject:
        path = f"/webhooks/{application_id}/{token}"
        params = {"wait": "true" if wait else "false"}
        payload = request.body.to_payload()
        if not request.has_files:
            return await self._request_json(
                "POST", path, json_payload=payload, params=params, idempotent=False
            )

        payload["attachments"] = [
            {"id": index, "filename": attachment.filename}
            for index, attachment in enumerate(request.files)
        ]
        files: list[tuple[str, tuple[str, Any, Optional[str]]]] = [
            (
                f"files[{index}]",
                (attachment.filename, BytesIO(attachment.data), attachment.content_type),
            )
            for index, attachment in enumerate(request.files)
        ]
        return await self._request_json(
            "POST",
            path,
            form_data={"payload_json": json.dumps(payload)},
            files=files,
            params=params,
            idempotent=False,
        )

    async def modify_webhook_message(
        self,
        *,
        application_id: int,
        token: str,
        message_ref: str,
        request: WebhookMessageEditRequest,
    ) -> JsonObject:
        return await self._request_json(
            "PATCH",
            f"/webhooks/{application_id}/{token}/messages/{message_ref}",
            json_payload=request.to_payload(),
        )

    async def delete_webhook_message(
        self,
        *,
        application_id: int,
        token: str,
        message_ref: str,
    ) -> None:
        await self._send(
            "DELETE",
            f"/webhooks/{application_id}/{token}/messages/{message_ref}",
        )

"""Workflow notifiers.

- LoggingNotifier: records events in the structured log (default)
- NullNotifier: accepts and drops events
- WebhookNotifier: POSTs events as JSON using httpx, with retries

All notifiers are best effort: delivery failures return False, never raise.
"""

from __future__ import annotations

import asyncio
import os
import re
from datetime import UTC, datetime
from typing import Any

import httpx

from hookwarden import __version__
from hookwarden.core.config import NotificationsConfig
from hookwarden.core.logging import get_logger
from hookwarden.integrations.base import WorkflowNotifier

_logger = get_logger("integrations.notifier")

_ENV_VAR_PATTERN = re.compile(r"\$\{(\w+)\}")


class LoggingNotifier:
    """Writes each event to the log."""

    async def notify(self, event_type: str, payload: dict[str, Any]) -> bool:
        _logger.info("workflow.notification", event_type=event_type, **payload)
        return True

    async def close(self) -> None:
        return None


class NullNotifier:
    """Drops every event."""

    async def notify(self, event_type: str, payload: dict[str, Any]) -> bool:
        return True

    async def close(self) -> None:
        return None


class WebhookNotifier:
    """Posts workflow events to an HTTP endpoint.

    Example YAML:
        notifications:
          backend: webhook
          url: https://orchestrator.example.com/hooks
          headers:
            Authorization: "Bearer ${ORCHESTRATOR_TOKEN}"
    """

    def __init__(
        self,
        url: str | None = None,
        url_env: str | None = None,
        headers: dict[str, str] | None = None,
        timeout: float = 10.0,
        max_retries: int = 1,
        retry_delay: float = 0.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        if not self._url and url_env:
            self._url = os.environ.get(url_env, "")
        self._headers = self._expand_env_headers(headers or {})
        self._timeout = timeout
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @staticmethod
    def _expand_env_headers(headers: dict[str, str]) -> dict[str, str]:
        """Expand ``${VAR}`` references in header values."""
        expanded: dict[str, str] = {}
        for key, value in headers.items():
            for var_name in _ENV_VAR_PATTERN.findall(value):
                env_value = os.environ.get(var_name)
                if env_value is None:
                    _logger.warning("webhook.env_var_missing", header=key, var_name=var_name)
                    env_value = ""
                value = value.replace(f"${{{var_name}}}", env_value)
            expanded[key] = value
        return expanded

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                headers=self._headers,
                transport=self._transport,
            )
        return self._client

    def _build_payload(self, event_type: str, payload: dict[str, Any]) -> dict[str, Any]:
        return {
            "event_type": event_type,
            "timestamp": datetime.now(UTC).isoformat(),
            "payload": payload,
            "metadata": {"source": "hookwarden", "version": __version__},
        }

    async def notify(self, event_type: str, payload: dict[str, Any]) -> bool:
        if not self._url:
            _logger.warning("webhook.url_missing", event_type=event_type)
            return False

        client = await self._get_client()
        body = self._build_payload(event_type, payload)
        last_error: str | None = None

        for attempt in range(self._max_retries + 1):
            try:
                response = await client.post(self._url, json=body)
                if response.is_success:
                    return True
                last_error = f"HTTP {response.status_code}: {response.text[:100]}"
                if response.status_code < 500:
                    break
            except httpx.TimeoutException:
                last_error = "Request timed out"
            except httpx.RequestError as e:
                last_error = str(e)

            _logger.debug("webhook.retry", attempt=attempt + 1, error=last_error)
            if attempt < self._max_retries:
                await asyncio.sleep(self._retry_delay)

        _logger.warning("webhook.delivery_failed", event_type=event_type, error=last_error)
        return False

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None


def create_notifier(config: NotificationsConfig) -> WorkflowNotifier:
    """Build the notifier selected by ``notifications.backend``."""
    if config.backend == "webhook":
        return WebhookNotifier(
            url=config.url,
            url_env=config.url_env,
            headers=config.headers,
            timeout=config.timeout,
            max_retries=config.max_retries,
            retry_delay=config.retry_delay,
        )
    if config.backend == "none":
        return NullNotifier()
    return LoggingNotifier()

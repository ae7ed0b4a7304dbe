"""
Remote telemetry sinks.

A sink accepts one serialized message at a time and raises on failure. The
HTTP sink posts to an ingestion endpoint; the logging sink is used when no
endpoint is configured so the agent can run as a dry run.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

import httpx

from telemetry_agent.core.exceptions import PublishError, SinkConnectionError


class TelemetrySink(ABC):
    async def connect(self) -> None:
        """Establish the remote connection; raise SinkConnectionError on failure."""

    @abstractmethod
    async def send(self, payload: bytes, properties: Dict[str, str]) -> None:
        """Deliver one message or raise PublishError."""

    async def close(self) -> None:
        """Release the connection."""


class LoggingTelemetrySink(TelemetrySink):
    def __init__(self, device_id: str):
        self.device_id = device_id
        self.messages_logged = 0

    async def connect(self) -> None:
        logging.warning(
            "No telemetry endpoint configured - messages will only be logged"
        )

    async def send(self, payload: bytes, properties: Dict[str, str]) -> None:
        self.messages_logged += 1
        logging.info(
            f"[{self.device_id}] row {properties.get('row-number', '?')} of "
            f"{properties.get('source-file', '?')}: {payload.decode('utf-8')}"
        )


class HttpTelemetrySink(TelemetrySink):
    """
    Posts each message as a JSON body to a telemetry ingestion endpoint.

    Message properties are sent as `X-Telemetry-<name>` headers, together
    with the device id. Any non-2xx response is a failed send.
    """

    def __init__(
        self,
        endpoint_url: str,
        device_id: str,
        auth_token: str = "",
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoint_url = endpoint_url
        self.device_id = device_id
        self._auth_token = auth_token
        self._timeout_seconds = timeout_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _base_headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json; charset=utf-8",
            "X-Telemetry-Device-Id": self.device_id,
        }
        if self._auth_token:
            headers["Authorization"] = f"Bearer {self._auth_token}"
        return headers

    async def connect(self) -> None:
        if self._client is not None:
            return

        client = httpx.AsyncClient(
            headers=self._base_headers(),
            timeout=self._timeout_seconds,
            transport=self._transport,
        )
        try:
            # Any HTTP answer proves the endpoint is reachable
            await client.request("HEAD", self.endpoint_url)
        except httpx.HTTPError as e:
            await client.aclose()
            raise SinkConnectionError(
                f"Cannot reach telemetry endpoint {self.endpoint_url}: {e}"
            ) from e

        self._client = client
        logging.info(f"Telemetry sink connected to {self.endpoint_url}")

    async def send(self, payload: bytes, properties: Dict[str, str]) -> None:
        if self._client is None:
            raise PublishError("Telemetry sink is not connected")

        headers = {f"X-Telemetry-{name}": value for name, value in properties.items()}
        try:
            response = await self._client.post(
                self.endpoint_url, content=payload, headers=headers
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise PublishError(
                f"Endpoint rejected message: HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise PublishError(f"Transport error: {e}") from e

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logging.info("Telemetry sink closed")

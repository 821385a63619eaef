import os
import json
import time
import httpx
from typing import Dict, Any, Optional
from loguru import logger

RELAY_ROUTE = "/api/applications"


class RelaySubmitError(Exception):
    """A submission the relay (or the network) did not accept."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class RelayClient:
    """HTTP client the wizard uses to reach the intake relay."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 20,
    ):
        self.base_url = (base_url or os.getenv("RELAY_BASE_URL", "http://localhost:8000")).rstrip("/")
        self.transport = transport
        self.timeout = timeout

    @property
    def relay_url(self) -> str:
        return f"{self.base_url}{RELAY_ROUTE}"

    async def submit(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Post a lead payload to the relay.

        Returns:
            The relay's JSON body with `ok` and the elapsed `ms` merged in

        Raises:
            RelaySubmitError: on a non-2xx answer or a transport failure
        """
        t0 = time.perf_counter()

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.relay_url, json=payload)
        except httpx.HTTPError as e:
            ms = round((time.perf_counter() - t0) * 1000)
            logger.error(f"Relay unreachable: {e!r}")
            raise RelaySubmitError(f"CRM relay unreachable: {e or type(e).__name__} - {ms}ms") from e

        ms = round((time.perf_counter() - t0) * 1000)

        if not response.is_success:
            message = self._error_message(response)
            logger.warning(f"Relay rejected {payload.get('requestId')}: {message}")
            raise RelaySubmitError(f"{message} - {ms}ms", status=response.status_code)

        try:
            out = response.json()
        except ValueError:
            return {"ok": True, "ms": ms}
        if not isinstance(out, dict):
            return {"ok": True, "ms": ms, "body": out}
        return {**out, "ok": True, "ms": ms}

    def _error_message(self, response: httpx.Response) -> str:
        """Prefer the relay's own explanation over a generic status line."""
        message = f"CRM relay failed: {response.status_code} {response.reason_phrase}"

        try:
            data = response.json()
        except ValueError:
            if response.text:
                message += f" - {response.text}"
            return message

        if isinstance(data, str):
            return data or message
        if not isinstance(data, dict):
            return message

        relay_msg = data.get("message") or data.get("error") or data.get("detail")
        if relay_msg:
            message = str(relay_msg)
        if data.get("status"):
            message += f" (upstream status {data['status']})"
        upstream_body = data.get("upstreamBody")
        if upstream_body:
            if not isinstance(upstream_body, str):
                upstream_body = json.dumps(upstream_body)
            message += f": {upstream_body}"
        if data.get("requestId"):
            message += f" (requestId: {data['requestId']})"
        return message

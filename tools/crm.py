import httpx
from typing import Dict, Any, Optional, Tuple
from loguru import logger

from tools.settings import RelaySettings

CREDENTIAL_HEADER = "X-API-Key"


class CRMClient:
    """Upstream CRM integration client for lead applications."""

    def __init__(self, settings: RelaySettings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.transport = transport

    def _get_headers(self) -> Dict[str, str]:
        """Headers for the upstream call. The credential is set exactly once."""
        return {
            "Content-Type": "application/json",
            CREDENTIAL_HEADER: self.settings.api_key,
        }

    async def submit_application(self, payload: Dict[str, Any]) -> Tuple[int, Any]:
        """
        Post one application to the CRM.

        Args:
            payload: Parsed lead payload, forwarded as-is

        Returns:
            Tuple of (upstream status code, parsed upstream body)

        Raises:
            httpx.HTTPError: when the upstream cannot be reached
        """
        url = self.settings.target_url
        logger.info(f"Forwarding application {payload.get('requestId', 'unknown')} to {url}")

        async with httpx.AsyncClient(timeout=self.settings.timeout, transport=self.transport) as client:
            response = await client.post(url, headers=self._get_headers(), json=payload)

        body = self._read_body(response)
        logger.info(f"CRM responded with {response.status_code}")
        return response.status_code, body

    def _read_body(self, response: httpx.Response) -> Any:
        """Parse the upstream body as JSON when it says so, else keep the raw text."""
        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                return response.json()
            except ValueError:
                logger.warning("CRM declared JSON but sent an unparseable body")
        return response.text

"""
Calculation Client for the SLD Engine
=====================================

HTTP client for the external load-calculation service. The engine never
computes electrical values itself; it only copies returned values into the
properties of a newly placed component.
"""

import os
import logging
from typing import Optional, Dict, Any
import httpx
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

CALCULATION_API_BASE_URL = os.getenv("CALCULATION_API_URL")


class LoadCalculationResponse(BaseModel):
    """Response from the load-calculation service."""
    success: bool
    values: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None


class CalculationClient:
    """Client for ``POST {base}/v1/loads/calculate``."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url or CALCULATION_API_BASE_URL
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
                transport=self._transport
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def calculate(
        self,
        component_type: str,
        properties: Optional[Dict[str, Any]] = None
    ) -> LoadCalculationResponse:
        """
        Request load values for a component about to be placed.

        Args:
            component_type: Component type of the new component
            properties: Its template properties

        Returns:
            LoadCalculationResponse; ``values`` holds the computed properties
        """
        if not self.enabled:
            return LoadCalculationResponse(success=False, error="No calculation service configured")

        url = f"{self.base_url.rstrip('/')}/v1/loads/calculate"
        request_data = {
            "component_type": component_type,
            "properties": properties or {},
        }
        logger.info(f"[CALCULATION-CLIENT] Calling {url} for type={component_type}")

        try:
            client = await self._get_client()
            response = await client.post(url, json=request_data)
            response.raise_for_status()

            data = response.json()
            values = data.get("values", {}) if isinstance(data, dict) else {}
            logger.info(f"[CALCULATION-CLIENT-OK] {len(values)} value(s) for type={component_type}")
            return LoadCalculationResponse(success=True, values=values)

        except httpx.TimeoutException:
            logger.error(f"[CALCULATION-CLIENT-TIMEOUT] Request to {url} timed out")
            return LoadCalculationResponse(success=False, error="Request timed out")

        except httpx.HTTPStatusError as e:
            logger.error(f"[CALCULATION-CLIENT-ERROR] HTTP {e.response.status_code}: {e.response.text}")
            return LoadCalculationResponse(
                success=False,
                error=f"HTTP {e.response.status_code}: {e.response.text[:200]}"
            )

        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"[CALCULATION-CLIENT-ERROR] {type(e).__name__}: {e}")
            return LoadCalculationResponse(success=False, error=str(e))

"""
Catalog Client for the SLD Engine
=================================

Resolves component templates (symbol type, default size, default properties)
for placing new components on a diagram.

A small registry of generic SLD symbols is answered locally; any other
template id is fetched from the external catalog service.
"""

import os
import logging
from typing import Optional, Dict, Any
import httpx
from pydantic import BaseModel, Field

from ..models.diagram_models import Size

logger = logging.getLogger(__name__)

CATALOG_API_BASE_URL = os.getenv("CATALOG_API_URL")


class CatalogTemplate(BaseModel):
    """A placeable component template."""
    template_id: str
    type: str
    name: Optional[str] = None
    category: Optional[str] = None
    default_size: Size
    properties: Dict[str, Any] = Field(default_factory=dict)


class CatalogResponse(BaseModel):
    """Response from a template lookup."""
    success: bool
    template: Optional[CatalogTemplate] = None
    source: Optional[str] = None  # "local" or "remote"
    error: Optional[str] = None


def _template(template_id, type, name, category, width, height, **properties) -> CatalogTemplate:
    return CatalogTemplate(
        template_id=template_id,
        type=type,
        name=name,
        category=category,
        default_size=Size(width=width, height=height),
        properties=properties,
    )


# Generic symbols available without the catalog service
STANDARD_TEMPLATES: Dict[str, CatalogTemplate] = {
    t.template_id: t for t in [
        _template("main_panel", "main_panel", "Main Panel", "Distribution", 100, 80, rating=200, voltage=240, phase=1),
        _template("sub_panel", "sub_panel", "Sub Panel", "Distribution", 80, 60, rating=100, voltage=240, phase=1),
        _template("circuit_breaker", "breaker", "Circuit Breaker", "Protection", 60, 40, rating="50A", poles=2),
        _template("disconnect", "disconnect", "Disconnect Switch", "Protection", 60, 40, rating="60A", fusible=False),
        _template("transformer", "transformer", "Power Transformer", "Transformers", 100, 80, capacity="75kVA"),
        _template("meter", "meter", "Utility Meter", "Metering", 60, 60, meter_type="revenue"),
        _template("generator", "generator", "Standby Generator", "Generation", 100, 80, power_kw=22),
        _template("inverter", "inverter", "Inverter", "Generation", 80, 60, power_kw=7.6, coupling="ac"),
        _template("battery", "battery", "Battery Storage", "Storage", 80, 60, capacity_kwh=13.5),
        _template("load", "load", "Load", "Loads", 60, 40, watts=0),
    ]
}


class CatalogClient:
    """
    Template lookup with a local registry and an optional remote catalog.

    Usage:
        client = CatalogClient(base_url="https://catalog.example.com")
        response = await client.get_template("main_panel")
        if response.success:
            template = response.template
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        templates: Optional[Dict[str, CatalogTemplate]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url or CATALOG_API_BASE_URL
        self.timeout = timeout
        self.templates = dict(STANDARD_TEMPLATES if templates is None else templates)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"Accept": "application/json"},
                transport=self._transport
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get_template(self, template_id: str) -> CatalogResponse:
        """Resolve a template locally first, then from the catalog service."""
        local = self.templates.get(template_id)
        if local is not None:
            return CatalogResponse(success=True, template=local, source="local")

        if not self.base_url:
            return CatalogResponse(
                success=False,
                error=f"Unknown template '{template_id}' and no catalog service configured"
            )

        url = f"{self.base_url.rstrip('/')}/v1/templates/{template_id}"
        logger.info(f"[CATALOG-CLIENT] Fetching {url}")

        try:
            client = await self._get_client()
            response = await client.get(url)
            response.raise_for_status()

            template = CatalogTemplate(**response.json())
            logger.info(f"[CATALOG-CLIENT-OK] template={template.template_id}, type={template.type}")
            return CatalogResponse(success=True, template=template, source="remote")

        except httpx.TimeoutException:
            logger.error(f"[CATALOG-CLIENT-TIMEOUT] Request to {url} timed out")
            return CatalogResponse(success=False, error="Request timed out")

        except httpx.HTTPStatusError as e:
            logger.error(f"[CATALOG-CLIENT-ERROR] HTTP {e.response.status_code}: {e.response.text}")
            return CatalogResponse(
                success=False,
                error=f"HTTP {e.response.status_code}: {e.response.text[:200]}"
            )

        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"[CATALOG-CLIENT-ERROR] {type(e).__name__}: {e}")
            return CatalogResponse(success=False, error=str(e))

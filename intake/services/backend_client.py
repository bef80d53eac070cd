"""Client side of the draft backend contract: create, update and read."""

from typing import Any, Protocol

import httpx

from intake.config import settings
from intake.exceptions import DraftNotFoundError, DraftTransportError
from intake.utils.logger import LoggerMixin

APPLICATIONS_PATH = "/api/applications"


class DraftBackend(Protocol):
    async def create(self, payload: dict[str, Any]) -> dict[str, Any]: ...

    async def update(self, identity: str, payload: dict[str, Any]) -> dict[str, Any]: ...

    async def read(self, identity: str) -> dict[str, Any]: ...


class HttpDraftBackend(LoggerMixin):
    """DraftBackend over HTTP using an ``httpx.AsyncClient``."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ):
        self.client = client or httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            timeout=timeout or settings.request_timeout_seconds,
        )

    async def create(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", APPLICATIONS_PATH, payload=payload)

    async def update(self, identity: str, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request(
            "PATCH", f"{APPLICATIONS_PATH}/{identity}", payload=payload, identity=identity
        )

    async def read(self, identity: str) -> dict[str, Any]:
        return await self._request(
            "GET", f"{APPLICATIONS_PATH}/{identity}", identity=identity
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        identity: str | None = None,
    ) -> dict[str, Any]:
        try:
            response = await self.client.request(method, path, json=payload)
        except httpx.HTTPError as e:
            self.logger.warning(
                "Draft backend request failed", method=method, path=path, error=str(e)
            )
            raise DraftTransportError(f"{method} {path} failed: {e}") from e

        if response.status_code == 404 and identity is not None:
            raise DraftNotFoundError(identity)
        if response.is_error:
            self.logger.warning(
                "Draft backend returned an error",
                method=method,
                path=path,
                status_code=response.status_code,
            )
            raise DraftTransportError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            self.logger.warning(
                "Draft backend returned an unreadable body",
                method=method,
                path=path,
                status_code=response.status_code,
            )
            raise DraftTransportError(
                f"{method} {path} returned an unreadable body",
                status_code=response.status_code,
            ) from e

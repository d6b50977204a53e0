"""
Async client for the procedures service.

Wraps the REST API in typed calls. Every request carries the public API key;
authenticated calls also carry the bearer token of the current session.
Service errors are raised as ``ProcedureServiceError`` with the service's
own message, untranslated.
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

import httpx
from pydantic import BaseModel

from procedure_tracker.client.config import ClientSettings
from procedure_tracker.models.procedure import ProcedureStatus
from procedure_tracker.models.profile import ProfileRole

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


class ProcedureServiceError(Exception):
    """A call to the procedures service failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

class ProfileRecord(BaseModel):
    id: str
    email: str
    full_name: str
    role: ProfileRole

    @property
    def is_admin(self) -> bool:
        return self.role == ProfileRole.ADMIN


class ProcedureRecord(BaseModel):
    id: str
    title: str
    description: str = ""
    source: str = ""
    source_link: str = ""
    effective_date: date
    status: ProcedureStatus
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StatsRecord(BaseModel):
    procedure_id: str
    has_acknowledged: bool
    acknowledged_count: int
    total_profiles: int
    completion_percentage: int


class AcknowledgmentRecord(BaseModel):
    id: str
    procedure_id: str
    user_id: str
    acknowledged_at: datetime


class Session(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    profile: ProfileRecord


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class ProcedureServiceClient:
    """HTTP client for the procedures service."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not base_url or not api_key:
            raise ValueError("Both the service URL and the API key are required")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.access_token: Optional[str] = None
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(cls, settings: Optional[ClientSettings] = None, **kwargs) -> "ProcedureServiceClient":
        settings = settings or ClientSettings()
        return cls(settings.SERVICE_URL, settings.API_KEY, **kwargs)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                transport=self._transport,
                headers={"apikey": self.api_key, "Accept": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ProcedureServiceClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        detail = body.get("detail") if isinstance(body, dict) else None
        if isinstance(detail, list):
            # Validation errors: [{"loc": [...], "msg": "..."}, ...]
            return "; ".join(str(d.get("msg", d)) for d in detail)
        return str(detail) if detail else f"HTTP {response.status_code}"

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        client = await self._get_client()
        headers = dict(kwargs.pop("headers", {}) or {})
        if self.access_token and "Authorization" not in headers:
            headers["Authorization"] = f"Bearer {self.access_token}"
        try:
            response = await client.request(method, f"{API_PREFIX}{path}", headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Request {method} {path} failed: {e}")
            raise ProcedureServiceError(str(e)) from e

        if response.is_error:
            message = self._error_message(response)
            logger.debug(f"{method} {path} -> {response.status_code}: {message}")
            raise ProcedureServiceError(message, status_code=response.status_code)
        return response

    # -- Auth ----------------------------------------------------------------

    async def sign_in(self, email: str, password: str) -> Session:
        response = await self._request(
            "POST",
            "/auth/login",
            data={"username": email, "password": password},
        )
        data = response.json()
        return Session(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            profile=ProfileRecord.model_validate(data["user"]),
        )

    async def sign_up(
        self,
        email: str,
        password: str,
        full_name: str,
        role: ProfileRole = ProfileRole.STAFF,
    ) -> ProfileRecord:
        """Register. The tokens the service returns are not kept."""
        response = await self._request(
            "POST",
            "/auth/register",
            json={
                "email": email,
                "password": password,
                "full_name": full_name,
                "role": ProfileRole(role).value,
            },
        )
        return ProfileRecord.model_validate(response.json()["user"])

    async def sign_out(self) -> None:
        await self._request("POST", "/auth/logout")

    async def get_me(self) -> ProfileRecord:
        response = await self._request("GET", "/auth/me")
        return ProfileRecord.model_validate(response.json())

    async def refresh(self, refresh_token: str) -> str:
        response = await self._request(
            "POST",
            "/auth/refresh",
            headers={"Authorization": f"Bearer {refresh_token}"},
        )
        return response.json()["access_token"]

    # -- Procedures ----------------------------------------------------------

    async def list_procedures(self, **params: Any) -> List[ProcedureRecord]:
        """All procedures, newest created first."""
        response = await self._request("GET", "/procedures/", params=params or None)
        return [ProcedureRecord.model_validate(p) for p in response.json()]

    async def create_procedure(self, payload: Dict[str, Any]) -> ProcedureRecord:
        response = await self._request("POST", "/procedures/", json=payload)
        return ProcedureRecord.model_validate(response.json())

    async def update_procedure(self, procedure_id: str, payload: Dict[str, Any]) -> ProcedureRecord:
        response = await self._request("PUT", f"/procedures/{procedure_id}", json=payload)
        return ProcedureRecord.model_validate(response.json())

    # -- Acknowledgments -----------------------------------------------------

    async def get_stats(self, procedure_id: str) -> StatsRecord:
        response = await self._request("GET", f"/procedures/{procedure_id}/stats")
        return StatsRecord.model_validate(response.json())

    async def acknowledge(self, procedure_id: str) -> Tuple[AcknowledgmentRecord, bool]:
        """Returns (acknowledgment, created); created is False if it already existed."""
        response = await self._request("POST", f"/procedures/{procedure_id}/acknowledge")
        return AcknowledgmentRecord.model_validate(response.json()), response.status_code == 201

    # -- Profiles ------------------------------------------------------------

    async def get_profile(self, profile_id: str) -> ProfileRecord:
        response = await self._request("GET", f"/profiles/{profile_id}")
        return ProfileRecord.model_validate(response.json())

"""
Hosted Marketplace Gateway

Async implementation of MarketplaceGatewayInterface against the hosted
backend-as-a-service: a GoTrue-style auth API under /auth/v1 and a PostgREST
data API under /rest/v1.

Connection Management:
- One pooled httpx.AsyncClient is shared by the whole process
- A gateway instance is cheap and scoped to one request: it carries that
  caller's access token and nothing else

Error Handling:
- Transport errors, 5xx and 429 raise GatewayUnavailableError and are
  retried with exponential backoff (tenacity)
- Everything else is mapped to a GatewayError subclass and raised at once
"""

import logging
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError
from pydantic_core import to_jsonable_python
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.common.error_handling import gateway_operation
from src.common.types import Application, Job, Profile, Session

from .base import (
    ApplicationFilter,
    AuthError,
    GatewayError,
    GatewayUnavailableError,
    JobFilter,
    MarketplaceGatewayInterface,
    RecordNotFoundError,
    RecordValidationError,
)
from .config import GatewayConfig

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

PROFILES_TABLE = "profiles"
JOBS_TABLE = "jobs"
APPLICATIONS_TABLE = "applications"

# Related rows embedded by the list queries
JOBS_LIST_SELECT = "*,profiles(full_name,avatar_url)"
APPLICATIONS_LIST_SELECT = "*,jobs(*),profiles(full_name,avatar_url)"


def _error_message(response: httpx.Response) -> str:
    """Pull the human-readable message out of a GoTrue/PostgREST error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        for key in ("error_description", "msg", "message", "error"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {response.status_code}"


class HostedMarketplaceGateway(MarketplaceGatewayInterface):
    """
    REST gateway bound to one caller's session tokens.

    Usage:
        gateway = HostedMarketplaceGateway(client, config, access_token=token)
        session = await gateway.get_current_session()
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: GatewayConfig,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
    ):
        self._client = client
        self._config = config
        self._access_token = access_token
        self._refresh_token = refresh_token

    @property
    def access_token(self) -> Optional[str]:
        return self._access_token

    @property
    def refresh_token(self) -> Optional[str]:
        return self._refresh_token

    # =========================================================================
    # Transport
    # =========================================================================

    def _headers(self, prefer_representation: bool = False) -> Dict[str, str]:
        headers = {
            "apikey": self._config.anon_key,
            "Authorization": f"Bearer {self._access_token or self._config.anon_key}",
        }
        if prefer_representation:
            headers["Prefer"] = "return=representation"
        return headers

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise GatewayUnavailableError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 500 or response.status_code == 429:
            raise GatewayUnavailableError(
                f"{method} {path} returned {response.status_code}: {_error_message(response)}",
                status_code=response.status_code,
            )
        return response

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
        prefer_representation: bool = False,
    ) -> httpx.Response:
        """Send a request, retrying transient failures with exponential backoff."""
        kwargs: Dict[str, Any] = {"headers": self._headers(prefer_representation)}
        if params:
            kwargs["params"] = params
        if json is not None:
            kwargs["json"] = to_jsonable_python(json)

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._config.max_retries),
            wait=wait_exponential(
                multiplier=self._config.retry_backoff_seconds,
                min=0,
                max=self._config.retry_backoff_max_seconds,
            ),
            retry=retry_if_exception_type(GatewayUnavailableError),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.info(
                        f"Retrying {method} {path} "
                        f"(attempt {attempt.retry_state.attempt_number}/{self._config.max_retries})"
                    )
                return await self._send(method, path, **kwargs)

        raise GatewayUnavailableError(f"{method} {path} exhausted retries")

    @staticmethod
    def _raise_for_status(response: httpx.Response, what: str) -> None:
        status = response.status_code
        if status < 400:
            return
        message = f"{what}: {_error_message(response)}"
        if status in (400, 409, 422):
            raise RecordValidationError(message, status_code=status)
        if status in (401, 403):
            raise AuthError(message, status_code=status)
        if status == 404:
            raise RecordNotFoundError(message, status_code=status)
        raise GatewayError(message, status_code=status)

    # =========================================================================
    # Record parsing
    # =========================================================================

    @staticmethod
    def _parse(model: Type[RecordT], row: Any, what: str) -> RecordT:
        try:
            return model.model_validate(row)
        except ValidationError as e:
            raise GatewayError(f"Malformed {what} record: {e.error_count()} invalid field(s)") from e

    @staticmethod
    def _parse_many(model: Type[RecordT], rows: Any, what: str) -> List[RecordT]:
        """Parse a list of rows, skipping (and logging) any malformed ones."""
        if not isinstance(rows, list):
            raise GatewayError(f"Expected a list of {what} records")
        records: List[RecordT] = []
        for row in rows:
            try:
                records.append(model.model_validate(row))
            except ValidationError as e:
                row_id = row.get("id") if isinstance(row, dict) else None
                logger.warning(f"Skipping malformed {what} record id={row_id}: {e.error_count()} invalid field(s)")
        return records

    def _single(self, model: Type[RecordT], response: httpx.Response, what: str) -> RecordT:
        self._raise_for_status(response, what)
        rows = response.json()
        if isinstance(rows, dict):
            rows = [rows]
        if not rows:
            raise RecordNotFoundError(f"{what} not found", status_code=response.status_code)
        return self._parse(model, rows[0], what)

    # =========================================================================
    # Table helpers
    # =========================================================================

    async def _select(
        self, table: str, params: Dict[str, str], columns: str = "*"
    ) -> httpx.Response:
        return await self._request("GET", f"/rest/v1/{table}", params={"select": columns, **params})

    async def _insert(self, table: str, row: Dict[str, Any]) -> httpx.Response:
        return await self._request(
            "POST", f"/rest/v1/{table}", json=[row], prefer_representation=True
        )

    async def _patch(self, table: str, record_id: str, updates: Dict[str, Any]) -> httpx.Response:
        return await self._request(
            "PATCH",
            f"/rest/v1/{table}",
            params={"id": f"eq.{record_id}"},
            json=updates,
            prefer_representation=True,
        )

    # =========================================================================
    # Session / identity
    # =========================================================================

    def _session_from_token_response(self, body: Dict[str, Any]) -> Session:
        user = body.get("user") or body
        user_id = user.get("id") if isinstance(user, dict) else None
        if not user_id:
            raise AuthError("Auth response did not include a user id")
        return Session(
            user_id=user_id,
            email=user.get("email"),
            access_token=body.get("access_token"),
            refresh_token=body.get("refresh_token"),
        )

    @gateway_operation("session lookup")
    async def get_current_session(self) -> Optional[Session]:
        if not self._access_token:
            return None
        response = await self._request("GET", "/auth/v1/user")
        if response.status_code in (401, 403):
            logger.debug("Access token rejected; treating caller as signed out")
            return None
        self._raise_for_status(response, "session lookup")
        user = response.json()
        if not isinstance(user, dict) or not user.get("id"):
            return None
        return Session(
            user_id=user["id"],
            email=user.get("email"),
            access_token=self._access_token,
            refresh_token=self._refresh_token,
        )

    @gateway_operation("registration", log_success=True)
    async def register(self, data: Dict[str, Any]) -> Session:
        response = await self._request(
            "POST",
            "/auth/v1/signup",
            json={
                "email": data["email"],
                "password": data["password"],
                "data": {
                    "full_name": data.get("full_name"),
                    "phone": data.get("phone"),
                    "role": data.get("role"),
                },
            },
        )
        if response.status_code >= 400:
            raise AuthError(_error_message(response), status_code=response.status_code)

        session = self._session_from_token_response(response.json())
        if session.access_token:
            self._access_token = session.access_token
            self._refresh_token = session.refresh_token

        try:
            await self.create_profile(
                session.user_id,
                {
                    "full_name": data.get("full_name"),
                    "email": data["email"],
                    "phone": data.get("phone"),
                    "role": data.get("role"),
                    "status": "active",
                },
            )
        except GatewayError as e:
            # The auth user exists now; it needs a profile row added by hand
            logger.error(
                f"Auth user {session.user_id} was created but has no profile: "
                f"{type(e).__name__}: {e}"
            )
            raise
        return session

    @gateway_operation("login")
    async def login(self, email: str, password: str) -> Session:
        response = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        if response.status_code >= 400:
            raise AuthError(_error_message(response), status_code=response.status_code)

        session = self._session_from_token_response(response.json())
        if not session.access_token:
            raise AuthError("Login did not return an access token")
        self._access_token = session.access_token
        self._refresh_token = session.refresh_token
        return session

    @gateway_operation("logout")
    async def logout(self) -> None:
        if not self._access_token:
            return
        try:
            response = await self._request("POST", "/auth/v1/logout")
            if response.status_code >= 400:
                raise AuthError(_error_message(response), status_code=response.status_code)
        finally:
            self._access_token = None
            self._refresh_token = None

    # =========================================================================
    # Profiles
    # =========================================================================

    @gateway_operation("profile lookup")
    async def get_profile(self, user_id: str) -> Profile:
        response = await self._select(PROFILES_TABLE, {"id": f"eq.{user_id}"})
        return self._single(Profile, response, "profile")

    @gateway_operation("profile creation", log_success=True)
    async def create_profile(self, user_id: str, data: Dict[str, Any]) -> Profile:
        row = {"id": user_id, **data}
        return self._single(Profile, await self._insert(PROFILES_TABLE, row), "profile")

    @gateway_operation("profile update")
    async def update_profile(self, user_id: str, updates: Dict[str, Any]) -> Profile:
        return self._single(Profile, await self._patch(PROFILES_TABLE, user_id, updates), "profile")

    # =========================================================================
    # Jobs
    # =========================================================================

    @gateway_operation("job listing")
    async def list_jobs(self, filter: Optional[JobFilter] = None) -> List[Job]:
        params = {"order": "created_at.desc"}
        if filter and filter.client_id:
            params["client_id"] = f"eq.{filter.client_id}"
        if filter and filter.status:
            params["status"] = f"eq.{filter.status}"
        response = await self._select(JOBS_TABLE, params, columns=JOBS_LIST_SELECT)
        self._raise_for_status(response, "job listing")
        return self._parse_many(Job, response.json(), "job")

    @gateway_operation("job lookup")
    async def get_job(self, job_id: str) -> Job:
        response = await self._select(JOBS_TABLE, {"id": f"eq.{job_id}"})
        return self._single(Job, response, "job")

    @gateway_operation("job creation", log_success=True)
    async def create_job(self, data: Dict[str, Any]) -> Job:
        return self._single(Job, await self._insert(JOBS_TABLE, data), "job")

    @gateway_operation("job update")
    async def update_job(self, job_id: str, updates: Dict[str, Any]) -> Job:
        return self._single(Job, await self._patch(JOBS_TABLE, job_id, updates), "job")

    # =========================================================================
    # Applications
    # =========================================================================

    @gateway_operation("application listing")
    async def list_applications(
        self, filter: Optional[ApplicationFilter] = None
    ) -> List[Application]:
        params = {"order": "created_at.desc"}
        if filter and filter.worker_id:
            params["worker_id"] = f"eq.{filter.worker_id}"
        if filter and filter.job_id:
            params["job_id"] = f"eq.{filter.job_id}"
        response = await self._select(APPLICATIONS_TABLE, params, columns=APPLICATIONS_LIST_SELECT)
        self._raise_for_status(response, "application listing")
        return self._parse_many(Application, response.json(), "application")

    @gateway_operation("application creation", log_success=True)
    async def create_application(self, data: Dict[str, Any]) -> Application:
        return self._single(Application, await self._insert(APPLICATIONS_TABLE, data), "application")

    @gateway_operation("application update")
    async def update_application(
        self, application_id: str, updates: Dict[str, Any]
    ) -> Application:
        response = await self._patch(APPLICATIONS_TABLE, application_id, updates)
        return self._single(Application, response, "application")

"""
Tests for the hosted backend gateway.

Requests are served by httpx.MockTransport, so these tests exercise the
real URL building, header handling, retry policy and error mapping.
"""

import json
import logging
from decimal import Decimal
from unittest.mock import patch

import httpx
import pytest
import pytest_asyncio

from src.common.repositories import (
    ApplicationFilter,
    AuthError,
    GatewayConfig,
    GatewayError,
    GatewayUnavailableError,
    JobFilter,
    RecordNotFoundError,
    RecordValidationError,
    create_gateway,
)
from src.common.repositories.hosted_gateway import HostedMarketplaceGateway
from src.common.types import JobStatus, Role
from tests.fixtures.marketplace_records import application_row, job_row, profile_row

BASE_URL = "https://backend.test"


@pytest.fixture
def config():
    return GatewayConfig(
        base_url=BASE_URL,
        anon_key="anon-key",
        max_retries=3,
        retry_backoff_seconds=0,
    )


class Backend:
    """Scripted backend: queue responses per (method, path) and record requests."""

    def __init__(self):
        self.routes = {}
        self.requests = []

    def on(self, method, path, *responses):
        self.routes.setdefault((method, path), []).extend(responses)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"message": "no route"})
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def backend():
    return Backend()


@pytest_asyncio.fixture
async def make_gateway(backend, config):
    clients = []

    def factory(access_token=None, refresh_token=None):
        client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(backend))
        clients.append(client)
        return create_gateway(config, access_token, refresh_token, client=client)

    yield factory

    for client in clients:
        await client.aclose()


class TestFactory:

    def test_config_from_env(self):
        env = {"BACKEND_URL": "https://backend.test/", "BACKEND_ANON_KEY": "k", "GATEWAY_MAX_RETRIES": "5"}
        with patch.dict("os.environ", env, clear=True):
            config = GatewayConfig.from_env()

        assert config.base_url == "https://backend.test"
        assert config.anon_key == "k"
        assert config.max_retries == 5
        assert config.timeout_seconds == 10.0

    def test_config_from_env_requires_url(self):
        with patch.dict("os.environ", {}, clear=True):
            with pytest.raises(ValueError, match="BACKEND_URL"):
                GatewayConfig.from_env()

    @pytest.mark.asyncio
    async def test_create_gateway_binds_tokens(self, make_gateway):
        gateway = make_gateway("tok", "ref")

        assert isinstance(gateway, HostedMarketplaceGateway)
        assert gateway.access_token == "tok"
        assert gateway.refresh_token == "ref"


class TestTransport:
    """Headers, retries and status mapping."""

    @pytest.mark.asyncio
    async def test_sends_api_key_and_bearer_token(self, backend, make_gateway):
        backend.on("GET", "/rest/v1/jobs", httpx.Response(200, json=[]))

        await make_gateway("user-token").list_jobs()

        request = backend.requests[0]
        assert request.headers["apikey"] == "anon-key"
        assert request.headers["Authorization"] == "Bearer user-token"

    @pytest.mark.asyncio
    async def test_anonymous_calls_use_anon_key_as_bearer(self, backend, make_gateway):
        backend.on("GET", "/rest/v1/jobs", httpx.Response(200, json=[]))

        await make_gateway().list_jobs()

        assert backend.requests[0].headers["Authorization"] == "Bearer anon-key"

    @pytest.mark.asyncio
    async def test_retries_server_errors_then_succeeds(self, backend, make_gateway):
        backend.on(
            "GET",
            "/rest/v1/jobs",
            httpx.Response(503, json={"message": "starting up"}),
            httpx.Response(200, json=[job_row()]),
        )

        jobs = await make_gateway().list_jobs()

        assert len(jobs) == 1
        assert len(backend.requests) == 2

    @pytest.mark.asyncio
    async def test_retries_transport_errors(self, backend, make_gateway):
        backend.on(
            "GET",
            "/rest/v1/jobs",
            httpx.ConnectError("connection refused"),
            httpx.Response(200, json=[]),
        )

        assert await make_gateway().list_jobs() == []
        assert len(backend.requests) == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, backend, make_gateway):
        backend.on("GET", "/rest/v1/jobs", httpx.Response(500, json={"message": "boom"}))

        with pytest.raises(GatewayUnavailableError) as exc_info:
            await make_gateway().list_jobs()

        assert exc_info.value.status_code == 500
        assert len(backend.requests) == 3

    @pytest.mark.asyncio
    async def test_client_errors_are_not_retried(self, backend, make_gateway):
        backend.on("POST", "/rest/v1/jobs", httpx.Response(400, json={"message": "bad budget"}))

        with pytest.raises(RecordValidationError, match="bad budget"):
            await make_gateway("tok").create_job({"title": "x"})

        assert len(backend.requests) == 1


class TestSession:
    """Auth endpoints."""

    @pytest.mark.asyncio
    async def test_no_token_means_no_session(self, backend, make_gateway):
        assert await make_gateway().get_current_session() is None
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_current_session_from_user_endpoint(self, backend, make_gateway):
        backend.on("GET", "/auth/v1/user", httpx.Response(200, json={"id": "u1", "email": "a@b.co"}))

        session = await make_gateway("tok", "ref").get_current_session()

        assert session.user_id == "u1"
        assert session.access_token == "tok"
        assert session.refresh_token == "ref"

    @pytest.mark.asyncio
    async def test_rejected_token_means_no_session(self, backend, make_gateway):
        backend.on("GET", "/auth/v1/user", httpx.Response(401, json={"msg": "expired"}))

        assert await make_gateway("stale").get_current_session() is None

    @pytest.mark.asyncio
    async def test_login_posts_password_grant(self, backend, make_gateway):
        backend.on(
            "POST",
            "/auth/v1/token",
            httpx.Response(
                200,
                json={"access_token": "new", "refresh_token": "r", "user": {"id": "u1", "email": "a@b.co"}},
            ),
        )
        gateway = make_gateway()

        session = await gateway.login("a@b.co", "secret123")

        request = backend.requests[0]
        assert request.url.params["grant_type"] == "password"
        assert json.loads(request.content) == {"email": "a@b.co", "password": "secret123"}
        assert session.access_token == "new"
        assert gateway.access_token == "new"

    @pytest.mark.asyncio
    async def test_bad_credentials_raise_auth_error(self, backend, make_gateway):
        backend.on(
            "POST",
            "/auth/v1/token",
            httpx.Response(400, json={"error_description": "Invalid login credentials"}),
        )

        with pytest.raises(AuthError, match="Invalid login credentials"):
            await make_gateway().login("a@b.co", "wrong")

    @pytest.mark.asyncio
    async def test_register_creates_profile(self, backend, make_gateway):
        backend.on(
            "POST",
            "/auth/v1/signup",
            httpx.Response(200, json={"access_token": "t", "user": {"id": "u9", "email": "w@x.io"}}),
        )
        backend.on("POST", "/rest/v1/profiles", httpx.Response(201, json=[profile_row("worker", id="u9")]))

        session = await make_gateway().register(
            {"email": "w@x.io", "password": "secret123", "full_name": "W", "phone": "+1555", "role": "worker"}
        )

        assert session.user_id == "u9"
        profile_request = backend.requests[1]
        assert profile_request.headers["Authorization"] == "Bearer t"
        assert profile_request.headers["Prefer"] == "return=representation"
        row = json.loads(profile_request.content)[0]
        assert row["id"] == "u9"
        assert row["role"] == "worker"
        assert row["status"] == "active"

    @pytest.mark.asyncio
    async def test_register_logs_user_left_without_profile(self, backend, make_gateway, caplog):
        backend.on(
            "POST",
            "/auth/v1/signup",
            httpx.Response(200, json={"access_token": "t", "user": {"id": "u9", "email": "w@x.io"}}),
        )
        backend.on("POST", "/rest/v1/profiles", httpx.Response(409, json={"message": "duplicate key"}))

        with pytest.raises(RecordValidationError):
            await make_gateway().register({"email": "w@x.io", "password": "secret123", "role": "worker"})

        orphan_logs = [r for r in caplog.records if "has no profile" in r.getMessage()]
        assert len(orphan_logs) == 1
        assert orphan_logs[0].levelno == logging.ERROR
        assert "Auth user u9" in orphan_logs[0].getMessage()

    @pytest.mark.asyncio
    async def test_register_without_session_when_confirmation_required(self, backend, make_gateway):
        backend.on("POST", "/auth/v1/signup", httpx.Response(200, json={"id": "u9", "email": "w@x.io"}))
        backend.on("POST", "/rest/v1/profiles", httpx.Response(201, json=[profile_row("client", id="u9")]))

        session = await make_gateway().register(
            {"email": "w@x.io", "password": "secret123", "role": "client"}
        )

        assert session.user_id == "u9"
        assert session.access_token is None

    @pytest.mark.asyncio
    async def test_logout_clears_tokens_even_on_failure(self, backend, make_gateway):
        backend.on("POST", "/auth/v1/logout", httpx.Response(403, json={"msg": "nope"}))
        gateway = make_gateway("tok", "ref")

        with pytest.raises(AuthError):
            await gateway.logout()

        assert gateway.access_token is None
        assert gateway.refresh_token is None

    @pytest.mark.asyncio
    async def test_logout_without_session_is_noop(self, backend, make_gateway):
        await make_gateway().logout()

        assert backend.requests == []


class TestRecords:
    """Table reads and writes."""

    @pytest.mark.asyncio
    async def test_get_profile(self, backend, make_gateway):
        backend.on("GET", "/rest/v1/profiles", httpx.Response(200, json=[profile_row("admin")]))

        profile = await make_gateway("tok").get_profile("admin-1")

        assert profile.role is Role.ADMIN
        assert backend.requests[0].url.params["id"] == "eq.admin-1"

    @pytest.mark.asyncio
    async def test_missing_profile_raises_not_found(self, backend, make_gateway):
        backend.on("GET", "/rest/v1/profiles", httpx.Response(200, json=[]))

        with pytest.raises(RecordNotFoundError):
            await make_gateway("tok").get_profile("ghost")

    @pytest.mark.asyncio
    async def test_list_jobs_applies_filter_and_order(self, backend, make_gateway):
        backend.on("GET", "/rest/v1/jobs", httpx.Response(200, json=[job_row(), job_row()]))

        jobs = await make_gateway().list_jobs(JobFilter(client_id="c1", status="open"))

        params = backend.requests[0].url.params
        assert params["client_id"] == "eq.c1"
        assert params["status"] == "eq.open"
        assert params["order"] == "created_at.desc"
        assert [job.status for job in jobs] == [JobStatus.OPEN, JobStatus.OPEN]

    @pytest.mark.asyncio
    async def test_malformed_rows_are_skipped(self, backend, make_gateway):
        rows = [job_row(id="good"), job_row(id="bad", budget=-5), {"unexpected": True}]
        backend.on("GET", "/rest/v1/jobs", httpx.Response(200, json=rows))

        jobs = await make_gateway().list_jobs()

        assert [job.id for job in jobs] == ["good"]

    @pytest.mark.asyncio
    async def test_non_list_body_is_an_error(self, backend, make_gateway):
        backend.on("GET", "/rest/v1/jobs", httpx.Response(200, json={"oops": 1}))

        with pytest.raises(GatewayError):
            await make_gateway().list_jobs()

    @pytest.mark.asyncio
    async def test_create_job_serialises_decimals(self, backend, make_gateway):
        backend.on("POST", "/rest/v1/jobs", httpx.Response(201, json=[job_row(id="new", budget=750)]))

        job = await make_gateway("tok").create_job({"title": "A job", "budget": Decimal("750.00")})

        assert job.id == "new"
        assert json.loads(backend.requests[0].content)[0]["budget"] == "750.00"

    @pytest.mark.asyncio
    async def test_update_job_patches_by_id(self, backend, make_gateway):
        backend.on("PATCH", "/rest/v1/jobs", httpx.Response(200, json=[job_row(id="j1", status="completed")]))

        job = await make_gateway("tok").update_job("j1", {"status": "completed"})

        assert job.status is JobStatus.COMPLETED
        assert backend.requests[0].url.params["id"] == "eq.j1"

    @pytest.mark.asyncio
    async def test_list_applications_filters(self, backend, make_gateway):
        backend.on("GET", "/rest/v1/applications", httpx.Response(200, json=[application_row()]))

        apps = await make_gateway("tok").list_applications(ApplicationFilter(worker_id="w1", job_id="j1"))

        params = backend.requests[0].url.params
        assert params["worker_id"] == "eq.w1"
        assert params["job_id"] == "eq.j1"
        assert len(apps) == 1

    @pytest.mark.asyncio
    async def test_list_applications_embeds_job_and_applicant(self, backend, make_gateway):
        row = application_row(
            jobs=job_row(id="j1", title="Fix a leaking tap"),
            profiles={"full_name": "Wendy Worker", "avatar_url": None},
        )
        backend.on("GET", "/rest/v1/applications", httpx.Response(200, json=[row]))

        apps = await make_gateway("tok").list_applications()

        assert backend.requests[0].url.params["select"] == "*,jobs(*),profiles(full_name,avatar_url)"
        assert apps[0].job_title == "Fix a leaking tap"
        assert apps[0].applicant_name == "Wendy Worker"
        assert apps[0].applicant_avatar_url is None

    @pytest.mark.asyncio
    async def test_list_jobs_embeds_client_name(self, backend, make_gateway):
        rows = [
            job_row(id="named", profiles={"full_name": "Carla Client", "avatar_url": "https://img.test/c.png"}),
            job_row(id="orphan", profiles=None),
        ]
        backend.on("GET", "/rest/v1/jobs", httpx.Response(200, json=rows))

        jobs = await make_gateway().list_jobs()

        assert backend.requests[0].url.params["select"] == "*,profiles(full_name,avatar_url)"
        assert jobs[0].client_name == "Carla Client"
        assert jobs[0].client_avatar_url == "https://img.test/c.png"
        assert jobs[1].client_name is None

    @pytest.mark.asyncio
    async def test_forbidden_write_raises_auth_error(self, backend, make_gateway):
        backend.on("POST", "/rest/v1/applications", httpx.Response(403, json={"message": "RLS"}))

        with pytest.raises(AuthError):
            await make_gateway("tok").create_application({"job_id": "j1"})

"""
Tests for role dashboards and navigation.
"""

import pytest

from src.common.repositories import ApplicationFilter, GatewayUnavailableError, JobFilter
from src.common.types import Role
from src.marketplace.dashboards import (
    RECENT_LIMIT,
    load_admin_dashboard,
    load_client_dashboard,
    load_worker_dashboard,
    profile_completion,
    summarise_admin,
    summarise_client,
    summarise_worker,
)
from src.marketplace.navigation import home_path_for, nav_links_for
from tests.fixtures.marketplace_records import make_application, make_job, make_profile


class TestProfileCompletion:

    def test_contact_details_only(self):
        profile = make_profile("worker")

        # full_name, email, phone out of six fields
        assert profile_completion(profile) == 50

    def test_complete_profile(self):
        profile = make_profile(
            "worker", experience_level="expert", skills=["Go"], bio="Backend developer"
        )

        assert profile_completion(profile) == 100

    def test_empty_skills_do_not_count(self):
        profile = make_profile("worker", skills=[], bio="")

        assert profile_completion(profile) == 50


class TestSummaries:

    def test_client_counts(self):
        jobs = [
            make_job(id="a", status="open"),
            make_job(id="b", status="completed"),
            make_job(id="c", status="in_progress"),
        ]
        applications = [
            make_application(job_id="a"),
            make_application(job_id="c"),
            make_application(job_id="someone-elses-job"),
        ]

        dashboard = summarise_client(jobs, applications)

        assert dashboard.total_jobs == 3
        assert dashboard.active_jobs == 1
        assert dashboard.completed_jobs == 1
        assert dashboard.total_applications == 2

    def test_client_recent_lists_are_capped(self):
        jobs = [make_job() for _ in range(RECENT_LIMIT + 3)]

        dashboard = summarise_client(jobs, [])

        assert len(dashboard.recent_jobs) == RECENT_LIMIT

    def test_worker_counts(self):
        applications = [
            make_application(status="pending"),
            make_application(status="accepted"),
            make_application(status="completed"),
        ]

        dashboard = summarise_worker(make_profile("worker"), applications, [make_job(), make_job()])

        assert dashboard.total_applications == 3
        assert dashboard.active_applications == 1
        assert dashboard.completed_jobs == 1
        assert dashboard.available_jobs == 2

    def test_admin_counts_by_status(self):
        jobs = [make_job(status="open"), make_job(status="open"), make_job(status="cancelled")]
        applications = [make_application(status="rejected")]

        dashboard = summarise_admin(jobs, applications)

        assert dashboard.jobs_by_status == {"open": 2, "cancelled": 1}
        assert dashboard.applications_by_status == {"rejected": 1}


class TestLoaders:

    @pytest.mark.asyncio
    async def test_client_loader_skips_applications_without_jobs(self, gateway):
        profile = make_profile("client")

        dashboard = await load_client_dashboard(gateway, profile)

        gateway.list_jobs.assert_awaited_once_with(JobFilter(client_id=profile.id))
        gateway.list_applications.assert_not_called()
        assert dashboard.total_jobs == 0

    @pytest.mark.asyncio
    async def test_client_loader_counts_applications(self, gateway):
        profile = make_profile("client")
        gateway.list_jobs.return_value = [make_job(id="mine")]
        gateway.list_applications.return_value = [make_application(job_id="mine")]

        dashboard = await load_client_dashboard(gateway, profile)

        assert dashboard.total_applications == 1

    @pytest.mark.asyncio
    async def test_worker_loader_queries_own_applications(self, gateway):
        profile = make_profile("worker")

        await load_worker_dashboard(gateway, profile)

        gateway.list_applications.assert_awaited_once_with(ApplicationFilter(worker_id=profile.id))
        gateway.list_jobs.assert_awaited_once_with(JobFilter(status="open"))

    @pytest.mark.asyncio
    async def test_loader_propagates_gateway_errors(self, gateway):
        gateway.list_jobs.side_effect = GatewayUnavailableError("down")

        with pytest.raises(GatewayUnavailableError):
            await load_admin_dashboard(gateway)


class TestNavigation:

    @pytest.mark.parametrize(
        "role, path",
        [
            (Role.CLIENT, "/client"),
            (Role.WORKER, "/worker"),
            (Role.ADMIN, "/admin"),
            (None, "/unauthorized"),
        ],
    )
    def test_home_path(self, role, path):
        assert home_path_for(role) == path

    def test_client_links(self):
        hrefs = [link["href"] for link in nav_links_for(Role.CLIENT)]

        assert hrefs == ["/", "/client", "/post-job"]

    def test_worker_links_include_job_search(self):
        labels = [link["label"] for link in nav_links_for(Role.WORKER)]

        assert "Find Jobs" in labels

    def test_unknown_role_gets_home_only(self):
        assert nav_links_for(None) == [{"href": "/", "label": "Home"}]

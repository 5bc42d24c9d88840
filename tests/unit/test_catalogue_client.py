"""
Unit tests for the LMS API client and the visibility resolver built on it.
"""

from unittest.mock import Mock, patch

import pytest
import requests

from app.reports.catalogue_client import LmsApiClient, LmsVisibilityResolver, build_lms_integrations
from app.reports.constants import AdditionalFieldEntity, ReportType, UserLevel
from app.reports.exceptions import CatalogueUnavailableError, VisibilityResolverError
from app.reports.interfaces import IdSelection
from app.reports.schemas import CoursesFilter, SelectionInfo, SessionContext, UsersFilter


def json_response(data):
    response = Mock()
    response.json.return_value = {"data": data}
    response.raise_for_status.return_value = None
    return response


@pytest.fixture
def client(session_context):
    return LmsApiClient("https://lms.test/api/", session_context, timeout=5, token="secret")


@pytest.fixture
def power_user_client():
    session = SessionContext(user_id=44, user_level=UserLevel.POWER_USER)
    return LmsApiClient("https://lms.test/api", session)


class TestLmsApiClient:
    """Additional-field catalogue over HTTP"""

    @patch("app.reports.catalogue_client.requests.request")
    async def test_get_additional_fields(self, mock_request, client):
        mock_request.return_value = json_response(
            {"items": [{"id": "3", "title": "Region", "type": "dropdown", "options": {1: "North"}}]}
        )

        fields = await client.get_additional_fields(AdditionalFieldEntity.USER)

        assert len(fields) == 1
        assert fields[0].id == 3
        assert fields[0].options == {"1": "North"}
        args, kwargs = mock_request.call_args
        assert args == ("GET", "https://lms.test/api/manage/v1/user_fields?no_pagination=1")
        assert kwargs["headers"]["Authorization"] == "Bearer secret"
        assert kwargs["headers"]["Accept-Language"] == "english"
        assert kwargs["timeout"] == 5

    @patch("app.reports.catalogue_client.requests.request")
    async def test_learning_plan_fields_endpoint(self, mock_request, client):
        mock_request.return_value = json_response({"items": []})
        assert await client.get_additional_fields(AdditionalFieldEntity.LEARNING_PLAN) == []
        assert "association=coursepath" in mock_request.call_args.args[1]

    @patch("app.reports.catalogue_client.requests.request")
    async def test_catalogue_unavailable(self, mock_request, client):
        mock_request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(CatalogueUnavailableError) as exc_info:
            await client.get_additional_fields(AdditionalFieldEntity.COURSE)
        assert exc_info.value.status_code == 503

    @patch("app.reports.catalogue_client.requests.request")
    async def test_http_error_is_unavailable(self, mock_request, client):
        response = Mock()
        response.raise_for_status.side_effect = requests.HTTPError("500")
        mock_request.return_value = response
        with pytest.raises(CatalogueUnavailableError):
            await client.additional_field_exists(AdditionalFieldEntity.USER, 3)

    @patch("app.reports.catalogue_client.requests.request")
    async def test_additional_field_exists(self, mock_request, client):
        mock_request.return_value = json_response({"exists": True})
        assert await client.additional_field_exists(AdditionalFieldEntity.COURSE, 7) is True
        assert mock_request.call_args.args[1].endswith("/report/v1/report/datalake_fields/course/7")


class TestLmsVisibilityResolver:
    """Selections expanded and scoped through the LMS API"""

    async def test_all_users_for_god_admin(self, client, make_definition):
        definition = make_definition(ReportType.COURSES_USERS)
        with patch("app.reports.catalogue_client.requests.request") as mock_request:
            selection = await LmsVisibilityResolver(client).resolve_users(definition, True)
        assert selection == IdSelection.everything()
        mock_request.assert_not_called()

    @patch("app.reports.catalogue_client.requests.request")
    async def test_groups_expanded_to_members(self, mock_request, client, make_definition):
        mock_request.return_value = json_response([5, 6])
        definition = make_definition(
            ReportType.COURSES_USERS,
            users=UsersFilter(users=[SelectionInfo(id=1)], groups=[SelectionInfo(id=10)]),
        )

        selection = await LmsVisibilityResolver(client).resolve_users(definition, True)

        assert selection == IdSelection.only([1, 5, 6])
        args, kwargs = mock_request.call_args
        assert args[0] == "POST"
        assert kwargs["json"] == {"groups": [10]}

    @patch("app.reports.catalogue_client.requests.request")
    async def test_power_user_intersection(self, mock_request, power_user_client, make_definition):
        mock_request.return_value = json_response([2, 3, 4])
        definition = make_definition(
            ReportType.COURSES_USERS, courses=CoursesFilter(courses=[SelectionInfo(id=3), SelectionInfo(id=9)])
        )

        selection = await LmsVisibilityResolver(power_user_client).resolve_courses(definition, True)

        assert selection == IdSelection.only([3])
        assert mock_request.call_args.args[1].endswith("/report/v1/report/pu_courses")

    @patch("app.reports.catalogue_client.requests.request")
    async def test_power_user_without_visibility_check(self, mock_request, power_user_client, make_definition):
        definition = make_definition(ReportType.COURSES_USERS)
        selection = await LmsVisibilityResolver(power_user_client).resolve_users(definition, False)
        assert selection.all is True
        mock_request.assert_not_called()

    @patch("app.reports.catalogue_client.requests.request")
    async def test_resolver_failure(self, mock_request, power_user_client, make_definition):
        mock_request.side_effect = requests.Timeout("slow")
        with pytest.raises(VisibilityResolverError):
            await LmsVisibilityResolver(power_user_client).resolve_users(
                make_definition(ReportType.COURSES_USERS), True
            )

    def test_integrations_share_one_client(self, session_context):
        catalogue, resolver = build_lms_integrations(session_context)
        assert resolver.client is catalogue

# app/reports/catalogue_client.py
"""HTTP client for the LMS platform API.

Serves the tenant additional-field catalogue and the id lists the visibility resolver
needs. ``requests`` is blocking, so every call runs in a worker thread.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

import requests

from app.core.config import LMS_API_TIMEOUT, LMS_API_URL
from app.reports.constants import AdditionalFieldEntity
from app.reports.exceptions import CatalogueUnavailableError, VisibilityResolverError
from app.reports.interfaces import IdSelection
from app.reports.schemas import AdditionalField, ReportDefinition, SelectionInfo, SessionContext

logger = logging.getLogger(__name__)

# Catalogue endpoint of each additional-field entity
ADDITIONAL_FIELD_PATHS = {
    AdditionalFieldEntity.USER.value: "/manage/v1/user_fields?no_pagination=1",
    AdditionalFieldEntity.COURSE.value: "/learn/v1/courses/field?no_pagination=1&association=course&show_field=1",
    AdditionalFieldEntity.LEARNING_PLAN.value: (
        "/learn/v1/courses/field?no_pagination=1&association=coursepath&show_field=1"
    ),
}


def _ids(selection: Iterable[SelectionInfo]) -> List[int]:
    return [item.id for item in selection]


class LmsApiClient:
    """Additional-field catalogue backed by the LMS API."""

    def __init__(self, base_url: str, session: SessionContext, timeout: float = 30, token: Optional[str] = None):
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.timeout = timeout
        self.token = token

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept-Language": self.session.lang_code}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        response = requests.request(
            method, f"{self.base_url}{path}", headers=self._headers(), json=body, timeout=self.timeout
        )
        response.raise_for_status()
        return response.json()

    async def call(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        logger.debug(f"LMS API {method} {path}")
        return await asyncio.to_thread(self._request, method, path, body)

    # ===== ADDITIONAL FIELDS =====

    async def get_additional_fields(self, entity: AdditionalFieldEntity) -> List[AdditionalField]:
        try:
            data = await self.call("GET", ADDITIONAL_FIELD_PATHS[entity.value])
        except requests.RequestException as e:
            logger.error(f"Additional fields of '{entity.value}' unavailable: {str(e)}")
            raise CatalogueUnavailableError(f"Additional fields of '{entity.value}' unavailable", e) from e

        fields = []
        for item in data.get("data", {}).get("items", []):
            fields.append(
                AdditionalField(
                    id=int(item["id"]),
                    title=str(item.get("title") or item.get("name") or ""),
                    type=str(item.get("type", "")),
                    options={str(k): str(v) for k, v in (item.get("options") or {}).items()},
                )
            )
        return fields

    async def additional_field_exists(self, entity: AdditionalFieldEntity, field_id: int) -> bool:
        """Whether the warehouse already materialized the field column."""
        try:
            data = await self.call("GET", f"/report/v1/report/datalake_fields/{entity.value}/{field_id}")
        except requests.RequestException as e:
            raise CatalogueUnavailableError(f"Additional field {entity.value}/{field_id} lookup failed", e) from e
        return bool(data.get("data", {}).get("exists", False))


class LmsVisibilityResolver:
    """Resolves definition filter blocks to id lists, scoped to a power user when asked."""

    def __init__(self, client: LmsApiClient):
        self.client = client

    async def _fetch_ids(self, path: str, body: Optional[Dict[str, Any]] = None) -> Set[int]:
        try:
            data = await self.client.call("POST" if body is not None else "GET", path, body)
        except requests.RequestException as e:
            logger.error(f"Visibility lookup {path} failed: {str(e)}")
            raise VisibilityResolverError(f"Visibility lookup {path} failed", e) from e
        return {int(i) for i in data.get("data", [])}

    async def _scoped(self, selected: Optional[Set[int]], pu_path: str, check_visibility: bool) -> IdSelection:
        """Intersect an explicit selection (``None`` for all) with the power user's visible ids."""
        if self.client.session.is_power_user and check_visibility:
            visible = await self._fetch_ids(pu_path)
            return IdSelection.only(sorted(visible if selected is None else visible & selected))
        if selected is None:
            return IdSelection.everything()
        return IdSelection.only(sorted(selected))

    async def resolve_users(self, definition: ReportDefinition, check_visibility: bool) -> IdSelection:
        users = definition.users
        selected: Optional[Set[int]] = None
        if users is not None and not users.all:
            selected = set(_ids(users.users))
            containers = _ids(users.groups) + _ids(users.branches)
            if containers:
                selected |= await self._fetch_ids("/report/v1/report/group_members", {"groups": containers})
        return await self._scoped(selected, "/report/v1/report/pu_users", check_visibility)

    async def resolve_courses(self, definition: ReportDefinition, check_visibility: bool) -> IdSelection:
        courses = definition.courses
        selected: Optional[Set[int]] = None
        if courses is not None and not courses.all:
            selected = set(_ids(courses.courses))
            if courses.categories:
                selected |= await self._fetch_ids(
                    "/report/v1/report/category_courses", {"categories": _ids(courses.categories)}
                )
        return await self._scoped(selected, "/report/v1/report/pu_courses", check_visibility)

    async def resolve_groups(self, definition: ReportDefinition, check_visibility: bool) -> IdSelection:
        groups = definition.groups
        if groups is None or groups.all:
            return IdSelection.everything()
        return IdSelection.only(_ids(groups.groups))

    async def resolve_certifications(self, definition: ReportDefinition, check_visibility: bool) -> IdSelection:
        certifications = definition.certifications
        if certifications is None or certifications.all:
            return IdSelection.everything()
        return IdSelection.only(_ids(certifications.certifications))

    async def resolve_learning_plans(self, definition: ReportDefinition, check_visibility: bool) -> IdSelection:
        plans = definition.learning_plans
        selected = None if plans is None or plans.all else set(_ids(plans.learning_plans))
        return await self._scoped(selected, "/report/v1/report/pu_lps", check_visibility)


def build_lms_integrations(session: SessionContext) -> Tuple[LmsApiClient, LmsVisibilityResolver]:
    """Catalogue and visibility resolver of one tenant session, sharing a client."""
    client = LmsApiClient(LMS_API_URL, session, timeout=LMS_API_TIMEOUT)
    return client, LmsVisibilityResolver(client)

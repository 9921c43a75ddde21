"""
Employee directory backed by a Notion database.

Maps Notion page properties into Profile records. Lookups are best-effort:
``get_profile_by_contact`` returns None on absence or failure so callers
can continue with the profile they already hold.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from src.common.config import Config
from src.common.error_handling import DirectoryError
from src.common.types import Profile

logger = logging.getLogger(__name__)

NOTION_API_URL = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"

# Notion column -> Profile field
PROPERTY_MAP = {
    "Name": "name",
    "Email": "email",
    "Department": "department",
    "Role": "role",
    "Location": "location",
    "Age Range": "age_range",
    "Gender Identity": "gender_identity",
    "Cultural Heritage": "cultural_heritage",
}


def get_property_value(properties: Dict[str, Any], property_name: str) -> Any:
    """Extract a plain value from a typed Notion property."""
    prop = properties.get(property_name)
    if not prop:
        return None

    prop_type = prop.get("type")
    if prop_type == "title":
        items = prop.get("title") or []
        return items[0].get("plain_text", "") if items else ""
    if prop_type == "rich_text":
        items = prop.get("rich_text") or []
        return items[0].get("plain_text", "") if items else ""
    if prop_type == "email":
        return prop.get("email") or ""
    if prop_type == "select":
        return (prop.get("select") or {}).get("name", "")
    if prop_type == "multi_select":
        return [item.get("name") for item in prop.get("multi_select") or [] if item.get("name")]
    if prop_type == "date":
        return (prop.get("date") or {}).get("start", "")
    if prop_type == "number":
        return prop.get("number") or 0
    if prop_type == "checkbox":
        return prop.get("checkbox") or False
    if prop_type == "url":
        return prop.get("url") or ""
    return None


def page_to_profile(page: Dict[str, Any]) -> Profile:
    properties = page.get("properties") or {}
    data: Dict[str, Any] = {"id": page.get("id")}
    for column, field_name in PROPERTY_MAP.items():
        value = get_property_value(properties, column)
        if value not in (None, ""):
            data[field_name] = value
    return Profile.model_validate(data)


class NotionDirectory:
    """Employee lookups against a Notion database."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        database_id: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key if api_key is not None else Config.NOTION_API_KEY
        self.database_id = database_id if database_id is not None else Config.NOTION_DATABASE_ID
        self._client = http_client or httpx.AsyncClient(
            base_url=NOTION_API_URL,
            timeout=Config.HTTP_TIMEOUT_SECONDS,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
                "Notion-Version": NOTION_VERSION,
            },
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def search_employees(self, query: str) -> List[Profile]:
        """Query the database for names or emails containing ``query``."""
        body = {
            "filter": {
                "or": [
                    {"property": "Name", "title": {"contains": query}},
                    {"property": "Email", "email": {"contains": query}},
                ]
            }
        }
        try:
            response = await self._client.post(f"/databases/{self.database_id}/query", json=body)
            response.raise_for_status()
            pages = response.json().get("results", [])
        except (httpx.HTTPError, ValueError) as e:
            raise DirectoryError(f"Failed to search employees: {e}") from e

        return [page_to_profile(page) for page in pages]

    async def get_profile_by_contact(self, email: Optional[str]) -> Optional[Profile]:
        """Exact-email lookup; None when absent, unconfigured or failing."""
        if not email or not self.database_id:
            return None
        try:
            results = await self.search_employees(email)
        except DirectoryError as e:
            logger.warning(f"Error fetching employee by email {email}: {e}")
            return None
        return next((p for p in results if p.email == email), None)

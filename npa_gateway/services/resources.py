# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Netskope Resource API facade.

Thin async methods mapping each resource operation to one REST call through
the injected ApiClient. Responses are unwrapped from the ``{status, data}``
envelope so callers work with plain dicts and lists.
"""

from typing import Any

import structlog

from ..clients import ApiClient
from ..utils.cron import parse_schedule

logger = structlog.get_logger(__name__)

PRIVATE_APPS_PATH = "/api/v2/steering/apps/private"
POLICY_RULES_PATH = "/api/v2/policy/npa/rules"
POLICY_GROUPS_PATH = "/api/v2/policy/npa/policygroups"
PUBLISHERS_PATH = "/api/v2/infrastructure/publishers"
LOCAL_BROKERS_PATH = "/api/v2/infrastructure/lbrokers"
UPGRADE_PROFILES_PATH = "/api/v2/infrastructure/publisherupgradeprofiles"

DEFAULT_DOCKER_TAG = "latest"
DEFAULT_TIMEZONE = "US/Pacific"
DEFAULT_RELEASE_TYPE = "Beta"


def unwrap_item(response: Any) -> Any:
    """Return ``data`` from a ``{status, data}`` envelope."""
    if isinstance(response, dict) and "data" in response:
        return response["data"]
    return response


def unwrap_list(response: Any, key: str) -> list[dict[str, Any]]:
    """Return the item list from a list response.

    Accepts ``{data: {key: [...]}}``, ``{data: [...]}``, ``{key: [...]}``
    or a bare list.
    """
    data = unwrap_item(response)
    if isinstance(data, dict):
        data = data.get(key, [])
    return list(data or [])


class ResourceAPI:
    """Resource operations used by the tool handlers and the smart deleter."""

    def __init__(self, client: ApiClient):
        self.client = client

    # =========================================================================
    # PRIVATE APPS
    # =========================================================================

    async def list_private_apps(
        self,
        params: dict[str, Any] | None = None,
        use_cache: bool = True,
    ) -> list[dict[str, Any]]:
        """List private apps (``app_id``/``app_name`` items)."""
        result = await self.client.get(PRIVATE_APPS_PATH, params=params, use_cache=use_cache)
        return unwrap_list(result, "private_apps")

    async def get_private_app(self, app_id: str, use_cache: bool = True) -> dict[str, Any]:
        """Get private app by ID."""
        result = await self.client.get(f"{PRIVATE_APPS_PATH}/{app_id}", use_cache=use_cache)
        return unwrap_item(result)

    async def create_private_app(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self.client.post(PRIVATE_APPS_PATH, json=data)

    async def update_private_app(self, app_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Partial update (PATCH)."""
        return await self.client.patch(f"{PRIVATE_APPS_PATH}/{app_id}", json=data)

    async def replace_private_app(self, app_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Full replacement (PUT)."""
        return await self.client.put(f"{PRIVATE_APPS_PATH}/{app_id}", json=data)

    async def delete_private_app(self, app_id: str) -> dict[str, Any]:
        return await self.client.delete(f"{PRIVATE_APPS_PATH}/{app_id}")

    async def list_private_app_tags(self) -> list[dict[str, Any]]:
        result = await self.client.get(f"{PRIVATE_APPS_PATH}/tags")
        return unwrap_list(result, "tags")

    async def get_policy_in_use(self, app_ids: list[str]) -> Any:
        """Ask the backend which policies use the given apps."""
        result = await self.client.post(f"{PRIVATE_APPS_PATH}/getpolicyinuse", json={"ids": app_ids})
        return unwrap_item(result)

    # Tags take ``[{"tag_name": ...}]``

    async def create_private_app_tags(self, app_id: str, tags: list[dict[str, Any]]) -> dict[str, Any]:
        """Add tags to one app."""
        return await self.client.post(f"{PRIVATE_APPS_PATH}/tags", json={"id": app_id, "tags": tags})

    async def replace_private_app_tags(self, app_ids: list[str], tags: list[dict[str, Any]]) -> dict[str, Any]:
        """Replace every tag of the given apps (PUT)."""
        return await self.client.put(f"{PRIVATE_APPS_PATH}/tags", json={"ids": app_ids, "tags": tags})

    async def patch_private_app_tags(self, app_ids: list[str], tags: list[dict[str, Any]]) -> dict[str, Any]:
        """Add tags to the given apps, keeping the ones they already carry (PATCH)."""
        return await self.client.patch(f"{PRIVATE_APPS_PATH}/tags", json={"ids": app_ids, "tags": tags})

    async def get_tag_policy_in_use(self, tag_ids: list[str]) -> Any:
        """Ask the backend which policies use the given tags."""
        result = await self.client.post(f"{PRIVATE_APPS_PATH}/tags/getpolicyinuse", json={"ids": tag_ids})
        return unwrap_item(result)

    async def set_private_app_publishers(self, app_ids: list[str], publisher_ids: list[str]) -> dict[str, Any]:
        """Attach publishers to apps."""
        return await self.client.put(
            f"{PRIVATE_APPS_PATH}/publishers",
            json={"private_app_ids": app_ids, "publisher_ids": publisher_ids},
        )

    async def remove_private_app_publishers(self, app_ids: list[str], publisher_ids: list[str]) -> dict[str, Any]:
        """Detach publishers from apps."""
        return await self.client.delete(
            f"{PRIVATE_APPS_PATH}/publishers",
            json={"private_app_ids": app_ids, "publisher_ids": publisher_ids},
        )

    # =========================================================================
    # POLICY RULES
    # =========================================================================

    async def list_policy_rules(self, use_cache: bool = True) -> list[dict[str, Any]]:
        result = await self.client.get(POLICY_RULES_PATH, use_cache=use_cache)
        return unwrap_list(result, "rules")

    async def get_policy_rule(self, rule_id: str) -> dict[str, Any]:
        result = await self.client.get(f"{POLICY_RULES_PATH}/{rule_id}")
        return unwrap_item(result)

    async def create_policy_rule(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self.client.post(POLICY_RULES_PATH, json=data)

    async def update_policy_rule(self, rule_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return await self.client.patch(f"{POLICY_RULES_PATH}/{rule_id}", json=data)

    async def delete_policy_rule(self, rule_id: str) -> dict[str, Any]:
        return await self.client.delete(f"{POLICY_RULES_PATH}/{rule_id}")

    async def list_policy_groups(self) -> list[dict[str, Any]]:
        result = await self.client.get(POLICY_GROUPS_PATH)
        return unwrap_list(result, "groups")

    async def get_policy_group(self, group_id: str) -> dict[str, Any]:
        result = await self.client.get(f"{POLICY_GROUPS_PATH}/{group_id}")
        return unwrap_item(result)

    async def create_policy_group(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self.client.post(POLICY_GROUPS_PATH, json=data)

    async def update_policy_group(self, group_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return await self.client.patch(f"{POLICY_GROUPS_PATH}/{group_id}", json=data)

    async def delete_policy_group(self, group_id: str) -> dict[str, Any]:
        return await self.client.delete(f"{POLICY_GROUPS_PATH}/{group_id}")

    # =========================================================================
    # PUBLISHERS
    # =========================================================================

    async def list_publishers(self) -> list[dict[str, Any]]:
        result = await self.client.get(PUBLISHERS_PATH)
        return unwrap_list(result, "publishers")

    async def get_publisher(self, publisher_id: str) -> dict[str, Any]:
        result = await self.client.get(f"{PUBLISHERS_PATH}/{publisher_id}")
        return unwrap_item(result)

    async def create_publisher(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self.client.post(PUBLISHERS_PATH, json=data)

    async def update_publisher(self, publisher_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return await self.client.patch(f"{PUBLISHERS_PATH}/{publisher_id}", json=data)

    async def replace_publisher(self, publisher_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Full replacement (PUT); the body repeats the ID."""
        body = {**data, "id": int(publisher_id) if str(publisher_id).isdecimal() else publisher_id}
        return await self.client.put(f"{PUBLISHERS_PATH}/{publisher_id}", json=body)

    async def delete_publisher(self, publisher_id: str) -> dict[str, Any]:
        return await self.client.delete(f"{PUBLISHERS_PATH}/{publisher_id}")

    async def bulk_upgrade_publishers(self, publisher_ids: list[str]) -> Any:
        """Request an upgrade of every listed publisher."""
        body = {"publishers": {"apply": {"upgrade_request": True}, "id": publisher_ids}}
        result = await self.client.put(f"{PUBLISHERS_PATH}/bulk", json=body)
        return unwrap_item(result)

    async def get_publisher_releases(self) -> Any:
        result = await self.client.get(f"{PUBLISHERS_PATH}/releases")
        return unwrap_item(result)

    async def list_publisher_apps(self, publisher_id: str) -> Any:
        """Private apps served by one publisher."""
        result = await self.client.get(f"{PUBLISHERS_PATH}/{publisher_id}/apps")
        return unwrap_item(result)

    async def generate_publisher_registration_token(self, publisher_id: str) -> Any:
        result = await self.client.post(f"{PUBLISHERS_PATH}/{publisher_id}/registration_token")
        return unwrap_item(result)

    # =========================================================================
    # LOCAL BROKERS
    # =========================================================================

    async def list_local_brokers(self) -> list[dict[str, Any]]:
        result = await self.client.get(LOCAL_BROKERS_PATH)
        return unwrap_list(result, "local_brokers")

    async def get_local_broker(self, broker_id: str) -> dict[str, Any]:
        result = await self.client.get(f"{LOCAL_BROKERS_PATH}/{broker_id}")
        return unwrap_item(result)

    async def create_local_broker(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self.client.post(LOCAL_BROKERS_PATH, json=data)

    async def update_local_broker(self, broker_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return await self.client.put(f"{LOCAL_BROKERS_PATH}/{broker_id}", json=data)

    async def delete_local_broker(self, broker_id: str) -> dict[str, Any]:
        return await self.client.delete(f"{LOCAL_BROKERS_PATH}/{broker_id}")

    async def get_broker_config(self) -> Any:
        """Global configuration shared by every local broker."""
        result = await self.client.get(f"{LOCAL_BROKERS_PATH}/brokerconfig")
        return unwrap_item(result)

    async def update_broker_config(self, hostname: str) -> Any:
        result = await self.client.put(f"{LOCAL_BROKERS_PATH}/brokerconfig", json={"hostname": hostname})
        return unwrap_item(result)

    async def generate_local_broker_registration_token(self, broker_id: str) -> Any:
        result = await self.client.post(f"{LOCAL_BROKERS_PATH}/{broker_id}/registrationtoken")
        return unwrap_item(result)

    # =========================================================================
    # UPGRADE PROFILES
    # =========================================================================

    async def list_upgrade_profiles(self) -> list[dict[str, Any]]:
        result = await self.client.get(UPGRADE_PROFILES_PATH)
        return unwrap_list(result, "upgrade_profiles")

    async def get_upgrade_profile(self, profile_id: str) -> dict[str, Any]:
        result = await self.client.get(f"{UPGRADE_PROFILES_PATH}/{profile_id}")
        return unwrap_item(result)

    async def create_upgrade_profile(self, data: dict[str, Any]) -> dict[str, Any]:
        """Create a profile; ``frequency`` is normalized before sending."""
        return await self.client.post(UPGRADE_PROFILES_PATH, json=_with_normalized_frequency(data))

    async def update_upgrade_profile(self, profile_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Replace a profile (PUT); ``frequency`` is normalized before sending."""
        return await self.client.put(
            f"{UPGRADE_PROFILES_PATH}/{profile_id}",
            json=_with_normalized_frequency(data),
        )

    async def delete_upgrade_profile(self, profile_id: str) -> dict[str, Any]:
        return await self.client.delete(f"{UPGRADE_PROFILES_PATH}/{profile_id}")

    async def set_upgrade_schedule(self, profile_id: str, schedule: str) -> dict[str, Any]:
        """Change only the schedule. Accepts cron or "DAY HH:MM"."""
        frequency = parse_schedule(schedule)
        logger.info("Updating upgrade schedule", profile_id=profile_id, frequency=frequency)
        return await self.client.put(
            f"{UPGRADE_PROFILES_PATH}/{profile_id}",
            json={"frequency": frequency},
        )

    async def create_upgrade_profile_with_schedule(
        self,
        name: str,
        schedule: str,
        docker_tag: str = DEFAULT_DOCKER_TAG,
        timezone: str = DEFAULT_TIMEZONE,
        release_type: str = DEFAULT_RELEASE_TYPE,
        enabled: bool = True,
    ) -> dict[str, Any]:
        """Create a profile from a friendly schedule and sensible defaults."""
        return await self.create_upgrade_profile(
            {
                "name": name,
                "enabled": enabled,
                "docker_tag": docker_tag,
                "frequency": schedule,
                "timezone": timezone,
                "release_type": release_type,
            }
        )


def _with_normalized_frequency(data: dict[str, Any]) -> dict[str, Any]:
    if data.get("frequency") is None:
        return data
    return {**data, "frequency": parse_schedule(data["frequency"])}

# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""NPA tool handlers.

Connect the action-based tools to the Resource API and the smart deleter.
Each handler takes the action and the raw arguments and returns a plain,
JSON-serializable dict. Invalid input raises InvalidActionError or
InvalidParamsError; backend failures propagate as NPAError subclasses.
"""

from typing import Any

import structlog
from pydantic import ValidationError

from ..errors import InvalidActionError, InvalidParamsError
from ..models import PolicyRuleDraft, SmartDeleteOptions
from ..tools.npa_tools import (
    LOCAL_BROKER_ACTIONS,
    POLICY_GROUP_ACTIONS,
    POLICY_RULE_ACTIONS,
    PRIVATE_APP_ACTIONS,
    PUBLISHER_ACTIONS,
    SMART_DELETE_ACTIONS,
    UPGRADE_PROFILE_ACTIONS,
)
from .resolver import ResourceResolver
from .resources import (
    DEFAULT_DOCKER_TAG,
    DEFAULT_RELEASE_TYPE,
    DEFAULT_TIMEZONE,
    ResourceAPI,
)
from .smart_delete import SmartDeleter

logger = structlog.get_logger(__name__)

SMART_DELETE_FLAGS = ("force", "cleanup_orphaned_policies", "dry_run")


def _require(params: dict[str, Any], name: str) -> Any:
    value = params.get(name)
    if value is None or value == "":
        raise InvalidParamsError(name)
    return value


def _require_data(params: dict[str, Any]) -> dict[str, Any]:
    data = _require(params, "data")
    if not isinstance(data, dict):
        raise InvalidParamsError("data", "must be an object")
    return data


def _require_list(params: dict[str, Any], name: str) -> list[Any]:
    value = _require(params, name)
    if not isinstance(value, list) or not value:
        raise InvalidParamsError(name, "must be a non-empty list")
    return value


def _tag_list(params: dict[str, Any]) -> list[dict[str, Any]]:
    """Accept ``["eng"]`` or ``[{"tag_name": "eng"}]``."""
    tags = []
    for tag in _require_list(params, "tags"):
        name = tag.get("tag_name") if isinstance(tag, dict) else tag
        if not isinstance(name, str) or not name.strip():
            raise InvalidParamsError("tags", "must contain tag names")
        tags.append({"tag_name": name.strip()})
    return tags


def _smart_delete_options(params: dict[str, Any]) -> SmartDeleteOptions:
    """Parse the smart delete flags; "false", "0" and "no" mean False."""
    flags = {k: params[k] for k in SMART_DELETE_FLAGS if params.get(k) is not None}
    try:
        return SmartDeleteOptions.model_validate(flags)
    except ValidationError as e:
        loc = e.errors()[0]["loc"]
        raise InvalidParamsError(str(loc[0]) if loc else "options", "must be a boolean") from e


def _rule_draft(data: dict[str, Any]) -> PolicyRuleDraft:
    try:
        return PolicyRuleDraft.model_validate(data)
    except ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"])
        param = f"data.{field}" if field else "data"
        raise InvalidParamsError(param, message=f"Invalid '{param}': {error['msg']}") from e


class NPAToolHandlers:
    """Handlers for the npa_* tools."""

    def __init__(self, resources: ResourceAPI, deleter: SmartDeleter | None = None):
        self.resources = resources
        self.deleter = deleter or SmartDeleter(resources)

        self.publishers = ResourceResolver(
            resources.list_publishers,
            id_field="publisher_id",
            name_field="publisher_name",
            resource_type="publisher",
        )
        self.private_apps = ResourceResolver(
            resources.list_private_apps,
            id_field="app_id",
            name_field="app_name",
            resource_type="private_app",
        )
        self.private_app_tags = ResourceResolver(
            resources.list_private_app_tags,
            id_field="tag_id",
            name_field="tag_name",
            resource_type="private_app_tag",
        )
        self.policy_rules = ResourceResolver(
            resources.list_policy_rules,
            id_field="rule_id",
            name_field="rule_name",
            resource_type="policy_rule",
        )
        self.policy_groups = ResourceResolver(
            resources.list_policy_groups,
            name_field="group_name",
            resource_type="policy_group",
        )
        self.local_brokers = ResourceResolver(
            resources.list_local_brokers,
            resource_type="local_broker",
        )
        self.upgrade_profiles = ResourceResolver(
            resources.list_upgrade_profiles,
            resource_type="upgrade_profile",
        )

    # =========================================================================
    # PUBLISHER HANDLERS
    # =========================================================================

    async def handle_publishers(self, action: str, params: dict[str, Any]) -> dict[str, Any]:
        """Handle npa_publishers tool calls."""
        if action == "list":
            publishers = await self.resources.list_publishers()
            return {"publishers": publishers, "total": len(publishers)}
        if action == "create":
            data = _require_data(params)
            _require(data, "name")
            return {"publisher": await self.resources.create_publisher(data)}
        if action == "releases":
            return {"releases": await self.resources.get_publisher_releases()}
        if action == "bulk_upgrade":
            publisher_ids = [await self.publishers.resolve_id(i) for i in _require_list(params, "ids")]
            result = await self.resources.bulk_upgrade_publishers(publisher_ids)
            logger.info("Publisher upgrade requested", publisher_ids=publisher_ids)
            return {"ids": publisher_ids, "result": result}

        if action not in PUBLISHER_ACTIONS:
            raise InvalidActionError(action, PUBLISHER_ACTIONS)

        publisher_id = await self.publishers.resolve_id(_require(params, "id"))
        if action == "get":
            return {"publisher": await self.resources.get_publisher(publisher_id)}
        if action == "update":
            return {"publisher": await self.resources.update_publisher(publisher_id, _require_data(params))}
        if action == "replace":
            data = _require_data(params)
            _require(data, "name")
            return {"publisher": await self.resources.replace_publisher(publisher_id, data)}
        if action == "apps":
            apps = await self.resources.list_publisher_apps(publisher_id)
            return {"publisher_id": publisher_id, "private_apps": apps}
        if action == "registration_token":
            token = await self.resources.generate_publisher_registration_token(publisher_id)
            logger.info("Publisher registration token generated", publisher_id=publisher_id)
            return {"publisher_id": publisher_id, "registration": token}
        await self.resources.delete_publisher(publisher_id)
        logger.info("Publisher deleted", publisher_id=publisher_id)
        return {"deleted": True, "publisher_id": publisher_id}

    # =========================================================================
    # PRIVATE APP HANDLERS
    # =========================================================================

    async def handle_private_apps(self, action: str, params: dict[str, Any]) -> dict[str, Any]:
        """Handle npa_private_apps tool calls."""
        if action == "list":
            apps = await self.resources.list_private_apps()
            return {"private_apps": apps, "total": len(apps)}
        if action == "tags":
            return {"tags": await self.resources.list_private_app_tags()}
        if action == "create":
            return {"private_app": await self.resources.create_private_app(_require_data(params))}
        if action == "policy_in_use":
            app_ids = await self._resolve_apps(params)
            return {"ids": app_ids, "policies": await self.resources.get_policy_in_use(app_ids)}
        if action == "tag_policy_in_use":
            tag_ids = [await self.private_app_tags.resolve_id(t) for t in _require_list(params, "tag_ids")]
            return {"tag_ids": tag_ids, "policies": await self.resources.get_tag_policy_in_use(tag_ids)}
        if action in ("replace_tags", "patch_tags"):
            app_ids = await self._resolve_apps(params)
            tags = _tag_list(params)
            if action == "replace_tags":
                result = await self.resources.replace_private_app_tags(app_ids, tags)
            else:
                result = await self.resources.patch_private_app_tags(app_ids, tags)
            logger.info("Private app tags changed", action=action, app_ids=app_ids)
            return {"ids": app_ids, "tags": tags, "result": result}
        if action in ("set_publishers", "remove_publishers"):
            app_ids = await self._resolve_apps(params)
            publisher_ids = [
                await self.publishers.resolve_id(p) for p in _require_list(params, "publisher_ids")
            ]
            if action == "set_publishers":
                result = await self.resources.set_private_app_publishers(app_ids, publisher_ids)
            else:
                result = await self.resources.remove_private_app_publishers(app_ids, publisher_ids)
            return {"ids": app_ids, "publisher_ids": publisher_ids, "result": result}

        if action not in PRIVATE_APP_ACTIONS:
            raise InvalidActionError(action, PRIVATE_APP_ACTIONS)

        app_id = await self.private_apps.resolve_id(_require(params, "id"))
        if action == "get":
            return {"private_app": await self.resources.get_private_app(app_id)}
        if action == "update":
            return {"private_app": await self.resources.update_private_app(app_id, _require_data(params))}
        if action == "replace":
            return {"private_app": await self.resources.replace_private_app(app_id, _require_data(params))}
        if action == "create_tags":
            result = await self.resources.create_private_app_tags(app_id, _tag_list(params))
            return {"app_id": app_id, "result": result}
        await self.resources.delete_private_app(app_id)
        logger.info("Private app deleted without policy cleanup", app_id=app_id)
        return {"deleted": True, "app_id": app_id}

    async def _resolve_apps(self, params: dict[str, Any]) -> list[str]:
        return [await self.private_apps.resolve_id(i) for i in _require_list(params, "ids")]

    async def handle_smart_delete(self, action: str, params: dict[str, Any]) -> dict[str, Any]:
        """Handle npa_smart_delete tool calls."""
        if action not in SMART_DELETE_ACTIONS:
            raise InvalidActionError(action, SMART_DELETE_ACTIONS)

        options = _smart_delete_options(params)
        app_id = await self.private_apps.resolve_id(_require(params, "id"))

        if action == "analyze":
            analysis = await self.deleter.analyze(app_id)
            return analysis.model_dump(mode="json")
        if action == "validate":
            validation = await self.deleter.validate_deletion(app_id, options)
            return validation.model_dump(mode="json")
        result = await self.deleter.delete(app_id, options)
        return result.model_dump(mode="json")

    # =========================================================================
    # POLICY HANDLERS
    # =========================================================================

    async def handle_policy_rules(self, action: str, params: dict[str, Any]) -> dict[str, Any]:
        """Handle npa_policy_rules tool calls."""
        if action == "list":
            rules = await self.resources.list_policy_rules()
            return {"rules": rules, "total": len(rules)}
        if action == "groups":
            return {"policy_groups": await self.resources.list_policy_groups()}
        if action == "create":
            return {"rule": await self._create_policy_rule(_require_data(params))}

        if action not in POLICY_RULE_ACTIONS:
            raise InvalidActionError(action, POLICY_RULE_ACTIONS)

        rule_id = await self.policy_rules.resolve_id(_require(params, "id"))
        if action == "get":
            return {"rule": await self.resources.get_policy_rule(rule_id)}
        if action == "update":
            data = _require_data(params)
            if "rule_data" in data and not isinstance(data["rule_data"], dict):
                raise InvalidParamsError("data.rule_data", "must be an object")
            return {"rule": await self.resources.update_policy_rule(rule_id, data)}
        await self.resources.delete_policy_rule(rule_id)
        logger.info("Policy rule deleted", rule_id=rule_id)
        return {"deleted": True, "rule_id": rule_id}

    async def _create_policy_rule(self, data: dict[str, Any]) -> dict[str, Any]:
        """Validate the draft, then swap app and group identifiers for canonical values."""
        draft = _rule_draft(data)
        app_names = []
        for identifier in draft.private_app_names:
            app = await self.private_apps.resolve(identifier)
            app_names.append(str(app["app_name"]))
        group_id = await self.policy_groups.resolve_id(draft.policy_group_id)
        draft = draft.model_copy(update={"private_app_names": app_names, "policy_group_id": group_id})

        rule = await self.resources.create_policy_rule(draft.to_api_payload())
        logger.info("Policy rule created", rule_name=draft.name, group_id=group_id)
        return rule

    async def handle_policy_groups(self, action: str, params: dict[str, Any]) -> dict[str, Any]:
        """Handle npa_policy_groups tool calls."""
        if action == "list":
            groups = await self.resources.list_policy_groups()
            return {"policy_groups": groups, "total": len(groups)}
        if action == "create":
            data = _require_data(params)
            _require(data, "group_name")
            return {"policy_group": await self.resources.create_policy_group(data)}

        if action not in POLICY_GROUP_ACTIONS:
            raise InvalidActionError(action, POLICY_GROUP_ACTIONS)

        group_id = await self.policy_groups.resolve_id(_require(params, "id"))
        if action == "get":
            return {"policy_group": await self.resources.get_policy_group(group_id)}
        if action == "update":
            return {"policy_group": await self.resources.update_policy_group(group_id, _require_data(params))}
        await self.resources.delete_policy_group(group_id)
        logger.info("Policy group deleted", group_id=group_id)
        return {"deleted": True, "id": group_id}

    # =========================================================================
    # LOCAL BROKER HANDLERS
    # =========================================================================

    async def handle_local_brokers(self, action: str, params: dict[str, Any]) -> dict[str, Any]:
        """Handle npa_local_brokers tool calls."""
        if action == "list":
            brokers = await self.resources.list_local_brokers()
            return {"local_brokers": brokers, "total": len(brokers)}
        if action == "create":
            data = _require_data(params)
            _require(data, "name")
            return {"local_broker": await self.resources.create_local_broker(data)}
        if action == "config":
            return {"config": await self.resources.get_broker_config()}
        if action == "update_config":
            hostname = _require(_require_data(params), "hostname")
            return {"config": await self.resources.update_broker_config(hostname)}

        if action not in LOCAL_BROKER_ACTIONS:
            raise InvalidActionError(action, LOCAL_BROKER_ACTIONS)

        broker_id = await self.local_brokers.resolve_id(_require(params, "id"))
        if action == "get":
            return {"local_broker": await self.resources.get_local_broker(broker_id)}
        if action == "update":
            data = _require_data(params)
            _require(data, "name")
            return {"local_broker": await self.resources.update_local_broker(broker_id, data)}
        if action == "registration_token":
            token = await self.resources.generate_local_broker_registration_token(broker_id)
            logger.info("Local broker registration token generated", broker_id=broker_id)
            return {"id": broker_id, "registration": token}
        await self.resources.delete_local_broker(broker_id)
        logger.info("Local broker deleted", broker_id=broker_id)
        return {"deleted": True, "id": broker_id}

    # =========================================================================
    # UPGRADE PROFILE HANDLERS
    # =========================================================================

    async def handle_upgrade_profiles(self, action: str, params: dict[str, Any]) -> dict[str, Any]:
        """Handle npa_upgrade_profiles tool calls."""
        if action == "list":
            profiles = await self.resources.list_upgrade_profiles()
            return {"upgrade_profiles": profiles, "total": len(profiles)}
        if action == "create":
            return {"upgrade_profile": await self._create_upgrade_profile(params)}

        if action not in UPGRADE_PROFILE_ACTIONS:
            raise InvalidActionError(action, UPGRADE_PROFILE_ACTIONS)

        profile_id = await self.upgrade_profiles.resolve_id(_require(params, "id"))
        if action == "get":
            return {"upgrade_profile": await self.resources.get_upgrade_profile(profile_id)}
        if action == "update":
            data = _require_data(params)
            return {"upgrade_profile": await self.resources.update_upgrade_profile(profile_id, data)}
        if action == "schedule":
            schedule = _require(params, "schedule")
            return {"upgrade_profile": await self.resources.set_upgrade_schedule(profile_id, schedule)}
        await self.resources.delete_upgrade_profile(profile_id)
        logger.info("Upgrade profile deleted", profile_id=profile_id)
        return {"deleted": True, "id": profile_id}

    async def _create_upgrade_profile(self, params: dict[str, Any]) -> dict[str, Any]:
        data = _require_data(params)
        name = _require(data, "name")
        schedule = params.get("schedule") or data.get("frequency")
        if not schedule:
            raise InvalidParamsError("schedule", message="Either 'schedule' or 'data.frequency' is required")
        return await self.resources.create_upgrade_profile_with_schedule(
            name=name,
            schedule=schedule,
            docker_tag=data.get("docker_tag", DEFAULT_DOCKER_TAG),
            timezone=data.get("timezone", DEFAULT_TIMEZONE),
            release_type=data.get("release_type", DEFAULT_RELEASE_TYPE),
            enabled=data.get("enabled", True),
        )

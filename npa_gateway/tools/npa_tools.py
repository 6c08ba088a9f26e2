# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Action-based NPA tools.

One tool per resource domain; the ``action`` argument selects the operation.
Resource identifiers accept either the numeric ID or the display name.
"""

from ..models.mcp import NPATool, ToolDomain, ToolInputSchema

PUBLISHER_ACTIONS = [
    "list", "get", "create", "update", "replace", "delete",
    "bulk_upgrade", "releases", "apps", "registration_token",
]
PRIVATE_APP_ACTIONS = [
    "list", "get", "create", "update", "replace", "delete",
    "tags", "create_tags", "replace_tags", "patch_tags",
    "policy_in_use", "tag_policy_in_use",
    "set_publishers", "remove_publishers",
]
SMART_DELETE_ACTIONS = ["analyze", "validate", "delete"]
POLICY_RULE_ACTIONS = ["list", "get", "create", "update", "delete", "groups"]
POLICY_GROUP_ACTIONS = ["list", "get", "create", "update", "delete"]
LOCAL_BROKER_ACTIONS = [
    "list", "get", "create", "update", "delete",
    "config", "update_config", "registration_token",
]
UPGRADE_PROFILE_ACTIONS = ["list", "get", "create", "update", "delete", "schedule"]

_IDENTIFIER = {
    "type": "string",
    "description": "Resource ID or exact display name (case-insensitive)",
}


def _identifiers(description: str) -> dict:
    return {"type": "array", "items": {"type": "string"}, "description": description}


def _action(actions: list[str]) -> dict:
    return {"type": "string", "enum": list(actions), "description": "Operation to perform"}


# =============================================================================
# Publishers
# =============================================================================

PUBLISHER_TOOLS: list[NPATool] = [
    NPATool(
        name="npa_publishers",
        description="""Publisher management.

Actions:
- list: List all publishers
- get: Get one publisher (requires: id)
- create: Create a publisher (requires: data.name)
- update: Partially update a publisher (requires: id, data)
- replace: Replace a publisher (requires: id, data.name)
- delete: Delete a publisher (requires: id)
- bulk_upgrade: Request an upgrade of several publishers (requires: ids)
- releases: List available publisher releases
- apps: Private apps served by a publisher (requires: id)
- registration_token: Generate a registration token (requires: id)

Examples:
- {"action": "list"}
- {"action": "get", "id": "pub-eu-west"}
- {"action": "update", "id": 12, "data": {"name": "pub-eu-west-2"}}
- {"action": "bulk_upgrade", "ids": ["pub-eu-west", "pub-us-east"]}
""",
        domain=ToolDomain.PUBLISHERS,
        handler="handle_publishers",
        category="Infrastructure",
        tags=["publishers", "infrastructure"],
        input_schema=ToolInputSchema(
            properties={
                "action": _action(PUBLISHER_ACTIONS),
                "id": {
                    **_IDENTIFIER,
                    "description": "Publisher ID or name (for: get, update, replace, delete, apps, registration_token)",
                },
                "ids": _identifiers("Publisher IDs or names (for: bulk_upgrade)"),
                "data": {"type": "object", "description": "Publisher fields (for: create, update, replace)"},
            },
            required=["action"],
        ),
    ),
]


# =============================================================================
# Private Apps
# =============================================================================

PRIVATE_APP_TOOLS: list[NPATool] = [
    NPATool(
        name="npa_private_apps",
        description="""Private application management.

Actions:
- list: List private apps
- get: Get one private app (requires: id)
- create: Create a private app (requires: data)
- update: Partially update a private app (requires: id, data)
- replace: Replace a private app (requires: id, data)
- delete: Delete a private app without policy cleanup (requires: id)
- tags: List private app tags
- create_tags: Add tags to one app (requires: id, tags)
- replace_tags: Replace the tags of several apps (requires: ids, tags)
- patch_tags: Add tags to several apps, keeping existing ones (requires: ids, tags)
- policy_in_use: Policies using the given apps (requires: ids)
- tag_policy_in_use: Policies using the given tags (requires: tag_ids)
- set_publishers: Attach publishers to apps (requires: ids, publisher_ids)
- remove_publishers: Detach publishers from apps (requires: ids, publisher_ids)

Use npa_smart_delete to delete an app together with its policy references.

Examples:
- {"action": "patch_tags", "ids": ["gitlab"], "tags": ["engineering"]}
- {"action": "set_publishers", "ids": ["gitlab"], "publisher_ids": ["pub-eu-west"]}
""",
        domain=ToolDomain.PRIVATE_APPS,
        handler="handle_private_apps",
        category="Private Access",
        tags=["private_apps", "applications"],
        input_schema=ToolInputSchema(
            properties={
                "action": _action(PRIVATE_APP_ACTIONS),
                "id": {
                    **_IDENTIFIER,
                    "description": "App ID or name (for: get, update, replace, delete, create_tags)",
                },
                "ids": _identifiers(
                    "App IDs or names (for: policy_in_use, replace_tags, patch_tags, "
                    "set_publishers, remove_publishers)"
                ),
                "tags": {
                    "type": "array",
                    "items": {"type": ["string", "object"]},
                    "description": "Tag names, or objects with tag_name (for: create_tags, replace_tags, patch_tags)",
                },
                "tag_ids": _identifiers("Tag IDs or names (for: tag_policy_in_use)"),
                "publisher_ids": _identifiers("Publisher IDs or names (for: set_publishers, remove_publishers)"),
                "data": {"type": "object", "description": "App fields (for: create, update, replace)"},
            },
            required=["action"],
        ),
    ),
    NPATool(
        name="npa_smart_delete",
        description="""Delete a private app safely, cleaning policies that reference it.

Actions:
- analyze: List policies referencing the app (direct, tag or mixed)
- validate: Report warnings, blockers and recommendations for a deletion
- delete: Clean affected policies, then delete the app

Options (for: validate, delete):
- dry_run: preview without changing anything (default false)
- cleanup_orphaned_policies: rewrite or delete affected policies (default true)
- force: delete even when references remain (default false)

Examples:
- {"action": "analyze", "id": "web-app"}
- {"action": "delete", "id": "web-app", "dry_run": true}
""",
        domain=ToolDomain.PRIVATE_APPS,
        handler="handle_smart_delete",
        category="Private Access",
        tags=["private_apps", "policy", "delete", "dependencies"],
        input_schema=ToolInputSchema(
            properties={
                "action": _action(SMART_DELETE_ACTIONS),
                "id": {**_IDENTIFIER, "description": "App ID or name"},
                "dry_run": {"type": "boolean", "default": False},
                "cleanup_orphaned_policies": {"type": "boolean", "default": True},
                "force": {"type": "boolean", "default": False},
            },
            required=["action", "id"],
        ),
    ),
]


# =============================================================================
# Policy
# =============================================================================

POLICY_TOOLS: list[NPATool] = [
    NPATool(
        name="npa_policy_rules",
        description="""NPA policy rules.

Actions:
- list: List policy rules
- get: Get one rule (requires: id)
- create: Create a private-app rule (requires: data)
- update: Partially update a rule (requires: id, data)
- delete: Delete a rule (requires: id)
- groups: List policy groups

Fields of data for create:
- name, policy_group_id (group ID or name): required
- private_app_names and/or private_app_tags: at least one entry
- action: "allow" (default) or "block"
- users, user_groups, access_methods ("Client", "Clientless")
- enabled (default true), description, priority: "top" or "bottom" (default)

Examples:
- {"action": "create", "data": {"name": "dev access", "policy_group_id": "Default",
   "private_app_names": ["gitlab"], "user_groups": ["engineering"]}}
""",
        domain=ToolDomain.POLICY,
        handler="handle_policy_rules",
        category="Policy",
        tags=["policy", "rules"],
        input_schema=ToolInputSchema(
            properties={
                "action": _action(POLICY_RULE_ACTIONS),
                "id": {**_IDENTIFIER, "description": "Rule ID or name (for: get, update, delete)"},
                "data": {"type": "object", "description": "Rule draft (for: create) or rule fields (for: update)"},
            },
            required=["action"],
        ),
    ),
    NPATool(
        name="npa_policy_groups",
        description="""NPA policy groups.

Actions:
- list: List policy groups
- get: Get one group (requires: id)
- create: Create a group (requires: data.group_name)
- update: Partially update a group (requires: id, data)
- delete: Delete a group (requires: id)
""",
        domain=ToolDomain.POLICY,
        handler="handle_policy_groups",
        category="Policy",
        tags=["policy", "groups"],
        input_schema=ToolInputSchema(
            properties={
                "action": _action(POLICY_GROUP_ACTIONS),
                "id": {**_IDENTIFIER, "description": "Group ID or name (for: get, update, delete)"},
                "data": {"type": "object", "description": "Group fields (for: create, update)"},
            },
            required=["action"],
        ),
    ),
]


# =============================================================================
# Local Brokers
# =============================================================================

LOCAL_BROKER_TOOLS: list[NPATool] = [
    NPATool(
        name="npa_local_brokers",
        description="""Local broker management.

Actions:
- list: List local brokers
- get: Get one local broker (requires: id)
- create: Create a local broker (requires: data.name)
- update: Replace a local broker (requires: id, data.name)
- delete: Delete a local broker (requires: id)
- config: Get the global broker configuration
- update_config: Set the broker hostname (requires: data.hostname)
- registration_token: Generate a registration token (requires: id)
""",
        domain=ToolDomain.LOCAL_BROKERS,
        handler="handle_local_brokers",
        category="Infrastructure",
        tags=["local_brokers", "infrastructure"],
        input_schema=ToolInputSchema(
            properties={
                "action": _action(LOCAL_BROKER_ACTIONS),
                "id": {
                    **_IDENTIFIER,
                    "description": "Broker ID or name (for: get, update, delete, registration_token)",
                },
                "data": {"type": "object", "description": "Broker fields (for: create, update, update_config)"},
            },
            required=["action"],
        ),
    ),
]


# =============================================================================
# Upgrade Profiles
# =============================================================================

UPGRADE_PROFILE_TOOLS: list[NPATool] = [
    NPATool(
        name="npa_upgrade_profiles",
        description="""Publisher upgrade profile management.

Schedules accept a weekly cron expression ("0 2 * * SUN") or the
"DAY HH:MM" shorthand ("TUE 10:00"); both are stored as "M H * * DAY".

Actions:
- list: List upgrade profiles
- get: Get one profile (requires: id)
- create: Create a profile (requires: data.name, data.frequency or schedule)
- update: Replace a profile (requires: id, data)
- delete: Delete a profile (requires: id)
- schedule: Change only the schedule (requires: id, schedule)

Examples:
- {"action": "create", "data": {"name": "weekly"}, "schedule": "SUN 02:00"}
- {"action": "schedule", "id": "weekly", "schedule": "10 0 * * 2"}
""",
        domain=ToolDomain.UPGRADE_PROFILES,
        handler="handle_upgrade_profiles",
        category="Infrastructure",
        tags=["upgrade_profiles", "publishers", "schedule"],
        input_schema=ToolInputSchema(
            properties={
                "action": _action(UPGRADE_PROFILE_ACTIONS),
                "id": {**_IDENTIFIER, "description": "Profile ID or name (for: get, update, delete, schedule)"},
                "schedule": {
                    "type": "string",
                    "description": "Cron expression or 'DAY HH:MM' (for: create, schedule)",
                },
                "data": {
                    "type": "object",
                    "description": "Profile fields: name, enabled, docker_tag, frequency, timezone, release_type",
                },
            },
            required=["action"],
        ),
    ),
]


# =============================================================================
# Aggregated Exports
# =============================================================================

NPA_TOOLS: list[NPATool] = (
    PUBLISHER_TOOLS
    + PRIVATE_APP_TOOLS
    + POLICY_TOOLS
    + LOCAL_BROKER_TOOLS
    + UPGRADE_PROFILE_TOOLS
)

NPA_TOOLS_BY_NAME: dict[str, NPATool] = {tool.name: tool for tool in NPA_TOOLS}


def get_tool(name: str) -> NPATool | None:
    """Get a tool by name."""
    return NPA_TOOLS_BY_NAME.get(name)

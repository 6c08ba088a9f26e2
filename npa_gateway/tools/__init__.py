"""NPA tools package.

Action-based tools, one per resource domain:
- Infrastructure: npa_publishers, npa_local_brokers, npa_upgrade_profiles
- Private Access: npa_private_apps, npa_smart_delete
- Policy: npa_policy_rules, npa_policy_groups
"""

from .npa_tools import (
    LOCAL_BROKER_TOOLS,
    NPA_TOOLS,
    NPA_TOOLS_BY_NAME,
    POLICY_TOOLS,
    PRIVATE_APP_TOOLS,
    PUBLISHER_TOOLS,
    UPGRADE_PROFILE_TOOLS,
    get_tool,
)

__all__ = [
    "LOCAL_BROKER_TOOLS",
    "NPA_TOOLS",
    "NPA_TOOLS_BY_NAME",
    "POLICY_TOOLS",
    "PRIVATE_APP_TOOLS",
    "PUBLISHER_TOOLS",
    "UPGRADE_PROFILE_TOOLS",
    "get_tool",
]

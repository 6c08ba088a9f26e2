# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Typed view of NPA policy rules.

The backend returns rules with a loosely-shaped ``rule_data`` dict. Rules are
parsed here into a list of ``PolicyCondition`` variants keyed by ``kind``, and
``PolicyRule.to_rule_data()`` writes the app and tag conditions back while
leaving every other key of the original payload as it was.
"""

from typing import Annotated, Any, Iterable, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# =============================================================================
# Condition Variants
# =============================================================================


class PrivateAppCondition(BaseModel):
    """Reference to one private app.

    ``activities`` is None for a plain ``privateApps`` entry and a list for an
    activity-scoped ``privateAppsWithActivities`` entry.
    """

    kind: Literal["private_app"] = "private_app"
    app_name: str
    app_id: str | None = None
    activities: list[dict[str, Any]] | None = None

    @property
    def activity_scoped(self) -> bool:
        return self.activities is not None


class TagCondition(BaseModel):
    """Reference to a private app tag."""

    kind: Literal["tag"] = "tag"
    tag_name: str
    tag_id: str | None = None


class UserCondition(BaseModel):
    kind: Literal["user"] = "user"
    values: list[str] = Field(default_factory=list)


class GroupCondition(BaseModel):
    kind: Literal["group"] = "group"
    values: list[str] = Field(default_factory=list)


class LocationCondition(BaseModel):
    kind: Literal["location"] = "location"
    values: list[str] = Field(default_factory=list)
    negate: bool = False


class DeviceCondition(BaseModel):
    kind: Literal["device"] = "device"
    values: list[str] = Field(default_factory=list)


PolicyCondition = Annotated[
    Union[
        PrivateAppCondition,
        TagCondition,
        UserCondition,
        GroupCondition,
        LocationCondition,
        DeviceCondition,
    ],
    Field(discriminator="kind"),
]


def app_display_names(app_name: str) -> set[str]:
    """Names a rule may use for an app: bare and bracketed."""
    bare = app_name.strip()
    if bare.startswith("[") and bare.endswith("]"):
        bare = bare[1:-1]
    return {bare, f"[{bare}]"}


def _parse_enabled(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "enabled")
    return bool(value) if value is not None else True


def _string_list(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


# =============================================================================
# Policy Rule
# =============================================================================


class PolicyRule(BaseModel):
    """A policy rule with its conditions parsed into typed variants."""

    model_config = ConfigDict(frozen=True)

    rule_id: str
    rule_name: str
    enabled: bool = True
    conditions: list[PolicyCondition] = Field(default_factory=list)
    rule_data: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "PolicyRule":
        """Parse a raw ``/api/v2/policy/npa/rules`` item."""
        rule_data = dict(raw.get("rule_data") or {})
        conditions: list[PolicyCondition] = []

        for name in _string_list(rule_data.get("privateApps")):
            conditions.append(PrivateAppCondition(app_name=name))

        for entry in rule_data.get("privateAppsWithActivities") or []:
            app_id = entry.get("appId")
            conditions.append(
                PrivateAppCondition(
                    app_name=str(entry.get("appName", "")),
                    app_id=str(app_id) if app_id is not None else None,
                    activities=list(entry.get("activities") or []),
                )
            )

        tag_names = _string_list(rule_data.get("privateAppTags"))
        tag_ids = _string_list(rule_data.get("privateAppTagIds"))
        for index, tag_name in enumerate(tag_names):
            tag_id = tag_ids[index] if len(tag_ids) == len(tag_names) else None
            conditions.append(TagCondition(tag_name=tag_name, tag_id=tag_id))

        if rule_data.get("users"):
            conditions.append(UserCondition(values=_string_list(rule_data["users"])))
        if rule_data.get("userGroups"):
            conditions.append(GroupCondition(values=_string_list(rule_data["userGroups"])))
        if rule_data.get("net_location_obj"):
            conditions.append(
                LocationCondition(
                    values=_string_list(rule_data["net_location_obj"]),
                    negate=bool(rule_data.get("b_negateNetLocation", False)),
                )
            )
        if rule_data.get("device_classification_id"):
            conditions.append(DeviceCondition(values=_string_list(rule_data["device_classification_id"])))

        return cls(
            rule_id=str(raw.get("rule_id", raw.get("id", ""))),
            rule_name=str(raw.get("rule_name", raw.get("name", ""))),
            enabled=_parse_enabled(raw.get("enabled")),
            conditions=conditions,
            rule_data=rule_data,
        )

    @property
    def app_conditions(self) -> list[PrivateAppCondition]:
        return [c for c in self.conditions if isinstance(c, PrivateAppCondition)]

    @property
    def tag_conditions(self) -> list[TagCondition]:
        return [c for c in self.conditions if isinstance(c, TagCondition)]

    @property
    def is_empty(self) -> bool:
        """True when no app, activity-scoped app or tag is left."""
        return not self.app_conditions and not self.tag_conditions

    def without_conditions(
        self,
        drop: list[PrivateAppCondition | TagCondition],
        tag_ids: Iterable[str] = (),
    ) -> "PolicyRule":
        """Return a copy with the given conditions removed.

        ``tag_ids`` names extra tag IDs to drop from ``privateAppTagIds``. It
        matters when the IDs could not be paired with the tag names, so the
        dropped conditions carry no ID of their own.
        """
        remaining = [c for c in self.conditions if c not in drop]
        update: dict[str, Any] = {"conditions": remaining}

        dropped_ids = set(tag_ids) | {c.tag_id for c in drop if isinstance(c, TagCondition) and c.tag_id}
        if dropped_ids and "privateAppTagIds" in self.rule_data:
            kept = [i for i in _string_list(self.rule_data["privateAppTagIds"]) if i not in dropped_ids]
            update["rule_data"] = {**self.rule_data, "privateAppTagIds": kept}
        return self.model_copy(update=update)

    def to_rule_data(self) -> dict[str, Any]:
        """Rebuild the backend ``rule_data`` payload from the conditions."""
        data = dict(self.rule_data)
        plain = [c for c in self.app_conditions if not c.activity_scoped]
        scoped = [c for c in self.app_conditions if c.activity_scoped]
        tags = self.tag_conditions

        data["privateApps"] = [c.app_name for c in plain]
        if scoped or "privateAppsWithActivities" in data:
            data["privateAppsWithActivities"] = [
                {"appId": c.app_id, "appName": c.app_name, "activities": c.activities}
                for c in scoped
            ]
        if tags or "privateAppTags" in data:
            data["privateAppTags"] = [t.tag_name for t in tags]
        # Unpaired IDs keep the stored list, already filtered by without_conditions()
        if "privateAppTagIds" in data and all(t.tag_id is not None for t in tags):
            data["privateAppTagIds"] = [t.tag_id for t in tags]
        return data

    def to_update_payload(self) -> dict[str, Any]:
        """Body for ``PATCH /api/v2/policy/npa/rules/{id}``."""
        return {"rule_name": self.rule_name, "rule_data": self.to_rule_data()}


# =============================================================================
# Rule Creation
# =============================================================================


class PolicyRuleDraft(BaseModel):
    """Simplified input for creating a private-app policy rule."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    description: str | None = None
    enabled: bool = True
    action: Literal["allow", "block"] = "allow"
    policy_group_id: str
    private_app_names: list[str] = Field(default_factory=list)
    private_app_tags: list[str] = Field(default_factory=list)
    users: list[str] = Field(default_factory=list)
    user_groups: list[str] = Field(default_factory=list)
    access_methods: list[Literal["Client", "Clientless"]] = Field(default_factory=list)
    priority: Literal["top", "bottom"] = "bottom"

    @field_validator("policy_group_id", mode="before")
    @classmethod
    def coerce_group_id(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) and not isinstance(v, bool) else v

    @model_validator(mode="after")
    def require_target(self) -> "PolicyRuleDraft":
        if not self.private_app_names and not self.private_app_tags:
            raise ValueError("a rule needs at least one private app or tag")
        return self

    def to_api_payload(self) -> dict[str, Any]:
        """Body for ``POST /api/v2/policy/npa/rules``."""
        rule_data: dict[str, Any] = {
            "policy_type": "private-app",
            "json_version": 3,
            "version": 1,
            "match_criteria_action": {"action_name": self.action},
            "userType": "user",
        }
        if self.private_app_names:
            rule_data["privateApps"] = list(self.private_app_names)
        if self.private_app_tags:
            rule_data["privateAppTags"] = list(self.private_app_tags)
        if self.user_groups:
            rule_data["userGroups"] = list(self.user_groups)
        if self.users:
            rule_data["users"] = list(self.users)
        if self.access_methods:
            rule_data["access_method"] = list(self.access_methods)

        payload: dict[str, Any] = {
            "rule_name": self.name,
            "enabled": "1" if self.enabled else "0",
            "group_id": self.policy_group_id,
            "rule_data": rule_data,
            "rule_order": {"order": self.priority},
        }
        if self.description is not None:
            payload["description"] = self.description
        return payload

# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Policy dependency analysis for private apps.

Finds every policy rule that references an application, either directly
(plain or activity-scoped app entries) or through a tag the application
carries, and classifies each reference. Rules are always read without the
response cache because cleanup may have changed them seconds earlier.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable

import structlog

from ..errors import HttpError, NotFoundError
from ..models import (
    CleanupAction,
    DeletionPlan,
    DependencyAnalysis,
    DeviceCondition,
    GroupCondition,
    LocationCondition,
    PolicyReference,
    PolicyRule,
    PrivateAppCondition,
    ReferenceType,
    SmartDeleteOptions,
    TagCondition,
    UserCondition,
    app_display_names,
)
from .resources import ResourceAPI

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AppIdentity:
    """Everything a rule may use to point at one application."""

    app_id: str
    app_name: str
    ids: frozenset[str]
    tag_names: tuple[str, ...] = ()
    tag_ids: tuple[str, ...] = ()
    tag_id_pairs: tuple[tuple[str, str], ...] = ()

    @classmethod
    def from_api(cls, app_id: str, payload: dict[str, Any]) -> "AppIdentity":
        ids = {str(app_id)}
        for key in ("app_id", "id"):
            if payload.get(key) is not None:
                ids.add(str(payload[key]))
        tags = payload.get("tags") or []
        return cls(
            app_id=str(app_id),
            app_name=str(payload.get("app_name") or payload.get("name") or app_id),
            ids=frozenset(ids),
            tag_names=tuple(str(t["tag_name"]) for t in tags if t.get("tag_name")),
            tag_ids=tuple(str(t["tag_id"]) for t in tags if t.get("tag_id") is not None),
            tag_id_pairs=tuple(
                (str(t["tag_name"]), str(t["tag_id"]))
                for t in tags
                if t.get("tag_name") and t.get("tag_id") is not None
            ),
        )

    @property
    def display_names(self) -> set[str]:
        return app_display_names(self.app_name)

    def matches_app(self, condition: PrivateAppCondition) -> bool:
        if condition.app_id is not None and condition.app_id in self.ids:
            return True
        return condition.app_name in self.display_names

    def matches_tag(self, condition: TagCondition) -> bool:
        if condition.tag_id is not None and condition.tag_id in self.tag_ids:
            return True
        return condition.tag_name in self.tag_names

    def ids_for_tags(self, names: Iterable[str]) -> set[str]:
        """IDs of the app's own tags with the given names."""
        wanted = set(names)
        return {tag_id for name, tag_id in self.tag_id_pairs if name in wanted}


@dataclass
class RuleCleanup:
    """Planned change for one rule."""

    rule: PolicyRule
    action: CleanupAction
    review_tags: list[str] = field(default_factory=list)


# =============================================================================
# Pure classification
# =============================================================================


def find_references(rule: PolicyRule, app: AppIdentity) -> tuple[list[PrivateAppCondition], list[TagCondition]]:
    """Return the app and tag conditions of ``rule`` that point at ``app``."""
    direct: list[PrivateAppCondition] = []
    tags: list[TagCondition] = []
    for condition in rule.conditions:
        if isinstance(condition, PrivateAppCondition):
            if app.matches_app(condition):
                direct.append(condition)
        elif isinstance(condition, TagCondition):
            if app.matches_tag(condition):
                tags.append(condition)
        elif isinstance(condition, (UserCondition, GroupCondition, LocationCondition, DeviceCondition)):
            continue
        else:
            raise TypeError(f"Unhandled policy condition kind: {type(condition).__name__}")
    return direct, tags


def classify_reference(rule: PolicyRule, app: AppIdentity) -> PolicyReference | None:
    """Classify how ``rule`` references ``app``; None when it does not."""
    direct, tags = find_references(rule, app)
    if not direct and not tags:
        return None

    if direct and tags:
        reference_type = ReferenceType.MIXED
    elif direct:
        reference_type = ReferenceType.DIRECT
    else:
        reference_type = ReferenceType.TAG

    can_safely_remove = (
        reference_type == ReferenceType.DIRECT and rule.without_conditions(direct).is_empty
    )
    return PolicyReference(
        policy_id=rule.rule_id,
        policy_name=rule.rule_name,
        reference_type=reference_type,
        can_safely_remove=can_safely_remove,
        requires_manual_cleanup=reference_type != ReferenceType.DIRECT,
        matched_tags=[t.tag_name for t in tags],
    )


def plan_rule_cleanup(
    rule: PolicyRule,
    app: AppIdentity,
    reference_type: ReferenceType,
    shared_tags: set[str],
) -> RuleCleanup:
    """Work out what cleanup does to one rule.

    Direct entries are always removed. A matched tag is stripped only when
    no other application carries it; shared tags stay and are reported for
    manual review. A rule left with no app or tag condition is deleted.
    """
    direct, tags = find_references(rule, app)
    updated = rule
    if reference_type in (ReferenceType.DIRECT, ReferenceType.MIXED):
        updated = updated.without_conditions(direct)

    review_tags: list[str] = []
    if reference_type in (ReferenceType.TAG, ReferenceType.MIXED):
        strip = [t for t in tags if t.tag_name not in shared_tags]
        review_tags = [t.tag_name for t in tags if t.tag_name in shared_tags]
        updated = updated.without_conditions(strip, tag_ids=app.ids_for_tags(t.tag_name for t in strip))

    if updated.is_empty:
        action = CleanupAction.DELETED
    elif updated.conditions != rule.conditions:
        action = CleanupAction.UPDATED
    else:
        action = CleanupAction.REQUIRES_MANUAL_REVIEW
    return RuleCleanup(rule=updated, action=action, review_tags=review_tags)


# =============================================================================
# Analyzer
# =============================================================================


class PolicyDependencyAnalyzer:
    """Discovers and classifies policy references to a private app."""

    def __init__(self, resources: ResourceAPI):
        self.resources = resources

    async def load_app(self, app_id: str) -> AppIdentity:
        """Fetch the app.

        Raises:
            NotFoundError: the backend answered 404
        """
        try:
            payload = await self.resources.get_private_app(app_id, use_cache=False)
        except HttpError as e:
            if e.status == 404:
                raise NotFoundError(
                    f"Private app not found: {app_id}",
                    resource_type="private_app",
                    identifier=str(app_id),
                ) from e
            raise
        return AppIdentity.from_api(app_id, payload or {})

    async def analyze(self, app_id: str, app: AppIdentity | None = None) -> DependencyAnalysis:
        """Return every rule currently referencing the app."""
        app = app or await self.load_app(app_id)
        raw_rules = await self.resources.list_policy_rules(use_cache=False)

        affected: list[PolicyReference] = []
        rules: dict[str, PolicyRule] = {}
        for raw in raw_rules:
            rule = PolicyRule.from_api(raw)
            reference = classify_reference(rule, app)
            if reference is not None:
                affected.append(reference)
                rules[rule.rule_id] = rule

        analysis = DependencyAnalysis(
            app_id=app.app_id,
            app_name=app.app_name,
            app_tags=list(app.tag_names),
            has_direct_references=any(
                r.reference_type in (ReferenceType.DIRECT, ReferenceType.MIXED) for r in affected
            ),
            has_tag_based_references=any(
                r.reference_type in (ReferenceType.TAG, ReferenceType.MIXED) for r in affected
            ),
            affected_policies=affected,
            rules=rules,
        )
        logger.info(
            "Analyzed policy dependencies",
            app_id=app.app_id,
            rules_scanned=len(raw_rules),
            affected=len(affected),
        )
        return analysis

    async def shared_tags(self, app: AppIdentity) -> set[str]:
        """Tags of ``app`` still carried by any other application.

        The app being deleted is excluded by ID, not by count.
        """
        if not app.tag_names:
            return set()
        wanted = set(app.tag_names)
        shared: set[str] = set()
        for other in await self.resources.list_private_apps(use_cache=False):
            other_id = other.get("app_id", other.get("id"))
            if other_id is not None and str(other_id) in app.ids:
                continue
            for tag in other.get("tags") or []:
                name = tag.get("tag_name")
                if name in wanted:
                    shared.add(name)
        return shared

    def validate(self, analysis: DependencyAnalysis, options: SmartDeleteOptions) -> DeletionPlan:
        """Turn an analysis into warnings, blockers and recommendations."""
        plan = DeletionPlan(
            app_id=analysis.app_id,
            app_name=analysis.app_name,
            affected_policies=analysis.affected_policies,
        )

        if not analysis.affected_policies:
            plan.recommendations.append("No policy references this app; it can be deleted directly")
            return plan

        for ref in analysis.affected_policies:
            if ref.can_safely_remove:
                plan.recommendations.append(
                    f"Policy '{ref.policy_name}' only references this app and will be deleted"
                )
            elif ref.reference_type == ReferenceType.DIRECT:
                plan.warnings.append(f"Policy '{ref.policy_name}' will be updated to remove this app")
            else:
                plan.warnings.append(
                    f"Policy '{ref.policy_name}' references this app through tags "
                    f"{', '.join(ref.matched_tags)}; tags still used by other apps are left for manual review"
                )

        if not options.cleanup_orphaned_policies:
            if options.force:
                plan.warnings.append(
                    f"force=true: {len(analysis.affected_policies)} policies will keep references to a deleted app"
                )
            else:
                for ref in analysis.affected_policies:
                    plan.blockers.append(
                        f"Policy '{ref.policy_name}' (ID: {ref.policy_id}) references this app "
                        f"({ref.reference_type.value})"
                    )
                plan.recommendations.append(
                    "Enable cleanup_orphaned_policies to clean these policies, or pass force=true"
                )
        return plan

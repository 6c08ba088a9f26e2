# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Models for private app dependency analysis and smart deletion."""

from enum import Enum

from pydantic import BaseModel, Field

from .policy import PolicyRule


class ReferenceType(str, Enum):
    """How a policy rule reaches the application."""

    DIRECT = "direct"  # by app name or ID, plain or activity-scoped
    TAG = "tag"  # through a tag the app carries
    MIXED = "mixed"


class CleanupAction(str, Enum):
    """What cleanup did (or would do) to one rule."""

    UPDATED = "updated"
    DELETED = "deleted"
    REQUIRES_MANUAL_REVIEW = "requires_manual_review"


class DeletionOutcome(str, Enum):
    """Expected end states of a smart delete request."""

    DELETED = "deleted"
    DRY_RUN = "dry_run"
    BLOCKED = "blocked"


# =============================================================================
# Analysis
# =============================================================================


class PolicyReference(BaseModel):
    """One policy rule that references the application."""

    policy_id: str
    policy_name: str
    reference_type: ReferenceType
    can_safely_remove: bool = Field(
        False, description="Direct-only rule that would reference nothing once the app is removed"
    )
    requires_manual_cleanup: bool = Field(
        False, description="Rule reaches the app through tags that may be shared"
    )
    matched_tags: list[str] = Field(default_factory=list)


class DependencyAnalysis(BaseModel):
    """Fresh snapshot of every rule that references an application."""

    app_id: str
    app_name: str
    app_tags: list[str] = Field(default_factory=list)
    has_direct_references: bool = False
    has_tag_based_references: bool = False
    affected_policies: list[PolicyReference] = Field(default_factory=list)
    rules: dict[str, PolicyRule] = Field(default_factory=dict, exclude=True)

    @property
    def policy_names(self) -> list[str]:
        return [p.policy_name for p in self.affected_policies]


class SmartDeleteOptions(BaseModel):
    """Caller options for a smart delete."""

    force: bool = False
    cleanup_orphaned_policies: bool = True
    dry_run: bool = False


class DeletionPlan(BaseModel):
    """Validation report built before any mutation."""

    app_id: str
    app_name: str
    warnings: list[str] = Field(default_factory=list)
    blockers: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    affected_policies: list[PolicyReference] = Field(default_factory=list)
    cleaned_policies: list["CleanedPolicy"] = Field(default_factory=list)

    @property
    def is_blocked(self) -> bool:
        return bool(self.blockers)


class DeletionValidation(BaseModel):
    """Result of the standalone validation call."""

    is_valid: bool
    warnings: list[str] = Field(default_factory=list)
    blockers: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


# =============================================================================
# Results
# =============================================================================


class CleanedPolicy(BaseModel):
    """A rule cleanup that ran (or would run, in a dry run)."""

    policy_id: str
    policy_name: str
    action: CleanupAction
    reference_type: ReferenceType | None = None
    review_tags: list[str] = Field(default_factory=list)


class DryRunPreview(BaseModel):
    would_delete_app: bool
    would_cleanup_policies: list[CleanedPolicy] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class SmartDeleteResult(BaseModel):
    """Outcome of a smart delete. Blocked requests are returned, not raised."""

    outcome: DeletionOutcome
    success: bool
    app_id: str
    app_name: str
    cleaned_policies: list[CleanedPolicy] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    blockers: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    dry_run_preview: DryRunPreview | None = None


DeletionPlan.model_rebuild()

# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Cascading ("smart") deletion of private apps.

A request moves through these states:

    Validating -> DryRunReport
               -> Blocked
               -> Cleaning -> Deleting -> Done

Blocked and dry-run requests are returned as results and never call a
mutating endpoint. A delete that would leave rules pointing at the app through
shared tags is refused before any rule is changed.

Cleanup is not transactional: a failure on one rule is recorded as a warning
and the remaining rules are still processed. Re-running a deletion after a
partial failure is safe, because rules that were already cleaned no longer
show up in the analysis.
"""

import structlog

from ..errors import DeletionFailedError, DependencyRemainingError
from ..models import (
    CleanedPolicy,
    CleanupAction,
    DeletionOutcome,
    DeletionPlan,
    DeletionValidation,
    DependencyAnalysis,
    DryRunPreview,
    PolicyReference,
    SmartDeleteOptions,
    SmartDeleteResult,
)
from .dependency_analyzer import AppIdentity, PolicyDependencyAnalyzer, RuleCleanup, plan_rule_cleanup
from .resources import ResourceAPI

logger = structlog.get_logger(__name__)


class SmartDeleter:
    """Deletes a private app after cleaning the policy rules that use it."""

    def __init__(
        self,
        resources: ResourceAPI,
        analyzer: PolicyDependencyAnalyzer | None = None,
    ):
        self.resources = resources
        self.analyzer = analyzer or PolicyDependencyAnalyzer(resources)

    async def analyze(self, app_id: str) -> DependencyAnalysis:
        return await self.analyzer.analyze(app_id)

    async def validate_deletion(
        self,
        app_id: str,
        options: SmartDeleteOptions | None = None,
    ) -> DeletionValidation:
        """Report what would block or complicate a deletion."""
        options = options or SmartDeleteOptions()
        analysis = await self.analyzer.analyze(app_id)
        plan = self.analyzer.validate(analysis, options)
        return DeletionValidation(
            is_valid=not plan.is_blocked,
            warnings=plan.warnings,
            blockers=plan.blockers,
            recommendations=plan.recommendations,
        )

    async def delete(
        self,
        app_id: str,
        options: SmartDeleteOptions | None = None,
    ) -> SmartDeleteResult:
        """Run a smart delete.

        Returns:
            SmartDeleteResult with outcome ``deleted``, ``dry_run`` or ``blocked``

        Raises:
            NotFoundError: the app does not exist
            DependencyRemainingError: force was not set and references would
                remain. Shared tags are detected before any rule is touched;
                a rule update that fails is detected after cleanup, and the
                cleanup that already ran is kept.
            DeletionFailedError: the final app delete call failed
        """
        options = options or SmartDeleteOptions()
        log = logger.bind(app_id=str(app_id))

        # Validating
        app = await self.analyzer.load_app(app_id)
        analysis = await self.analyzer.analyze(app_id, app=app)
        plan = self.analyzer.validate(analysis, options)

        if options.dry_run:
            log.info("Smart delete dry run", affected=len(analysis.affected_policies))
            return await self._dry_run(app, analysis, plan, options)

        if plan.is_blocked:
            log.warning("Smart delete blocked", blockers=len(plan.blockers))
            return SmartDeleteResult(
                outcome=DeletionOutcome.BLOCKED,
                success=False,
                app_id=app.app_id,
                app_name=app.app_name,
                warnings=plan.warnings,
                blockers=plan.blockers,
                recommendations=plan.recommendations,
            )

        # Cleaning
        if options.cleanup_orphaned_policies and analysis.affected_policies:
            cleanups = await self._plan_cleanups(app, analysis, plan)
            residual = [ref.policy_name for ref, cleanup in cleanups if cleanup.review_tags]
            if residual and not options.force:
                # Shared tags would keep these rules pointing at the app; refuse before mutating
                log.warning("Shared tags keep references after cleanup", policies=residual)
                raise DependencyRemainingError(app.app_name, residual)
            await self._clean(app, cleanups, plan)

        # Deleting
        remaining = await self.analyzer.analyze(app_id, app=app)
        if remaining.affected_policies:
            if not options.force:
                log.warning("References remain after cleanup", policies=remaining.policy_names)
                raise DependencyRemainingError(app.app_name, remaining.policy_names)
            plan.warnings.append(
                "force=true: deleting while still referenced by: " + ", ".join(remaining.policy_names)
            )

        try:
            await self.resources.delete_private_app(app.app_id)
        except Exception as e:
            log.error("Private app delete failed", error=str(e))
            raise DeletionFailedError(app.app_id, str(e)) from e

        log.info(
            "Private app deleted",
            cleaned=len(plan.cleaned_policies),
            warnings=len(plan.warnings),
        )
        return SmartDeleteResult(
            outcome=DeletionOutcome.DELETED,
            success=True,
            app_id=app.app_id,
            app_name=app.app_name,
            cleaned_policies=plan.cleaned_policies,
            warnings=plan.warnings,
            recommendations=plan.recommendations,
        )

    # =========================================================================
    # States
    # =========================================================================

    async def _shared_tags(self, app: AppIdentity, analysis: DependencyAnalysis, plan: DeletionPlan) -> set[str]:
        if not analysis.has_tag_based_references:
            return set()
        try:
            return await self.analyzer.shared_tags(app)
        except Exception as e:
            # Without the listing every tag has to be treated as shared
            logger.warning("Could not list other apps for tag check", app_id=app.app_id, error=str(e))
            plan.warnings.append(f"Could not check tag usage by other apps ({e}); tags left untouched")
            return set(app.tag_names)

    async def _dry_run(
        self,
        app: AppIdentity,
        analysis: DependencyAnalysis,
        plan: DeletionPlan,
        options: SmartDeleteOptions,
    ) -> SmartDeleteResult:
        """Preview cleanup using reads only."""
        would_cleanup: list[CleanedPolicy] = []
        residual: list[str] = []

        if options.cleanup_orphaned_policies:
            for ref, cleanup in await self._plan_cleanups(app, analysis, plan):
                would_cleanup.append(
                    CleanedPolicy(
                        policy_id=ref.policy_id,
                        policy_name=ref.policy_name,
                        action=cleanup.action,
                        reference_type=ref.reference_type,
                        review_tags=cleanup.review_tags,
                    )
                )
                if cleanup.review_tags:
                    residual.append(ref.policy_name)
        else:
            residual = analysis.policy_names

        warnings = list(plan.warnings)
        if residual and not options.force:
            warnings.append(
                "Deletion would stop after cleanup; still referenced by: " + ", ".join(residual)
            )

        return SmartDeleteResult(
            outcome=DeletionOutcome.DRY_RUN,
            success=True,
            app_id=app.app_id,
            app_name=app.app_name,
            warnings=warnings,
            blockers=plan.blockers,
            recommendations=plan.recommendations,
            dry_run_preview=DryRunPreview(
                would_delete_app=not plan.is_blocked and (options.force or not residual),
                would_cleanup_policies=would_cleanup,
                warnings=warnings,
            ),
        )

    async def _plan_cleanups(
        self,
        app: AppIdentity,
        analysis: DependencyAnalysis,
        plan: DeletionPlan,
    ) -> list[tuple[PolicyReference, RuleCleanup]]:
        """Work out the change to every affected rule without calling the backend for writes."""
        shared = await self._shared_tags(app, analysis, plan)
        return [
            (ref, plan_rule_cleanup(analysis.rules[ref.policy_id], app, ref.reference_type, shared))
            for ref in analysis.affected_policies
        ]

    async def _clean(
        self,
        app: AppIdentity,
        cleanups: list[tuple[PolicyReference, RuleCleanup]],
        plan: DeletionPlan,
    ) -> None:
        """Rewrite or delete each affected rule; failures become warnings."""
        for ref, cleanup in cleanups:
            rule = cleanup.rule
            try:
                if cleanup.action == CleanupAction.DELETED:
                    await self.resources.delete_policy_rule(rule.rule_id)
                elif cleanup.action == CleanupAction.UPDATED:
                    await self.resources.update_policy_rule(rule.rule_id, cleanup.rule.to_update_payload())
            except Exception as e:
                logger.warning(
                    "Policy cleanup failed",
                    app_id=app.app_id,
                    policy_id=rule.rule_id,
                    error=str(e),
                )
                plan.warnings.append(f"Failed to clean policy '{rule.rule_name}': {e}")
                continue

            plan.cleaned_policies.append(
                CleanedPolicy(
                    policy_id=rule.rule_id,
                    policy_name=rule.rule_name,
                    action=cleanup.action,
                    reference_type=ref.reference_type,
                    review_tags=cleanup.review_tags,
                )
            )
            if cleanup.review_tags:
                plan.warnings.append(
                    f"Policy '{rule.rule_name}' keeps tags shared with other apps "
                    f"({', '.join(cleanup.review_tags)}) and requires manual review"
                )
            logger.info(
                "Policy cleaned",
                app_id=app.app_id,
                policy_id=rule.rule_id,
                action=cleanup.action.value,
                reference_type=ref.reference_type.value,
            )

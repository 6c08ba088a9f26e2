# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Tests for cascading private app deletion."""

import pytest

from npa_gateway.errors import DeletionFailedError, DependencyRemainingError, NotFoundError
from npa_gateway.models import CleanupAction, DeletionOutcome, SmartDeleteOptions
from npa_gateway.services.resources import POLICY_RULES_PATH, PRIVATE_APPS_PATH

APP_PATH = f"{PRIVATE_APPS_PATH}/42"


@pytest.fixture
def gitlab(fake):
    return fake.add_app(42, "gitlab", tags=["eng"])


# =============================================================================
# Happy path
# =============================================================================


class TestDelete:
    """Test the Validating -> Cleaning -> Deleting path."""

    @pytest.mark.asyncio
    async def test_unreferenced_app_is_deleted(self, fake, deleter, gitlab):
        result = await deleter.delete("42")

        assert result.outcome == DeletionOutcome.DELETED
        assert result.success is True
        assert result.app_name == "gitlab"
        assert "42" not in fake.apps
        assert [(r.method, r.url.path) for r in fake.mutations] == [("DELETE", APP_PATH)]

    @pytest.mark.asyncio
    async def test_sole_reference_rule_is_deleted(self, fake, deleter, gitlab):
        fake.add_rule(1, "gitlab only", privateApps=["[gitlab]"], users=["alice"])

        result = await deleter.delete("42")

        assert result.outcome == DeletionOutcome.DELETED
        assert "1" not in fake.rules
        assert [c.action for c in result.cleaned_policies] == [CleanupAction.DELETED]

    @pytest.mark.asyncio
    async def test_shared_rule_is_updated(self, fake, deleter, gitlab):
        fake.add_app(43, "jira")
        fake.add_rule(1, "dev tools", privateApps=["[gitlab]", "[jira]"], users=["alice"])

        result = await deleter.delete("42")

        assert result.success is True
        assert fake.rules["1"]["rule_data"]["privateApps"] == ["[jira]"]
        assert fake.rules["1"]["rule_data"]["users"] == ["alice"]
        assert result.cleaned_policies[0].action == CleanupAction.UPDATED

    @pytest.mark.asyncio
    async def test_activity_scoped_reference_removed(self, fake, deleter, gitlab):
        fake.add_rule(
            1,
            "scoped",
            privateApps=["[jira]"],
            privateAppsWithActivities=[{"appId": 42, "appName": "[gitlab]", "activities": []}],
        )

        await deleter.delete("42")

        assert fake.rules["1"]["rule_data"]["privateAppsWithActivities"] == []
        assert fake.rules["1"]["rule_data"]["privateApps"] == ["[jira]"]

    @pytest.mark.asyncio
    async def test_unshared_tag_is_stripped(self, fake, deleter, gitlab):
        fake.add_app(43, "jira", tags=["ops"])
        fake.add_rule(1, "tagged", privateAppTags=["eng", "ops"])

        result = await deleter.delete("42")

        assert result.success is True
        assert fake.rules["1"]["rule_data"]["privateAppTags"] == ["ops"]

    @pytest.mark.asyncio
    async def test_missing_app(self, fake, deleter):
        with pytest.raises(NotFoundError):
            await deleter.delete("999")
        assert fake.mutations == []


# =============================================================================
# Shared tags
# =============================================================================


class TestSharedTags:
    """Tags carried by other apps are never stripped."""

    @pytest.mark.asyncio
    async def test_shared_tag_rule_left_untouched_and_delete_stops(self, fake, deleter, gitlab):
        fake.add_app(43, "jira", tags=["eng"])
        fake.add_rule(1, "eng apps", privateAppTags=["eng"])

        with pytest.raises(DependencyRemainingError) as exc_info:
            await deleter.delete("42")

        assert exc_info.value.policy_names == ["eng apps"]
        assert fake.rules["1"]["rule_data"]["privateAppTags"] == ["eng"]
        assert "42" in fake.apps
        assert fake.mutations == []

    @pytest.mark.asyncio
    async def test_shared_tag_with_force(self, fake, deleter, gitlab):
        fake.add_app(43, "jira", tags=["eng"])
        fake.add_rule(1, "eng apps", privateAppTags=["eng"])

        result = await deleter.delete("42", SmartDeleteOptions(force=True))

        assert result.outcome == DeletionOutcome.DELETED
        cleaned = result.cleaned_policies[0]
        assert cleaned.action == CleanupAction.REQUIRES_MANUAL_REVIEW
        assert cleaned.review_tags == ["eng"]
        assert fake.rules["1"]["rule_data"]["privateAppTags"] == ["eng"]
        assert any("manual review" in w for w in result.warnings)
        assert "42" not in fake.apps

    @pytest.mark.asyncio
    async def test_mixed_rule_with_shared_tag_needs_force(self, fake, deleter, gitlab):
        fake.add_app(43, "jira", tags=["eng"])
        fake.add_rule(1, "mixed", privateApps=["[gitlab]"], privateAppTags=["eng"])

        with pytest.raises(DependencyRemainingError) as exc_info:
            await deleter.delete("42")

        # Refused before any rule was touched
        assert exc_info.value.policy_names == ["mixed"]
        assert fake.mutations == []
        assert fake.rules["1"]["rule_data"]["privateApps"] == ["[gitlab]"]
        assert fake.rules["1"]["rule_data"]["privateAppTags"] == ["eng"]
        assert "42" in fake.apps

        result = await deleter.delete("42", SmartDeleteOptions(force=True))
        assert result.success is True
        assert fake.rules["1"]["rule_data"]["privateApps"] == []

    @pytest.mark.asyncio
    async def test_shared_tag_refusal_skips_unrelated_cleanup(self, fake, deleter, gitlab):
        fake.add_app(43, "jira", tags=["eng"])
        fake.add_rule(1, "gitlab only", privateApps=["[gitlab]"])
        fake.add_rule(2, "eng apps", privateAppTags=["eng"])

        with pytest.raises(DependencyRemainingError) as exc_info:
            await deleter.delete("42")

        assert exc_info.value.policy_names == ["eng apps"]
        assert "1" in fake.rules
        assert fake.mutations == []

    @pytest.mark.asyncio
    async def test_tag_listing_failure_keeps_tags(self, fake, deleter, gitlab):
        fake.add_rule(1, "eng apps", privateAppTags=["eng"])
        fake.fail("GET", PRIVATE_APPS_PATH, status=403)

        result = await deleter.delete("42", SmartDeleteOptions(force=True))

        assert fake.rules["1"]["rule_data"]["privateAppTags"] == ["eng"]
        assert any("Could not check tag usage" in w for w in result.warnings)


# =============================================================================
# Blocked and dry run
# =============================================================================


class TestBlockedAndDryRun:
    """Requests that must not mutate anything."""

    @pytest.mark.asyncio
    async def test_blocked_without_cleanup(self, fake, deleter, gitlab):
        fake.add_rule(1, "direct", privateApps=["[gitlab]"])

        result = await deleter.delete("42", SmartDeleteOptions(cleanup_orphaned_policies=False))

        assert result.outcome == DeletionOutcome.BLOCKED
        assert result.success is False
        assert result.blockers
        assert fake.mutations == []

    @pytest.mark.asyncio
    async def test_force_without_cleanup_leaves_rules(self, fake, deleter, gitlab):
        fake.add_rule(1, "direct", privateApps=["[gitlab]"])

        result = await deleter.delete(
            "42", SmartDeleteOptions(cleanup_orphaned_policies=False, force=True)
        )

        assert result.outcome == DeletionOutcome.DELETED
        assert "1" in fake.rules
        assert [(r.method, r.url.path) for r in fake.mutations] == [("DELETE", APP_PATH)]

    @pytest.mark.asyncio
    async def test_dry_run_never_mutates(self, fake, deleter, gitlab):
        fake.add_app(43, "jira", tags=["eng"])
        fake.add_rule(1, "direct", privateApps=["[gitlab]"])
        fake.add_rule(2, "eng apps", privateAppTags=["eng"])

        result = await deleter.delete("42", SmartDeleteOptions(dry_run=True))

        assert result.outcome == DeletionOutcome.DRY_RUN
        assert fake.mutations == []
        preview = result.dry_run_preview
        actions = {p.policy_name: p.action for p in preview.would_cleanup_policies}
        assert actions == {
            "direct": CleanupAction.DELETED,
            "eng apps": CleanupAction.REQUIRES_MANUAL_REVIEW,
        }
        assert preview.would_delete_app is False

    @pytest.mark.asyncio
    async def test_dry_run_clean_app(self, fake, deleter, gitlab):
        fake.add_rule(1, "direct", privateApps=["[gitlab]"])

        result = await deleter.delete("42", SmartDeleteOptions(dry_run=True))

        assert result.dry_run_preview.would_delete_app is True
        assert fake.mutations == []

    @pytest.mark.asyncio
    async def test_dry_run_reports_blockers(self, fake, deleter, gitlab):
        fake.add_rule(1, "direct", privateApps=["[gitlab]"])

        result = await deleter.delete(
            "42", SmartDeleteOptions(dry_run=True, cleanup_orphaned_policies=False)
        )

        assert result.outcome == DeletionOutcome.DRY_RUN
        assert result.blockers
        assert result.dry_run_preview.would_delete_app is False
        assert fake.mutations == []


# =============================================================================
# Failures
# =============================================================================


class TestFailures:
    """Partial failure handling."""

    @pytest.mark.asyncio
    async def test_rule_failure_becomes_warning(self, fake, deleter, gitlab):
        fake.add_app(43, "jira")
        fake.add_rule(1, "broken", privateApps=["[gitlab]", "[jira]"])
        fake.add_rule(2, "fine", privateApps=["[gitlab]", "[jira]"])
        fake.fail("PATCH", f"{POLICY_RULES_PATH}/1", status=400)

        with pytest.raises(DependencyRemainingError) as exc_info:
            await deleter.delete("42")

        assert exc_info.value.policy_names == ["broken"]
        assert fake.rules["2"]["rule_data"]["privateApps"] == ["[jira]"]
        assert "42" in fake.apps

    @pytest.mark.asyncio
    async def test_rule_failure_with_force_still_deletes(self, fake, deleter, gitlab):
        fake.add_app(43, "jira")
        fake.add_rule(1, "broken", privateApps=["[gitlab]", "[jira]"])
        fake.fail("PATCH", f"{POLICY_RULES_PATH}/1", status=400)

        result = await deleter.delete("42", SmartDeleteOptions(force=True))

        assert result.success is True
        assert any("Failed to clean policy 'broken'" in w for w in result.warnings)
        assert result.cleaned_policies == []

    @pytest.mark.asyncio
    async def test_rerun_after_partial_failure(self, fake, deleter, gitlab):
        fake.add_app(43, "jira")
        fake.add_rule(1, "broken", privateApps=["[gitlab]", "[jira]"])
        fake.fail("PATCH", f"{POLICY_RULES_PATH}/1", status=400)

        with pytest.raises(DependencyRemainingError):
            await deleter.delete("42")

        fake.failures.clear()
        result = await deleter.delete("42")

        assert result.success is True
        assert fake.rules["1"]["rule_data"]["privateApps"] == ["[jira]"]

    @pytest.mark.asyncio
    async def test_final_delete_failure(self, fake, deleter, gitlab):
        fake.fail("DELETE", APP_PATH, status=409)

        with pytest.raises(DeletionFailedError) as exc_info:
            await deleter.delete("42")

        assert exc_info.value.__cause__ is not None


class TestValidate:
    """Test validate_deletion()."""

    @pytest.mark.asyncio
    async def test_valid_when_cleanup_enabled(self, fake, deleter, gitlab):
        fake.add_rule(1, "direct", privateApps=["[gitlab]"])
        validation = await deleter.validate_deletion("42")
        assert validation.is_valid is True
        assert fake.mutations == []

    @pytest.mark.asyncio
    async def test_invalid_when_cleanup_disabled(self, fake, deleter, gitlab):
        fake.add_rule(1, "direct", privateApps=["[gitlab]"])
        validation = await deleter.validate_deletion(
            "42", SmartDeleteOptions(cleanup_orphaned_policies=False)
        )
        assert validation.is_valid is False
        assert validation.blockers

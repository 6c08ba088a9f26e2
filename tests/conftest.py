# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Pytest configuration and shared fixtures.

``FakeNetskope`` is an in-memory stand-in for the Netskope REST API, served
through ``httpx.MockTransport`` so the real ApiClient code path is exercised.
"""

import itertools
import json
import os
from typing import Any

import httpx
import pytest

# The application module builds settings at import time
os.environ.setdefault("NETSKOPE_BASE_URL", "https://tenant.goskope.com")
os.environ.setdefault("NETSKOPE_API_TOKEN", "test-token")

from npa_gateway.clients import ApiClient  # noqa: E402
from npa_gateway.config import clear_settings_cache, load_settings  # noqa: E402
from npa_gateway.services import ResourceAPI, SmartDeleter  # noqa: E402
from npa_gateway.services.resources import (  # noqa: E402
    LOCAL_BROKERS_PATH,
    POLICY_GROUPS_PATH,
    POLICY_RULES_PATH,
    PRIVATE_APPS_PATH,
    PUBLISHERS_PATH,
    UPGRADE_PROFILES_PATH,
)

BASE_URL = "https://tenant.goskope.com"

# path -> (store attribute, list key, id field)
COLLECTIONS = {
    PRIVATE_APPS_PATH: ("apps", "private_apps", "app_id"),
    POLICY_RULES_PATH: ("rules", "rules", "rule_id"),
    PUBLISHERS_PATH: ("publishers", "publishers", "publisher_id"),
    LOCAL_BROKERS_PATH: ("brokers", "local_brokers", "id"),
    UPGRADE_PROFILES_PATH: ("profiles", "upgrade_profiles", "id"),
    POLICY_GROUPS_PATH: ("policy_groups", "groups", "id"),
}


def _ok(data: Any = None) -> httpx.Response:
    body = {"status": "success"}
    if data is not None:
        body["data"] = data
    return httpx.Response(200, json=body)


class FakeNetskope:
    """Stateful fake of the Netskope resource endpoints."""

    def __init__(self):
        self.apps: dict[str, dict[str, Any]] = {}
        self.rules: dict[str, dict[str, Any]] = {}
        self.publishers: dict[str, dict[str, Any]] = {}
        self.brokers: dict[str, dict[str, Any]] = {}
        self.profiles: dict[str, dict[str, Any]] = {}
        self.policy_groups: dict[str, dict[str, Any]] = {}
        self.broker_config: dict[str, Any] = {"hostname": "broker.example.com"}
        self.upgrade_requests: list[str] = []
        self.requests: list[httpx.Request] = []
        self.failures: dict[tuple[str, str], int] = {}
        self._ids = itertools.count(1000)

    # -- seeding --------------------------------------------------------------

    def add_app(self, app_id: int, name: str, tags: list[str] | None = None) -> dict[str, Any]:
        app = {
            "app_id": app_id,
            "app_name": name,
            "host": f"{name}.internal",
            "tags": [{"tag_id": 500 + i, "tag_name": t} for i, t in enumerate(tags or [])],
        }
        self.apps[str(app_id)] = app
        return app

    def add_rule(self, rule_id: int, name: str, **rule_data: Any) -> dict[str, Any]:
        rule = {"rule_id": rule_id, "rule_name": name, "enabled": "1", "rule_data": rule_data}
        self.rules[str(rule_id)] = rule
        return rule

    def fail(self, method: str, path: str, status: int = 500) -> None:
        """Make every ``method path`` call answer with ``status``."""
        self.failures[(method, path)] = status

    # -- inspection -----------------------------------------------------------

    def calls(self, method: str | None = None, prefix: str = "") -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if (method is None or r.method == method) and r.url.path.startswith(prefix)
        ]

    @property
    def mutations(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method != "GET"]

    # -- transport ------------------------------------------------------------

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        method, path = request.method, request.url.path
        body = json.loads(request.content) if request.content else None

        status = self.failures.get((method, path))
        if status is not None:
            return httpx.Response(status, json={"status": "error", "message": "injected failure"})

        if path == f"{PRIVATE_APPS_PATH}/tags" and method == "GET":
            tags = {t["tag_name"]: t for app in self.apps.values() for t in app.get("tags", [])}
            return _ok({"tags": list(tags.values())})
        if path == f"{PRIVATE_APPS_PATH}/getpolicyinuse" and method == "POST":
            wanted = set(map(str, body["ids"]))
            return _ok([
                {"app_id": app_id, "policies": [
                    r["rule_name"]
                    for r in self.rules.values()
                    if self.apps[app_id]["app_name"] in r["rule_data"].get("privateApps", [])
                ]}
                for app_id in sorted(wanted & set(self.apps))
            ])
        routed = self._route_extras(method, path, body)
        if routed is not None:
            return routed

        for base, (attr, key, id_field) in COLLECTIONS.items():
            store: dict[str, dict[str, Any]] = getattr(self, attr)
            if path == base:
                if method == "GET":
                    return _ok({key: list(store.values())})
                if method == "POST":
                    item = {id_field: next(self._ids), **(body or {})}
                    store[str(item[id_field])] = item
                    return _ok(item)
            elif path.startswith(base + "/"):
                item_id = path[len(base) + 1:]
                if item_id not in store:
                    return httpx.Response(404, json={"status": "error", "message": "not found"})
                if method == "GET":
                    return _ok(store[item_id])
                if method in ("PATCH", "PUT"):
                    store[item_id] = {**store[item_id], **(body or {})}
                    return _ok(store[item_id])
                if method == "DELETE":
                    del store[item_id]
                    return _ok()

        return httpx.Response(405, json={"status": "error", "message": f"{method} {path}"})

    def _tag(self, name: str) -> dict[str, Any]:
        for app in self.apps.values():
            for tag in app.get("tags", []):
                if tag["tag_name"] == name:
                    return dict(tag)
        return {"tag_id": next(self._ids), "tag_name": name}

    def _route_extras(self, method: str, path: str, body: Any) -> httpx.Response | None:
        """Endpoints that do not follow the plain collection layout."""
        if path == f"{PRIVATE_APPS_PATH}/tags" and method in ("POST", "PUT", "PATCH"):
            app_ids = [str(body["id"])] if method == "POST" else [str(i) for i in body["ids"]]
            for app_id in app_ids:
                app = self.apps[app_id]
                current = [] if method == "PUT" else app.get("tags", [])
                names = {t["tag_name"] for t in current}
                app["tags"] = current + [self._tag(t["tag_name"]) for t in body["tags"] if t["tag_name"] not in names]
            return _ok()
        if path == f"{PRIVATE_APPS_PATH}/tags/getpolicyinuse" and method == "POST":
            tags = {
                str(t["tag_id"]): t["tag_name"]
                for app in self.apps.values()
                for t in app.get("tags", [])
            }
            return _ok([
                {"tag_id": tag_id, "policies": [
                    r["rule_name"]
                    for r in self.rules.values()
                    if tags[tag_id] in r["rule_data"].get("privateAppTags", [])
                ]}
                for tag_id in map(str, body["ids"])
                if tag_id in tags
            ])
        if path == f"{PRIVATE_APPS_PATH}/publishers" and method in ("PUT", "DELETE"):
            for app_id in map(str, body["private_app_ids"]):
                assigned = self.apps[app_id].setdefault("publishers", [])
                for publisher_id in map(str, body["publisher_ids"]):
                    if method == "PUT" and publisher_id not in assigned:
                        assigned.append(publisher_id)
                    elif method == "DELETE" and publisher_id in assigned:
                        assigned.remove(publisher_id)
            return _ok()

        if path == f"{PUBLISHERS_PATH}/bulk" and method == "PUT":
            ids = [str(i) for i in body["publishers"]["id"]]
            self.upgrade_requests.extend(ids)
            return _ok({"publishers": [{"publisher_id": i, "upgrade_request": True} for i in ids]})
        if path == f"{PUBLISHERS_PATH}/releases" and method == "GET":
            return _ok([{"name": "latest", "version": "2026.1.0"}])
        if path.startswith(f"{PUBLISHERS_PATH}/") and path.count("/") == 6:
            publisher_id, _, sub = path[len(PUBLISHERS_PATH) + 1:].partition("/")
            if sub == "apps" and method == "GET":
                return _ok([
                    {"app_id": app["app_id"], "app_name": app["app_name"]}
                    for app in self.apps.values()
                    if publisher_id in app.get("publishers", [])
                ])
            if sub == "registration_token" and method == "POST":
                return _ok({"token": f"pub-token-{publisher_id}"})

        if path == f"{LOCAL_BROKERS_PATH}/brokerconfig":
            if method == "PUT":
                self.broker_config = {**self.broker_config, **body}
            return _ok(self.broker_config)
        if path.startswith(f"{LOCAL_BROKERS_PATH}/") and path.endswith("/registrationtoken") and method == "POST":
            broker_id = path[len(LOCAL_BROKERS_PATH) + 1:].split("/")[0]
            return _ok({"token": f"lb-token-{broker_id}"})
        return None


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings():
    """Reset settings cache before each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def settings():
    """Settings pointing at the fake tenant, without retry delays."""
    return load_settings(
        base_url=BASE_URL,
        api_token="test-token",
        retry_attempts=3,
        retry_delay_ms=0,
    )


@pytest.fixture
def fake() -> FakeNetskope:
    return FakeNetskope()


@pytest.fixture
def api_client(settings, fake) -> ApiClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(fake.handler))
    return ApiClient(settings, http_client=http_client)


@pytest.fixture
def resources(api_client) -> ResourceAPI:
    return ResourceAPI(api_client)


@pytest.fixture
def deleter(resources) -> SmartDeleter:
    return SmartDeleter(resources)

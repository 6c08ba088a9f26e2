# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Resolve a human-supplied name or numeric ID to a resource.

Several resource types can only be fetched by numeric ID, while operators
refer to them by name. The resolver lists the collection and matches the
identifier against the ID field first, then against the name field.
"""

from typing import Any, Awaitable, Callable

import structlog

from ..errors import NotFoundError

logger = structlog.get_logger(__name__)

ListFn = Callable[[], Awaitable[list[dict[str, Any]]]]


class ResourceResolver:
    """Name/ID lookup over one resource collection."""

    def __init__(
        self,
        list_fn: ListFn,
        id_field: str = "id",
        name_field: str = "name",
        case_sensitive: bool = False,
        resource_type: str = "resource",
    ):
        self._list_fn = list_fn
        self.id_field = id_field
        self.name_field = name_field
        self.case_sensitive = case_sensitive
        self.resource_type = resource_type

    def _fold(self, value: str) -> str:
        return value if self.case_sensitive else value.lower()

    async def resolve(self, identifier: str | int) -> dict[str, Any]:
        """Return the resource matching ``identifier``.

        An exact ID match wins over any name match.

        Raises:
            NotFoundError: nothing matched; the message lists resources whose
                name contains the identifier or is contained in it
        """
        resources = await self._list_fn()
        wanted = str(identifier).strip()

        for resource in resources:
            if resource.get(self.id_field) is not None and str(resource[self.id_field]) == wanted:
                return resource

        if isinstance(identifier, str):
            folded = self._fold(wanted)
            for resource in resources:
                name = resource.get(self.name_field)
                if name is not None and self._fold(str(name)) == folded:
                    return resource

        suggestions = self._suggest(resources, wanted)
        logger.info(
            "Resource not found",
            resource_type=self.resource_type,
            identifier=wanted,
            suggestions=len(suggestions),
        )
        message = f"Resource not found with name: {wanted}"
        if suggestions:
            message += "\nDid you mean one of these?\n" + "\n".join(f"- {s}" for s in suggestions)
        raise NotFoundError(
            message,
            resource_type=self.resource_type,
            identifier=wanted,
            suggestions=suggestions,
        )

    def _suggest(self, resources: list[dict[str, Any]], wanted: str) -> list[str]:
        needle = self._fold(wanted)
        if not needle:
            return []
        suggestions = []
        for resource in resources:
            name = resource.get(self.name_field)
            if not name:
                continue
            folded = self._fold(str(name))
            if needle in folded or folded in needle:
                suggestions.append(f"{name} (ID: {resource.get(self.id_field)})")
        return suggestions

    async def resolve_id(self, identifier: str | int) -> str:
        """Return the stringified ID of the matching resource."""
        resource = await self.resolve(identifier)
        return str(resource[self.id_field])

    async def exists(self, identifier: str | int) -> bool:
        """Non-throwing variant of resolve()."""
        try:
            await self.resolve(identifier)
            return True
        except NotFoundError:
            return False


async def resolve(
    list_fn: ListFn,
    identifier: str | int,
    id_field: str = "id",
    name_field: str = "name",
    case_sensitive: bool = False,
) -> dict[str, Any]:
    """One-shot resolve without keeping a resolver around."""
    resolver = ResourceResolver(
        list_fn,
        id_field=id_field,
        name_field=name_field,
        case_sensitive=case_sensitive,
    )
    return await resolver.resolve(identifier)

"""Ability registry.

Categories and abilities are registered once during bootstrap, after which
the registry is sealed and only read. Re-registering an id is an error;
nothing is ever overwritten or removed.
"""

from __future__ import annotations

import copy
import dataclasses
import logging
import re
from collections.abc import Iterator

from content_abilities.abilities.errors import (
    AbilityNotFound,
    DuplicateAbilityId,
    DuplicateCategory,
    InvalidDefinition,
    RegistryError,
)
from content_abilities.abilities.schema import check_schema
from content_abilities.abilities.types import (
    AbilityCategory,
    AbilityDefinition,
    Visibility,
)

logger = logging.getLogger(__name__)

_CATEGORY_ID = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
_ABILITY_ID = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*/[a-z0-9]+(?:-[a-z0-9]+)*$")


class AbilityRegistry:
    """Registry of ability definitions, grouped by category."""

    def __init__(self) -> None:
        self._categories: dict[str, AbilityCategory] = {}
        self._abilities: dict[str, AbilityDefinition] = {}
        self._sealed = False

    @property
    def sealed(self) -> bool:
        return self._sealed

    def seal(self) -> None:
        """End the boot phase. Later registrations raise ``RegistryError``."""
        self._sealed = True
        logger.debug(
            "registry_sealed",
            extra={"abilities": len(self._abilities), "categories": len(self._categories)},
        )

    def _ensure_open(self) -> None:
        if self._sealed:
            raise RegistryError("registry is sealed; register during bootstrap")

    def register_category(
        self, category_id: str, label: str, description: str = ""
    ) -> AbilityCategory:
        self._ensure_open()
        if not _CATEGORY_ID.match(category_id):
            raise InvalidDefinition(
                f"category id must be lowercase words joined by dashes: {category_id!r}"
            )
        if category_id in self._categories:
            raise DuplicateCategory(f"category already registered: {category_id}")
        if not label.strip():
            raise InvalidDefinition(f"category '{category_id}' label is required")

        category = AbilityCategory(
            id=category_id, label=label.strip(), description=description.strip()
        )
        self._categories[category_id] = category
        logger.debug("category_registered", extra={"category": category_id})
        return category

    def register(self, definition: AbilityDefinition) -> AbilityDefinition:
        """Validate and store a definition.

        Schemas are deep-copied so later mutation by the caller cannot
        change what was registered.
        """
        self._ensure_open()
        ability_id = definition.id
        if not _ABILITY_ID.match(ability_id):
            raise InvalidDefinition(
                f"ability id must use category/name format (e.g. content/get-post): {ability_id!r}"
            )
        if ability_id in self._abilities:
            raise DuplicateAbilityId(f"ability id already registered: {ability_id}")
        if definition.category not in self._categories:
            raise InvalidDefinition(
                f"ability '{ability_id}' uses unknown category '{definition.category}'"
            )
        if not definition.label.strip():
            raise InvalidDefinition(f"ability '{ability_id}' label is required")
        if not definition.description.strip():
            raise InvalidDefinition(f"ability '{ability_id}' description is required")
        if not callable(definition.permission):
            raise InvalidDefinition(f"ability '{ability_id}' needs a permission predicate")
        if not callable(definition.execute):
            raise InvalidDefinition(f"ability '{ability_id}' needs an execute function")
        for hook in (definition.normalize_input, definition.precondition):
            if hook is not None and not callable(hook):
                raise InvalidDefinition(f"ability '{ability_id}' has a non-callable hook")

        check_schema(definition.input_schema, "input_schema")
        check_schema(definition.output_schema, "output_schema")
        input_kinds = definition.input_schema["type"]
        if "object" not in ([input_kinds] if isinstance(input_kinds, str) else input_kinds):
            raise InvalidDefinition(f"ability '{ability_id}' input_schema must be an object")

        stored = dataclasses.replace(
            definition,
            input_schema=copy.deepcopy(definition.input_schema),
            output_schema=copy.deepcopy(definition.output_schema),
        )
        self._abilities[ability_id] = stored
        logger.debug("ability_registered", extra={"ability": ability_id})
        return stored

    def get(self, ability_id: str) -> AbilityDefinition:
        try:
            return self._abilities[ability_id]
        except KeyError:
            raise AbilityNotFound(f"Ability '{ability_id}' not found") from None

    def has(self, ability_id: str) -> bool:
        return ability_id in self._abilities

    def get_category(self, category_id: str) -> AbilityCategory | None:
        return self._categories.get(category_id)

    def categories(self) -> list[AbilityCategory]:
        return [self._categories[key] for key in sorted(self._categories)]

    def list(
        self,
        *,
        category: str | None = None,
        visibility: Visibility | None = None,
    ) -> tuple[AbilityDefinition, ...]:
        """Definitions matching the filter, sorted by id.

        The result is a snapshot taken at call time and can be iterated any
        number of times.
        """
        return tuple(
            self._abilities[key]
            for key in sorted(self._abilities)
            if (category is None or self._abilities[key].category == category)
            and (visibility is None or self._abilities[key].visibility is visibility)
        )

    @property
    def ids(self) -> list[str]:
        return sorted(self._abilities)

    def __len__(self) -> int:
        return len(self._abilities)

    def __contains__(self, ability_id: object) -> bool:
        return ability_id in self._abilities

    def __iter__(self) -> Iterator[AbilityDefinition]:
        return iter(self.list())

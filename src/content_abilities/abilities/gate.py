"""Permission checks for ability invocation.

Predicates are re-evaluated on every invocation; a post's status or author
can change between calls, so nothing here is cached.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any

from content_abilities.abilities.types import CallerContext, PermissionPredicate

logger = logging.getLogger(__name__)

# Statuses that make a post visible beyond its editors. Requesting one of
# these needs the type's publish capability on top of the base capability.
PUBLISH_TIER_STATUSES = frozenset({"publish", "private", "future"})


async def authorize(
    predicate: PermissionPredicate,
    caller: CallerContext,
    input_data: dict[str, Any],
) -> bool:
    """Evaluate a permission predicate, fail-closed.

    Only a literal ``True`` allows the call. A predicate that raises is
    treated as a deny.
    """
    try:
        decision = predicate(caller, input_data)
        if inspect.isawaitable(decision):
            decision = await decision
    except Exception:
        logger.warning("permission_check_failed", exc_info=True)
        return False
    return decision is True


def requires_publish_capability(status: str | None) -> bool:
    """Whether requesting ``status`` escalates to the publish capability."""
    return status in PUBLISH_TIER_STATUSES

"""Creation order for collections that reference each other."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field

from pbmigrate.migrations.types import CollectionSchema

logger = logging.getLogger(__name__)


@dataclass
class DependencyOrder:
    """Result of dependency sorting.

    When ``cycle_warning`` is set the relation graph had a cycle: the
    collections that could be ordered come first, the rest follow in
    input order.
    """

    collections: list[CollectionSchema] = field(default_factory=list)
    cycle_warning: str | None = None

    @property
    def has_cycles(self) -> bool:
        return self.cycle_warning is not None


def sort_collections_by_dependency(
    collections: list[CollectionSchema],
) -> DependencyOrder:
    """Order collections so relation targets are created before their users.

    Only relations between the given collections count; targets outside
    the list are assumed to exist already. Self-relations are ignored.
    """
    by_name = {c.name: c for c in collections}
    dependents: dict[str, list[str]] = {c.name: [] for c in collections}
    in_degree: dict[str, int] = {c.name: 0 for c in collections}

    for collection in collections:
        for f in collection.fields:
            if f.relation is None:
                continue
            target = f.relation.collection
            if target not in by_name or target == collection.name:
                continue
            dependents[target].append(collection.name)
            in_degree[collection.name] += 1

    queue = deque(name for name, degree in in_degree.items() if degree == 0)
    ordered: list[CollectionSchema] = []

    while queue:
        name = queue.popleft()
        ordered.append(by_name[name])
        for dependent in dependents[name]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                queue.append(dependent)

    if len(ordered) == len(collections):
        return DependencyOrder(collections=ordered)

    remaining = len(collections) - len(ordered)
    warning = (
        f"Circular dependencies detected involving {remaining} collection(s). "
        "Migrations may fail if strict foreign key checks are enabled."
    )
    logger.warning(warning)

    seen = {c.name for c in ordered}
    ordered.extend(c for c in collections if c.name not in seen)
    return DependencyOrder(collections=ordered, cycle_warning=warning)

"""Cascade caller-defined context down a pre-ordered flat tree.

The flat tree lists every node after its parent and before any shallower
node of a later branch (the order ``TreeManager.flat_tree`` produces). The
active context is kept on an explicit ``(context, level)`` stack instead of
recursing, so deep trees do not hit the interpreter's recursion limit.
"""

from collections.abc import Callable, Iterable, Mapping
from typing import Any

from arborist.models import NodeId

Changeset = dict[str, Any]
Propagator = Callable[[Any, Mapping[str, Any]], Changeset | None]
ContextUpdater = Callable[[Any, Mapping[str, Any], Changeset | None], Any]


def propagate_changes(
    flat_tree: Iterable[Mapping[str, Any]],
    context: Any,
    propagator: Propagator,
    context_updater: ContextUpdater,
    *,
    id_column: str = "id",
    level_column: str = "node_level",
) -> dict[NodeId, Changeset]:
    """Walk ``flat_tree`` and collect the propagator's changesets by node id.

    ``propagator(context, node)`` returns a changeset for ``node`` or None.
    ``context_updater(context, node, changeset)`` returns a new context for
    ``node``'s descendants, or None to keep passing the current one down.
    """
    stack: list[tuple[Any, int]] = []
    context_level = 0
    changesets: dict[NodeId, Changeset] = {}

    for node in flat_tree:
        level = node[level_column]

        # Leaving a branch: restore the context of the nearest ancestor.
        while stack and level < context_level:
            context, context_level = stack.pop()

        changeset = propagator(context, node)
        if changeset is not None:
            changesets[node[id_column]] = changeset

        new_context = context_updater(context, node, changeset)
        if new_context is not None:
            stack.append((context, context_level))
            context = new_context
            context_level = level + 1

    return changesets

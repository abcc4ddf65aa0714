"""Tests for ancestor walking and descendant lookup."""

import pytest

from arborist.tree.errors import DataCorruptionError, NodeNotFoundError
from arborist.tree.manager import TreeManager
from tests.fixtures import build_tree, insert_raw


@pytest.fixture
async def tree(manager):
    """root -> a -> b -> c, root -> d."""
    return await build_tree(manager, {
        "root": None,
        "a": "root",
        "b": "a",
        "c": "b",
        "d": "root",
    })


class TestAncestors:
    async def test_chain_is_nearest_first(self, manager, tree):
        chain = await manager.ancestors(tree["c"])
        assert chain == [tree["b"], tree["a"], tree["root"]]

    async def test_root_has_no_ancestors(self, manager, tree):
        assert await manager.ancestors(tree["root"]) == []

    async def test_level_and_root(self, manager, tree):
        assert await manager.get_level(tree["c"]) == 3
        assert await manager.get_root(tree["c"]) == tree["root"]
        assert await manager.get_root(tree["root"]) == tree["root"]

    async def test_missing_node_raises(self, manager):
        with pytest.raises(NodeNotFoundError):
            await manager.ancestors(999)

    async def test_missing_link_raises(self, db, manager):
        orphan = await insert_raw(db, node_parent=404)
        child = await insert_raw(db, node_parent=orphan)
        with pytest.raises(NodeNotFoundError) as exc_info:
            await manager.ancestors(child)
        assert exc_info.value.node_id == 404

    async def test_cyclic_chain_hits_limit(self, db):
        manager = TreeManager(db, max_level=5)
        first = await insert_raw(db)
        second = await insert_raw(db, node_parent=first)
        await db.execute("UPDATE nodes SET node_parent = ? WHERE id = ?", (second, first))

        with pytest.raises(DataCorruptionError):
            await manager.ancestors(first)

    async def test_default_limit_is_200_levels(self, db, manager):
        parent = None
        for _ in range(201):
            parent = await insert_raw(db, node_parent=parent)
        # 200 ancestors is still acceptable
        assert await manager.get_level(parent) == 200

        deeper = await insert_raw(db, node_parent=parent)
        with pytest.raises(DataCorruptionError):
            await manager.get_level(deeper)


class TestDescendants:
    async def test_full_descendant_set(self, manager, tree):
        found = await manager.descendants(tree["root"])
        assert set(found) == {tree["a"], tree["b"], tree["c"], tree["d"]}
        assert len(found) == 4

    async def test_leaf_has_none(self, manager, tree):
        assert await manager.descendants(tree["c"]) == []

    async def test_missing_node_raises(self, manager):
        with pytest.raises(NodeNotFoundError):
            await manager.descendants(12345)

    async def test_traversal_is_bounded_by_cached_depth(self, db, manager, tree):
        """A stale depth truncates the result; refresh restores it."""
        await db.execute("UPDATE nodes SET node_depth = 1 WHERE id = ?", (tree["a"],))
        assert await manager.descendants(tree["a"]) == [tree["b"]]

        await manager.refresh()
        assert set(await manager.descendants(tree["a"])) == {tree["b"], tree["c"]}

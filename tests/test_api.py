"""Contract and integration tests for the node HTTP API.

Tests the endpoints end-to-end: create nodes, move them, delete, purge.
"""

from httpx import AsyncClient


async def create_node(client: AsyncClient, **body) -> dict:
    resp = await client.post("/api/nodes", json=body)
    assert resp.status_code == 201
    return resp.json()


async def create_chain(client: AsyncClient, *titles: str) -> list[dict]:
    """Create a parent -> child chain and return the nodes in order."""
    nodes: list[dict] = []
    parent_id = None
    for title in titles:
        node = await create_node(client, title=title, parent_id=parent_id)
        nodes.append(node)
        parent_id = node["node_id"]
    return nodes


class TestHealth:
    async def test_health(self, client):
        resp = await client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestCreateNode:
    async def test_create_root(self, client):
        node = await create_node(client, title="Home", data={"icon": "house"})
        assert node["parent_id"] is None
        assert node["level"] == 0
        assert node["depth"] == 0
        assert node["data"] == {"icon": "house"}

    async def test_create_child_updates_parent_depth(self, client):
        root, child = await create_chain(client, "Home", "About")
        assert child["level"] == 1

        resp = await client.get(f"/api/nodes/{root['node_id']}")
        assert resp.json()["depth"] == 1

    async def test_unknown_parent_is_404(self, client):
        resp = await client.post("/api/nodes", json={"title": "x", "parent_id": 555})
        assert resp.status_code == 404


class TestReadNodes:
    async def test_get_missing_is_404(self, client):
        resp = await client.get("/api/nodes/1")
        assert resp.status_code == 404

    async def test_list_is_hierarchical(self, client):
        root = await create_node(client, title="root")
        await create_node(client, title="b", parent_id=root["node_id"], position=2)
        a = await create_node(client, title="a", parent_id=root["node_id"], position=1)
        await create_node(client, title="a.1", parent_id=a["node_id"])

        resp = await client.get("/api/nodes")
        assert resp.status_code == 200
        assert [n["title"] for n in resp.json()] == ["root", "a", "a.1", "b"]

        resp = await client.get("/api/nodes", params={"root_id": a["node_id"]})
        assert [n["title"] for n in resp.json()] == ["a", "a.1"]

    async def test_descendants(self, client):
        nodes = await create_chain(client, "r", "a", "b")
        resp = await client.get(f"/api/nodes/{nodes[0]['node_id']}/descendants")
        assert resp.status_code == 200
        assert resp.json()["descendant_ids"] == sorted(n["node_id"] for n in nodes[1:])


class TestUpdateNode:
    async def test_patch_fields(self, client):
        node = await create_node(client, title="old", position=3)
        resp = await client.patch(
            f"/api/nodes/{node['node_id']}", json={"title": "new", "data": {"k": "v"}}
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["title"] == "new"
        assert data["position"] == 3
        assert data["data"] == {"k": "v"}

    async def test_move_subtree(self, client):
        r1, a, b = await create_chain(client, "r1", "a", "b")
        r2 = await create_node(client, title="r2")

        resp = await client.patch(f"/api/nodes/{a['node_id']}", json={"parent_id": r2["node_id"]})
        assert resp.status_code == 200
        assert resp.json()["level"] == 1

        old_root = (await client.get(f"/api/nodes/{r1['node_id']}")).json()
        new_root = (await client.get(f"/api/nodes/{r2['node_id']}")).json()
        assert old_root["depth"] == 0
        assert new_root["depth"] == 2

    async def test_cycle_is_400(self, client):
        r, a, b = await create_chain(client, "r", "a", "b")
        resp = await client.patch(f"/api/nodes/{r['node_id']}", json={"parent_id": b["node_id"]})
        assert resp.status_code == 400

    async def test_patch_missing_is_404(self, client):
        resp = await client.patch("/api/nodes/99", json={"title": "x"})
        assert resp.status_code == 404


class TestDeleteAndPurge:
    async def test_delete_cascades(self, client):
        r, a, b = await create_chain(client, "r", "a", "b")
        resp = await client.delete(f"/api/nodes/{a['node_id']}")
        assert resp.status_code == 204

        assert (await client.get(f"/api/nodes/{b['node_id']}")).status_code == 404
        assert (await client.get(f"/api/nodes/{r['node_id']}")).json()["depth"] == 0

    async def test_delete_then_purge_orphaned(self, client):
        r, a, b = await create_chain(client, "1", "2", "3")
        resp = await client.delete(
            f"/api/nodes/{a['node_id']}", params={"orphan_removal": "false"}
        )
        assert resp.status_code == 204
        assert (await client.get(f"/api/nodes/{b['node_id']}")).json()["parent_id"] == a["node_id"]

        resp = await client.post("/api/nodes/purge-orphaned")
        assert resp.status_code == 200
        assert resp.json() == {"removed": 1}

        listing = (await client.get("/api/nodes")).json()
        assert [n["node_id"] for n in listing] == [r["node_id"]]

    async def test_purge_keeps_node(self, client):
        r, a, b = await create_chain(client, "r", "a", "b")
        resp = await client.post(f"/api/nodes/{r['node_id']}/purge")
        assert resp.status_code == 200
        assert resp.json()["depth"] == 0
        assert (await client.get(f"/api/nodes/{a['node_id']}")).status_code == 404

    async def test_refresh(self, client):
        await create_chain(client, "r", "a")
        resp = await client.post("/api/nodes/refresh")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    async def test_delete_missing_is_404(self, client):
        resp = await client.delete("/api/nodes/12")
        assert resp.status_code == 404

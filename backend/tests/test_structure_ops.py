"""Tests for keyboard-style restructuring: indent, outdent, move up/down, and
the position maintenance endpoints."""

import pytest

from outliner.nodes.service import InvalidMoveError, InvalidParentError, NodeNotFoundError
from tests.fixtures import assert_tree_invariants, child_contents, create_test_node, make_node


class TestIndentOutdent:
    async def test_indent_under_previous_sibling(self, service, db):
        a = await make_node(service, "A")
        await make_node(service, "A1", parent_id=a.id)
        b = await make_node(service, "B")
        await service.toggle_node(a.id)

        moved = await service.indent_node(b.id)

        assert moved.parent_id == a.id
        assert moved.position == 1
        assert await child_contents(service, a.id) == ["A1", "B"]
        assert (await service.get_node(a.id)).is_expanded is True
        await assert_tree_invariants(db)

    async def test_indent_first_sibling_rejected(self, service):
        a = await make_node(service, "A")
        with pytest.raises(InvalidMoveError):
            await service.indent_node(a.id)

    async def test_outdent_follows_parent(self, service, db):
        a = await make_node(service, "A")
        child = await make_node(service, "child", parent_id=a.id)
        await make_node(service, "B")

        moved = await service.outdent_node(child.id)

        assert moved.parent_id is None
        assert moved.position == 1
        assert await child_contents(service, None) == ["A", "child", "B"]
        await assert_tree_invariants(db)

    async def test_outdent_root_rejected(self, service):
        a = await make_node(service, "A")
        with pytest.raises(InvalidMoveError):
            await service.outdent_node(a.id)

    async def test_indent_then_outdent_round_trip(self, service, db):
        await make_node(service, "A")
        b = await make_node(service, "B")
        await make_node(service, "C")

        await service.indent_node(b.id)
        await service.outdent_node(b.id)

        assert await child_contents(service, None) == ["A", "B", "C"]
        await assert_tree_invariants(db)

    async def test_unknown_node(self, service):
        with pytest.raises(NodeNotFoundError):
            await service.indent_node("missing")
        with pytest.raises(NodeNotFoundError):
            await service.outdent_node("missing")


class TestMoveUpDown:
    async def test_move_up_swaps(self, service, db):
        await make_node(service, "A")
        b = await make_node(service, "B")

        moved = await service.move_node_up(b.id)

        assert moved.position == 0
        assert await child_contents(service, None) == ["B", "A"]
        await assert_tree_invariants(db)

    async def test_move_down_swaps_across_gap(self, service, db):
        p = await make_node(service, "P")
        x = await make_node(service, "X", parent_id=p.id, position=0)
        await make_node(service, "Y", parent_id=p.id, position=4)

        moved = await service.move_node_down(x.id)

        assert moved.position == 4
        assert await child_contents(service, p.id) == ["Y", "X"]
        await assert_tree_invariants(db)

    async def test_edges_rejected(self, service):
        a = await make_node(service, "A")
        b = await make_node(service, "B")
        with pytest.raises(InvalidMoveError):
            await service.move_node_up(a.id)
        with pytest.raises(InvalidMoveError):
            await service.move_node_down(b.id)


class TestNavigation:
    async def test_node_above(self, service):
        a = await make_node(service, "A")
        b = await make_node(service, "B")
        assert (await service.get_node_above(b.id)).id == a.id
        assert await service.get_node_above(a.id) is None

    async def test_path_root_first(self, service):
        a = await make_node(service, "A")
        b = await make_node(service, "B", parent_id=a.id)
        c = await make_node(service, "C", parent_id=b.id)
        assert [n.id for n in await service.get_path(c.id)] == [a.id, b.id, c.id]
        assert [n.id for n in await service.get_path(a.id)] == [a.id]

    async def test_path_unknown(self, service):
        with pytest.raises(NodeNotFoundError):
            await service.get_path("missing")


class TestPositionMaintenance:
    async def test_shift_opens_gap(self, service, db):
        await make_node(service, "A")
        await make_node(service, "B")
        await make_node(service, "C")

        moved = await service.shift_positions(None, 1, 2)

        assert moved == 2
        roots = await service.list_roots()
        assert [n.position for n in roots] == [0, 3, 4]
        await assert_tree_invariants(db)

    async def test_shift_into_collision_rejected(self, service, db):
        await make_node(service, "A")
        await make_node(service, "B")

        with pytest.raises(InvalidMoveError):
            await service.shift_positions(None, 1, -1)
        assert [n.position for n in await service.list_roots()] == [0, 1]

    async def test_shift_unknown_parent(self, service):
        with pytest.raises(InvalidParentError):
            await service.shift_positions("missing", 0, 1)

    async def test_normalize_closes_gaps(self, service, db):
        p = await make_node(service, "P")
        await make_node(service, "X", parent_id=p.id, position=3)
        await make_node(service, "Y", parent_id=p.id, position=7)
        await make_node(service, "Z", parent_id=p.id, position=8)

        changed = await service.normalize_positions(p.id)

        assert changed == 3
        children = await service.get_children(p.id)
        assert [(c.content, c.position) for c in children] == [("X", 0), ("Y", 1), ("Z", 2)]
        assert await service.normalize_positions(p.id) == 0
        await assert_tree_invariants(db)


class TestStructureEndpoints:
    async def test_indent_outdent(self, client):
        a = await create_test_node(client, "A")
        b = await create_test_node(client, "B")

        resp = await client.post(f"/api/nodes/{b['id']}/indent")
        assert resp.status_code == 200
        assert resp.json()["parent_id"] == a["id"]

        resp = await client.post(f"/api/nodes/{b['id']}/outdent")
        assert resp.status_code == 200
        assert resp.json()["parent_id"] is None

        resp = await client.post(f"/api/nodes/{a['id']}/outdent")
        assert resp.status_code == 400

    async def test_move_up_down(self, client):
        a = await create_test_node(client, "A")
        b = await create_test_node(client, "B")

        resp = await client.post(f"/api/nodes/{b['id']}/move-up")
        assert resp.status_code == 200
        roots = (await client.get("/api/nodes")).json()
        assert [n["id"] for n in roots] == [b["id"], a["id"]]

        resp = await client.post(f"/api/nodes/{a['id']}/move-down")
        assert resp.status_code == 400

        resp = await client.post("/api/nodes/missing/move-up")
        assert resp.status_code == 404

    async def test_above_and_path(self, client):
        a = await create_test_node(client, "A")
        b = await create_test_node(client, "B")
        child = await create_test_node(client, "child", parent_id=b["id"])

        resp = await client.get(f"/api/nodes/{b['id']}/above")
        assert resp.json()["id"] == a["id"]
        assert (await client.get(f"/api/nodes/{a['id']}/above")).status_code == 404

        resp = await client.get(f"/api/nodes/{child['id']}/path")
        assert [n["content"] for n in resp.json()] == ["B", "child"]

    async def test_shift_and_normalize(self, client):
        parent = await create_test_node(client, "P")
        for name in ("x", "y"):
            await create_test_node(client, name, parent_id=parent["id"])

        resp = await client.post("/api/nodes/reorder/shift", json={
            "parentId": parent["id"], "position": 0, "shift": 5,
        })
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "nodesUpdated": 2}

        resp = await client.post("/api/nodes/normalize", json={"parentId": parent["id"]})
        assert resp.json()["nodesUpdated"] == 2
        children = (await client.get(f"/api/nodes/{parent['id']}/children")).json()
        assert [c["position"] for c in children] == [0, 1]

        resp = await client.post("/api/nodes/normalize", json={"parentId": "missing"})
        assert resp.status_code == 400

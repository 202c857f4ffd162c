"""Property-style tests: random operation sequences and concurrent mutations
must leave a well-formed forest behind."""

import asyncio
import random

import pytest

from outliner.nodes.schemas import ReorderRequest, UpdateNodeRequest
from outliner.nodes.service import (
    CyclicReparentError,
    InvalidMoveError,
    InvalidParentError,
    NodeNotFoundError,
)
from tests.fixtures import assert_tree_invariants, make_chain, make_node

_EXPECTED_REJECTIONS = (
    CyclicReparentError,
    InvalidMoveError,
    InvalidParentError,
    NodeNotFoundError,
)


async def _random_step(service, rng: random.Random, ids: list[str]) -> None:
    op = rng.choice(["create", "create", "reorder", "reorder", "delete", "indent", "outdent", "up"])
    target = rng.choice(ids) if ids else None

    if op == "create" or target is None:
        parent = rng.choice(ids + [None]) if ids else None
        position = rng.choice([None, 0, rng.randint(0, 5)])
        node = await make_node(service, f"n{len(ids)}", parent_id=parent, position=position)
        ids.append(node.id)
    elif op == "reorder":
        parent = rng.choice(ids + [None])
        position = rng.choice([None, 0, rng.randint(0, 6)])
        await service.reorder_node(
            ReorderRequest(node_id=target, new_parent_id=parent, new_position=position)
        )
    elif op == "delete":
        await service.delete_node(target)
        existing = {r["id"] for r in await service._db.fetchall("SELECT id FROM nodes")}
        ids[:] = [i for i in ids if i in existing]
    elif op == "indent":
        await service.indent_node(target)
    elif op == "outdent":
        await service.outdent_node(target)
    else:
        await service.move_node_up(target)


class TestRandomSequences:
    @pytest.mark.parametrize("seed", [1, 7, 42, 1234, 9001])
    async def test_invariants_hold(self, service, db, seed):
        """Every step either applies cleanly or is rejected without side effects."""
        rng = random.Random(seed)
        ids: list[str] = []
        for _ in range(60):
            try:
                await _random_step(service, rng, ids)
            except _EXPECTED_REJECTIONS:
                pass
            await assert_tree_invariants(db)


class TestCascadeDelete:
    async def test_grandchildren_removed(self, service, db):
        a = await make_node(service, "A")
        b = await make_node(service, "B", parent_id=a.id)
        c = await make_node(service, "C", parent_id=b.id)
        other = await make_node(service, "Other")

        assert await service.delete_node(a.id) == 3

        for node in (a, b, c):
            assert await service.get_node(node.id) is None
        assert await service.get_node(other.id) is not None
        await assert_tree_invariants(db)

    async def test_count_includes_every_direct_child(self, service, db):
        """Siblings removed alongside the root are all counted."""
        root = await make_node(service, "Root")
        for i in range(50):
            await make_node(service, f"child {i}", parent_id=root.id)

        assert await service.delete_node(root.id) == 51

        row = await db.fetchone("SELECT COUNT(*) AS cnt FROM nodes")
        assert row["cnt"] == 0

    async def test_deep_chain_removed(self, service, db):
        chain = await make_chain(service, 1200)

        assert await service.delete_node(chain[0].id) == 1200

        row = await db.fetchone("SELECT COUNT(*) AS cnt FROM nodes")
        assert row["cnt"] == 0

    async def test_absent_node_counts_zero(self, service):
        assert await service.delete_node("missing") == 0

    async def test_delete_middle_keeps_ancestors(self, service, db):
        a = await make_node(service, "A")
        b = await make_node(service, "B", parent_id=a.id)
        await make_node(service, "C", parent_id=b.id)

        assert await service.delete_node(b.id) == 2
        assert (await service.get_node(a.id)).child_count == 0


class TestConcurrency:
    async def test_concurrent_moves_into_same_slot(self, service, db):
        """Racing moves to position 0 serialize; positions stay unique."""
        target = await make_node(service, "Target")
        movers = [await make_node(service, f"m{i}") for i in range(6)]

        await asyncio.gather(*(
            service.reorder_node(
                ReorderRequest(node_id=m.id, new_parent_id=target.id, new_position=0)
            )
            for m in movers
        ))

        children = await service.get_children(target.id)
        assert {c.id for c in children} == {m.id for m in movers}
        await assert_tree_invariants(db)

    async def test_crossing_reparents_cannot_form_cycle(self, service, db):
        """A under B and B under A at once: exactly one wins."""
        a = await make_node(service, "A")
        b = await make_node(service, "B")

        results = await asyncio.gather(
            service.reorder_node(ReorderRequest(node_id=a.id, new_parent_id=b.id)),
            service.reorder_node(ReorderRequest(node_id=b.id, new_parent_id=a.id)),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, Exception)]
        assert len(failures) == 1
        assert isinstance(failures[0], CyclicReparentError)
        await assert_tree_invariants(db)

    async def test_concurrent_creates_append_distinct_positions(self, service, db):
        await asyncio.gather(*(make_node(service, f"n{i}") for i in range(10)))
        roots = await service.list_roots()
        assert sorted(n.position for n in roots) == list(range(10))

    async def test_two_toggles_restore(self, service):
        node = await make_node(service, "N")
        await asyncio.gather(service.toggle_node(node.id), service.toggle_node(node.id))
        assert (await service.get_node(node.id)).is_expanded is True

    async def test_concurrent_edits_last_write_wins(self, service):
        """No version check: whichever edit commits last is what remains."""
        node = await make_node(service, "start")
        await asyncio.gather(
            service.update_node(node.id, UpdateNodeRequest(content="first")),
            service.update_node(node.id, UpdateNodeRequest(content="second")),
        )
        assert (await service.get_node(node.id)).content == "second"

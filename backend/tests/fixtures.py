"""Shared test helpers."""

from collections import defaultdict

from httpx import AsyncClient

from outliner.db.connection import Database
from outliner.nodes.schemas import CreateNodeRequest, NodeResponse
from outliner.nodes.service import NodeService


async def make_node(
    service: NodeService,
    content: str = "Node",
    parent_id: str | None = None,
    position: int | None = None,
    content_zh: str = "",
) -> NodeResponse:
    """Create a node through the service layer."""
    return await service.create_node(
        CreateNodeRequest(
            content=content,
            content_zh=content_zh,
            parent_id=parent_id,
            position=position,
        )
    )


async def create_test_node(
    client: AsyncClient,
    content: str = "Node",
    parent_id: str | None = None,
    **extra,
) -> dict:
    """Create a node via the API and return the response JSON."""
    resp = await client.post(
        "/api/nodes", json={"content": content, "parent_id": parent_id, **extra}
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


async def make_chain(service: NodeService, depth: int) -> list[NodeResponse]:
    """A single line of nested nodes, root first, depth nodes long."""
    chain: list[NodeResponse] = []
    parent_id = None
    for level in range(depth):
        node = await make_node(service, f"level {level}", parent_id=parent_id)
        chain.append(node)
        parent_id = node.id
    return chain


async def child_contents(service: NodeService, parent_id: str | None) -> list[str]:
    """Contents of parent_id's children in render order (roots when None)."""
    if parent_id is None:
        nodes = await service.list_roots()
    else:
        nodes = await service.get_children(parent_id)
    return [n.content for n in nodes]


async def assert_tree_invariants(db: Database) -> None:
    """Sibling positions are unique, every parent exists, and no parent chain loops."""
    rows = await db.fetchall("SELECT id, parent_id, position FROM nodes")
    parents = {r["id"]: r["parent_id"] for r in rows}

    positions: dict[str | None, list[int]] = defaultdict(list)
    for row in rows:
        positions[row["parent_id"]].append(row["position"])
        assert row["position"] >= 0, f"negative position on {row['id']}"
        if row["parent_id"] is not None:
            assert row["parent_id"] in parents, f"dangling parent on {row['id']}"

    for parent_id, values in positions.items():
        assert len(values) == len(set(values)), (
            f"duplicate positions under {parent_id}: {sorted(values)}"
        )

    for start in parents:
        seen = set()
        current = start
        while current is not None:
            assert current not in seen, f"cycle through {current}"
            seen.add(current)
            current = parents[current]

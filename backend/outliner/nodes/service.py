"""Node service: tree queries and invariant-preserving mutations.

Every mutation runs inside one Database.transaction(), which holds the
database lock from the first read to the commit. Sibling positions under one
parent stay unique, children are always read in ascending position, and a
node can never become its own ancestor.
"""

import logging

from outliner.db.connection import Database, Transaction
from outliner.nodes import store
from outliner.nodes.schemas import (
    CreateNodeRequest,
    NodeResponse,
    ReorderRequest,
    UpdateNodeRequest,
)

logger = logging.getLogger(__name__)

# Columns that reject NULL; an explicit null in a PUT body leaves them unchanged.
_NON_NULL_FIELDS = ("content", "content_zh", "is_expanded", "node_size")


class NodeService:
    """Reads and writes the node forest."""

    def __init__(self, db: Database) -> None:
        self._db = db

    # -- Queries --

    async def list_roots(self) -> list[NodeResponse]:
        """Top-level nodes in render order."""
        return await store.get_children(self._db, None)

    async def get_node(self, node_id: str) -> NodeResponse | None:
        """Get a node. Returns None if not found."""
        return await store.get_node(self._db, node_id)

    async def get_children(self, node_id: str) -> list[NodeResponse]:
        """Direct children of an existing node, by ascending position."""
        async with self._db.transaction() as tx:
            if not await store.node_exists(tx, node_id):
                raise NodeNotFoundError(node_id)
            return await store.get_children(tx, node_id)

    async def get_path(self, node_id: str) -> list[NodeResponse]:
        """Breadcrumb: the root, each ancestor, then the node itself."""
        async with self._db.transaction() as tx:
            node = await store.get_node(tx, node_id)
            if node is None:
                raise NodeNotFoundError(node_id)
            path = [node]
            for ancestor_id in await store.ancestor_ids(tx, node_id):
                ancestor = await store.get_node(tx, ancestor_id)
                if ancestor is not None:
                    path.append(ancestor)
            path.reverse()
            return path

    async def get_node_above(self, node_id: str) -> NodeResponse | None:
        """The sibling rendered directly above node_id, or None at the top."""
        async with self._db.transaction() as tx:
            node = await store.get_node(tx, node_id)
            if node is None:
                raise NodeNotFoundError(node_id)
            return await store.previous_sibling(tx, node)

    # -- Mutations --

    async def create_node(self, request: CreateNodeRequest) -> NodeResponse:
        """Insert a node. Appends when no position is given, otherwise inserts
        at that position and shifts later siblings down by one."""
        async with self._db.transaction() as tx:
            if request.parent_id is not None and not await store.node_exists(
                tx, request.parent_id
            ):
                raise InvalidParentError(request.parent_id)

            position = request.position
            if position is None:
                position = await store.next_position(tx, request.parent_id)
            elif await store.position_taken(tx, request.parent_id, position):
                await store.shift_siblings(tx, request.parent_id, position, 1)

            node_id = await store.insert_node(
                tx,
                content=request.content,
                content_zh=request.content_zh,
                parent_id=request.parent_id,
                position=position,
            )
            if request.expand_parent and request.parent_id is not None:
                await store.update_columns(tx, request.parent_id, {"is_expanded": 1})
            node = await store.get_node(tx, node_id)

        assert node is not None
        logger.info("Created node %s under %s at %d", node.id, node.parent_id, node.position)
        return node

    async def update_node(self, node_id: str, request: UpdateNodeRequest) -> NodeResponse:
        """Merge the fields present in the request into the node.

        Last write wins: there is no version check between concurrent edits.
        """
        fields = request.model_fields_set
        async with self._db.transaction() as tx:
            node = await store.get_node(tx, node_id)
            if node is None:
                raise NodeNotFoundError(node_id)

            values = {}
            for name in _NON_NULL_FIELDS:
                if name in fields and getattr(request, name) is not None:
                    value = getattr(request, name)
                    values[name] = int(value) if isinstance(value, bool) else value
            await store.update_columns(tx, node_id, values)

            if "parent_id" in fields or "position" in fields:
                new_parent_id = request.parent_id if "parent_id" in fields else node.parent_id
                new_position = request.position if "position" in fields else None
                if new_position is None and new_parent_id == node.parent_id:
                    new_position = node.position
                if new_parent_id != node.parent_id or new_position != node.position:
                    await self._reorder(tx, node, new_parent_id, new_position)

            updated = await store.get_node(tx, node_id)

        assert updated is not None
        logger.debug("Updated node %s fields=%s", node_id, sorted(fields))
        return updated

    async def delete_node(self, node_id: str) -> int:
        """Delete a node and its whole subtree. Returns rows removed (0 if absent)."""
        async with self._db.transaction() as tx:
            deleted = await store.delete_subtree(tx, node_id)
        if deleted:
            logger.info("Deleted node %s (%d rows including descendants)", node_id, deleted)
        return deleted

    async def toggle_node(self, node_id: str) -> NodeResponse:
        """Flip is_expanded. Two toggles always restore the original value."""
        async with self._db.transaction() as tx:
            if await store.flip_expanded(tx, node_id) == 0:
                raise NodeNotFoundError(node_id)
            node = await store.get_node(tx, node_id)
        assert node is not None
        return node

    async def set_all_expanded(self, expanded: bool) -> int:
        """Expand or collapse every node in the forest. Returns rows changed."""
        async with self._db.transaction() as tx:
            changed = await store.set_expanded_all(tx, expanded)
        logger.info("%s all nodes (%d changed)", "Expanded" if expanded else "Collapsed", changed)
        return changed

    async def reorder_node(self, request: ReorderRequest) -> NodeResponse:
        """Move a node under new_parent_id at new_position (append when omitted)."""
        async with self._db.transaction() as tx:
            node = await store.get_node(tx, request.node_id)
            if node is None:
                raise NodeNotFoundError(request.node_id)
            await self._reorder(
                tx,
                node,
                request.new_parent_id,
                request.new_position,
                expand_parent=request.expand_parent,
            )
            moved = await store.get_node(tx, request.node_id)
        assert moved is not None
        logger.info(
            "Moved node %s to parent %s position %d",
            moved.id, moved.parent_id, moved.position,
        )
        return moved

    async def indent_node(self, node_id: str) -> NodeResponse:
        """Make the node the last child of the sibling directly above it."""
        async with self._db.transaction() as tx:
            node = await store.get_node(tx, node_id)
            if node is None:
                raise NodeNotFoundError(node_id)
            above = await store.previous_sibling(tx, node)
            if above is None:
                raise InvalidMoveError(node_id, "no node above to indent under")
            await self._reorder(tx, node, above.id, None, expand_parent=True)
            moved = await store.get_node(tx, node_id)
        assert moved is not None
        return moved

    async def outdent_node(self, node_id: str) -> NodeResponse:
        """Make the node the sibling that directly follows its current parent."""
        async with self._db.transaction() as tx:
            node = await store.get_node(tx, node_id)
            if node is None:
                raise NodeNotFoundError(node_id)
            if node.parent_id is None:
                raise InvalidMoveError(node_id, "cannot outdent a root node")
            parent = await store.get_node(tx, node.parent_id)
            assert parent is not None
            await self._reorder(tx, node, parent.parent_id, parent.position + 1)
            moved = await store.get_node(tx, node_id)
        assert moved is not None
        return moved

    async def move_node_up(self, node_id: str) -> NodeResponse:
        """Swap positions with the sibling rendered directly above."""
        return await self._swap_with_neighbour(node_id, up=True)

    async def move_node_down(self, node_id: str) -> NodeResponse:
        """Swap positions with the sibling rendered directly below."""
        return await self._swap_with_neighbour(node_id, up=False)

    async def shift_positions(self, parent_id: str | None, position: int, shift: int) -> int:
        """Add shift to every sibling at or after position. Returns rows moved."""
        async with self._db.transaction() as tx:
            if parent_id is not None and not await store.node_exists(tx, parent_id):
                raise InvalidParentError(parent_id)
            siblings = await store.get_children(tx, parent_id)
            moving = [s.position + shift for s in siblings if s.position >= position]
            staying = {s.position for s in siblings if s.position < position}
            if any(p < 0 for p in moving) or staying.intersection(moving):
                raise InvalidMoveError(
                    parent_id or "<root>",
                    f"shifting by {shift} would produce negative or duplicate positions",
                )
            if not moving or shift == 0:
                return 0
            return await store.shift_siblings(tx, parent_id, position, shift)

    async def normalize_positions(self, parent_id: str | None) -> int:
        """Renumber a sibling set to 0..n-1 in its current render order."""
        async with self._db.transaction() as tx:
            if parent_id is not None and not await store.node_exists(tx, parent_id):
                raise InvalidParentError(parent_id)
            changed = 0
            for index, sibling in enumerate(await store.get_children(tx, parent_id)):
                if sibling.position != index:
                    await store.update_columns(tx, sibling.id, {"position": index})
                    changed += 1
        if changed:
            logger.info("Normalized %d positions under %s", changed, parent_id)
        return changed

    # -- Internals --

    async def _reorder(
        self,
        tx: Transaction,
        node: NodeResponse,
        new_parent_id: str | None,
        new_position: int | None,
        *,
        expand_parent: bool = False,
    ) -> None:
        """Core move. Caller holds the transaction; any raise rolls everything back.

        Only the destination sibling set is shifted. The gap left at the
        source is not compacted: positions may have holes but stay unique.
        """
        if new_parent_id is not None:
            if new_parent_id == node.id:
                raise CyclicReparentError(node.id, new_parent_id)
            if not await store.node_exists(tx, new_parent_id):
                raise InvalidParentError(new_parent_id)
            if node.id in await store.ancestor_ids(tx, new_parent_id):
                logger.warning(
                    "Rejected move of %s under its descendant %s", node.id, new_parent_id
                )
                raise CyclicReparentError(node.id, new_parent_id)

        if new_position is None:
            new_position = await store.next_position(tx, new_parent_id, exclude_id=node.id)
        else:
            await store.shift_siblings(tx, new_parent_id, new_position, 1, exclude_id=node.id)

        await store.update_columns(
            tx, node.id, {"parent_id": new_parent_id, "position": new_position}
        )

        if expand_parent and new_parent_id is not None:
            await store.update_columns(tx, new_parent_id, {"is_expanded": 1})

    async def _swap_with_neighbour(self, node_id: str, *, up: bool) -> NodeResponse:
        async with self._db.transaction() as tx:
            node = await store.get_node(tx, node_id)
            if node is None:
                raise NodeNotFoundError(node_id)
            if up:
                other = await store.previous_sibling(tx, node)
            else:
                other = await store.next_sibling(tx, node)
            if other is None:
                edge = "top" if up else "bottom"
                raise InvalidMoveError(node_id, f"node is already at the {edge}")
            await store.update_columns(tx, node.id, {"position": other.position})
            await store.update_columns(tx, other.id, {"position": node.position})
            moved = await store.get_node(tx, node_id)
        assert moved is not None
        return moved


class NodeNotFoundError(Exception):
    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id}")


class InvalidParentError(Exception):
    def __init__(self, parent_id: str) -> None:
        self.parent_id = parent_id
        super().__init__(f"Invalid parent node: {parent_id}")


class CyclicReparentError(Exception):
    def __init__(self, node_id: str, parent_id: str) -> None:
        self.node_id = node_id
        self.parent_id = parent_id
        super().__init__(f"Cannot move node {node_id} under itself or its descendant {parent_id}")


class InvalidMoveError(Exception):
    def __init__(self, node_id: str, reason: str) -> None:
        self.node_id = node_id
        self.reason = reason
        super().__init__(f"Invalid move for {node_id}: {reason}")

"""Client-side view-model of the outline.

OutlineView holds the currently fetched part of the forest for one outliner
instance. It is a cache, never an authority: every change goes through the
API first, and the view is patched or re-fetched only after the server
acknowledges it.
"""

import logging
from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass, field

from outliner.client.api import OutlinerAPI
from outliner.nodes.schemas import NodeResponse

logger = logging.getLogger(__name__)

EXPANDED_MARK = "▼"
COLLAPSED_MARK = "►"
LEAF_MARK = "•"


@dataclass(eq=False)
class RenderedNode:
    node: NodeResponse
    depth: int
    children: list["RenderedNode"] = field(default_factory=list, repr=False)

    @property
    def id(self) -> str:
        return self.node.id

    @property
    def has_children(self) -> bool:
        return self.node.child_count > 0

    @property
    def marker(self) -> str:
        if not self.has_children:
            return LEAF_MARK
        return EXPANDED_MARK if self.node.is_expanded else COLLAPSED_MARK

    def text(self, lang: str) -> str:
        if lang == "zh":
            return self.node.content_zh or self.node.content
        return self.node.content


class OutlineView:
    """Lazily rendered forest: children are fetched only for expanded nodes."""

    def __init__(self, api: OutlinerAPI) -> None:
        self.api = api
        self.roots: list[RenderedNode] = []
        self._index: dict[str, RenderedNode] = {}

    @property
    def lang(self) -> str:
        return self.api.lang

    async def render(self) -> list[RenderedNode]:
        """Fetch the roots and every expanded subtree, replacing the cached view."""
        roots = await self.api.list_roots()
        index: dict[str, RenderedNode] = {}
        rendered = [RenderedNode(node=node, depth=0) for node in roots]
        await self._attach_children(rendered, index)
        self.roots = rendered
        self._index = index
        logger.debug("Rendered %d visible nodes", len(index))
        return rendered

    async def _attach_children(
        self, items: list[RenderedNode], index: dict[str, RenderedNode]
    ) -> None:
        """Index items and fill in children of every expanded one, breadth first."""
        queue = deque(items)
        while queue:
            item = queue.popleft()
            index[item.id] = item
            if item.node.is_expanded and item.node.child_count > 0:
                children = await self.api.get_children(item.id)
                item.children = [RenderedNode(node=c, depth=item.depth + 1) for c in children]
                queue.extend(item.children)

    def lookup(self, node_id: str) -> RenderedNode | None:
        return self._index.get(node_id)

    def _preorder(self) -> Iterator[RenderedNode]:
        stack = list(reversed(self.roots))
        while stack:
            item = stack.pop()
            yield item
            stack.extend(reversed(item.children))

    def visible_ids(self) -> list[str]:
        """Ids in on-screen order (pre-order over expanded subtrees)."""
        return [item.id for item in self._preorder()]

    async def toggle(self, node_id: str) -> RenderedNode | None:
        """Flip expansion on the server, then attach or detach the children.

        The server's answer decides the final state, and children are
        replaced rather than appended, so rapid repeated toggles never
        duplicate a subtree.
        """
        updated = await self.api.toggle(node_id)
        item = self._index.get(node_id)
        if item is None:
            return None
        item.node = updated
        self._drop_descendants(item)
        if updated.is_expanded and updated.child_count > 0:
            children = await self.api.get_children(node_id)
            if not item.node.is_expanded:
                # a later toggle collapsed it while we were fetching
                return item
            item.children = [RenderedNode(node=c, depth=item.depth + 1) for c in children]
            await self._attach_children(item.children, self._index)
        return item

    def _drop_descendants(self, item: RenderedNode) -> None:
        stack = list(item.children)
        while stack:
            child = stack.pop()
            self._index.pop(child.id, None)
            stack.extend(child.children)
        item.children = []

    def text(self) -> str:
        """Plain-text dump of the visible outline, one node per line."""
        return "\n".join(
            f"{'  ' * item.depth}{item.marker} {item.text(self.lang)}"
            for item in self._preorder()
        )

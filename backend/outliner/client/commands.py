"""UI-agnostic command handlers for the outline.

A toolkit (web, TUI, tests) translates its events into these calls. Each
handler performs one server mutation, re-renders the view only after the
server acknowledges it, and reports failure by returning False: a failed
command never leaves the outliner unusable.
"""

import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from outliner.client.api import APIError, OutlinerAPI
from outliner.client.view import OutlineView

logger = logging.getLogger(__name__)

NEW_NODE_TEXT = {"en": "New node", "zh": "新节点"}


class DropZone(Enum):
    BEFORE = "before"
    CHILD = "child"
    AFTER = "after"


def classify_drop(offset_y: float, height: float) -> DropZone:
    """Map the pointer's vertical offset inside the drop target to a zone.

    Top third inserts before the target, bottom third after it, and the
    middle third drops the node in as the target's last child.
    """
    if height <= 0:
        return DropZone.CHILD
    if offset_y < height / 3:
        return DropZone.BEFORE
    if offset_y > height * 2 / 3:
        return DropZone.AFTER
    return DropZone.CHILD


class OutlineCommands:
    """Dispatcher binding user intents to API calls on one OutlineView."""

    def __init__(self, view: OutlineView) -> None:
        self.view = view
        self.last_error: APIError | None = None

    @property
    def api(self) -> OutlinerAPI:
        return self.view.api

    def _new_node_text(self) -> dict[str, str]:
        lang = self.view.lang
        return {
            "content": NEW_NODE_TEXT["en"] if lang == "en" else "",
            "content_zh": NEW_NODE_TEXT["zh"] if lang == "zh" else "",
        }

    async def _run(self, label: str, action: Callable[[], Awaitable[object]]) -> bool:
        try:
            await action()
            await self.view.render()
        except APIError as e:
            self.last_error = e
            logger.warning("%s failed: %s", label, e)
            return False
        self.last_error = None
        return True

    async def on_add_root(self) -> bool:
        return await self._run(
            "add root", lambda: self.api.create_node(parent_id=None, **self._new_node_text())
        )

    async def on_add_child(self, parent_id: str) -> bool:
        return await self._run(
            f"add child to {parent_id}",
            lambda: self.api.create_node(
                parent_id=parent_id, expand_parent=True, **self._new_node_text()
            ),
        )

    async def on_add_sibling(self, node_id: str, *, after: bool = True) -> bool:
        async def action() -> None:
            node = await self.api.get_node(node_id)
            position = node.position + 1 if after else node.position
            await self.api.create_node(
                parent_id=node.parent_id, position=position, **self._new_node_text()
            )

        return await self._run(f"add sibling to {node_id}", action)

    async def on_edit(
        self, node_id: str, *, content: str | None = None, content_zh: str | None = None
    ) -> bool:
        fields = {}
        if content is not None:
            fields["content"] = content
        if content_zh is not None:
            fields["content_zh"] = content_zh
        if not fields:
            return True
        return await self._run(
            f"edit {node_id}", lambda: self.api.update_node(node_id, **fields)
        )

    async def on_delete(self, node_id: str) -> bool:
        return await self._run(f"delete {node_id}", lambda: self.api.delete_node(node_id))

    async def on_toggle(self, node_id: str) -> bool:
        try:
            await self.view.toggle(node_id)
        except APIError as e:
            self.last_error = e
            logger.warning("toggle %s failed: %s", node_id, e)
            return False
        self.last_error = None
        return True

    async def on_reorder(
        self,
        node_id: str,
        new_parent_id: str | None,
        new_position: int | None = None,
        *,
        expand_parent: bool = False,
    ) -> bool:
        return await self._run(
            f"reorder {node_id}",
            lambda: self.api.reorder(
                node_id, new_parent_id, new_position, expand_parent=expand_parent
            ),
        )

    async def on_drop(
        self, dragged_id: str, target_id: str, offset_y: float, height: float
    ) -> bool:
        """Handle a drag-and-drop gesture as a single reorder call."""
        if dragged_id == target_id:
            return False
        zone = classify_drop(offset_y, height)

        async def action() -> None:
            if zone is DropZone.CHILD:
                # server appends at max(children) + 1 and expands the target
                await self.api.reorder(dragged_id, target_id, None, expand_parent=True)
                return
            target = await self.api.get_node(target_id)
            position = target.position if zone is DropZone.BEFORE else target.position + 1
            await self.api.reorder(dragged_id, target.parent_id, position)

        return await self._run(f"drop {dragged_id} {zone.value} {target_id}", action)

    async def on_indent(self, node_id: str) -> bool:
        return await self._run(f"indent {node_id}", lambda: self.api.structural(node_id, "indent"))

    async def on_outdent(self, node_id: str) -> bool:
        return await self._run(
            f"outdent {node_id}", lambda: self.api.structural(node_id, "outdent")
        )

    async def on_move_up(self, node_id: str) -> bool:
        return await self._run(
            f"move up {node_id}", lambda: self.api.structural(node_id, "move-up")
        )

    async def on_move_down(self, node_id: str) -> bool:
        return await self._run(
            f"move down {node_id}", lambda: self.api.structural(node_id, "move-down")
        )

    async def on_expand_all(self) -> bool:
        return await self._run("expand all", lambda: self.api.set_all_expanded(True))

    async def on_collapse_all(self) -> bool:
        return await self._run("collapse all", lambda: self.api.set_all_expanded(False))

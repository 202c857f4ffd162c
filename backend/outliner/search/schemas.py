"""Search API response schemas."""

from outliner.nodes.schemas import NodeResponse


class SearchResultItem(NodeResponse):
    """A matching node plus its parent's text, for "found under ..." display."""

    parent_content: str | None = None
    parent_content_zh: str | None = None

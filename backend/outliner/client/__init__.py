"""Client side of the outliner: REST client, view-model, and command dispatcher."""

from outliner.client.api import APIError, OutlinerAPI
from outliner.client.commands import DropZone, OutlineCommands, classify_drop
from outliner.client.view import OutlineView, RenderedNode

__all__ = [
    "APIError",
    "DropZone",
    "OutlineCommands",
    "OutlineView",
    "OutlinerAPI",
    "RenderedNode",
    "classify_drop",
]

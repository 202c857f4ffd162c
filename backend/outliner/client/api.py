"""Async REST client for the outliner API, built on httpx."""

import logging
from typing import Any

import httpx

from outliner.nodes.schemas import NodeResponse

logger = logging.getLogger(__name__)


class APIError(Exception):
    """A request failed: non-2xx status, or no response at all (status_code None)."""

    def __init__(self, status_code: int | None, detail: str) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"API error {status_code}: {detail}")

    @property
    def not_found(self) -> bool:
        return self.status_code == 404


class OutlinerAPI:
    """Thin typed wrapper over the /api/nodes endpoints.

    The caller owns the httpx.AsyncClient (base URL, transport, lifetime).
    """

    def __init__(self, client: httpx.AsyncClient, *, lang: str = "en") -> None:
        self._client = client
        self.lang = lang

    # -- Reads --

    async def list_roots(self) -> list[NodeResponse]:
        data = await self._request("GET", "/api/nodes", params={"lang": self.lang})
        return [NodeResponse.model_validate(n) for n in data]

    async def get_node(self, node_id: str) -> NodeResponse:
        return NodeResponse.model_validate(await self._request("GET", f"/api/nodes/{node_id}"))

    async def get_children(self, node_id: str) -> list[NodeResponse]:
        data = await self._request(
            "GET", f"/api/nodes/{node_id}/children", params={"lang": self.lang}
        )
        return [NodeResponse.model_validate(n) for n in data]

    async def get_path(self, node_id: str) -> list[NodeResponse]:
        data = await self._request("GET", f"/api/nodes/{node_id}/path")
        return [NodeResponse.model_validate(n) for n in data]

    async def search(self, query: str, *, exclude_id: str | None = None) -> list[dict]:
        params: dict[str, Any] = {"q": query, "lang": self.lang}
        if exclude_id:
            params["excludeId"] = exclude_id
        return await self._request("GET", "/api/nodes/search", params=params)

    # -- Mutations --

    async def create_node(
        self,
        *,
        content: str = "",
        content_zh: str = "",
        parent_id: str | None = None,
        position: int | None = None,
        expand_parent: bool = False,
    ) -> NodeResponse:
        body: dict[str, Any] = {
            "content": content,
            "content_zh": content_zh,
            "parent_id": parent_id,
        }
        if expand_parent:
            body["expand_parent"] = True
        if position is not None:
            body["position"] = position
        return NodeResponse.model_validate(await self._request("POST", "/api/nodes", json=body))

    async def update_node(self, node_id: str, **fields: Any) -> NodeResponse:
        """PUT only the given fields; the server merges them."""
        data = await self._request("PUT", f"/api/nodes/{node_id}", json=fields)
        return NodeResponse.model_validate(data)

    async def delete_node(self, node_id: str) -> None:
        await self._request("DELETE", f"/api/nodes/{node_id}")

    async def toggle(self, node_id: str) -> NodeResponse:
        data = await self._request("POST", f"/api/nodes/{node_id}/toggle")
        return NodeResponse.model_validate(data)

    async def reorder(
        self,
        node_id: str,
        new_parent_id: str | None,
        new_position: int | None = None,
        *,
        expand_parent: bool = False,
    ) -> NodeResponse:
        body: dict[str, Any] = {
            "nodeId": node_id,
            "newParentId": new_parent_id,
            "expandParent": expand_parent,
        }
        if new_position is not None:
            body["newPosition"] = new_position
        data = await self._request("POST", "/api/nodes/reorder", json=body)
        return NodeResponse.model_validate(data)

    async def structural(self, node_id: str, action: str) -> NodeResponse:
        """POST one of indent, outdent, move-up, move-down."""
        data = await self._request("POST", f"/api/nodes/{node_id}/{action}")
        return NodeResponse.model_validate(data)

    async def set_all_expanded(self, expanded: bool) -> int:
        path = "/api/nodes/expand-all" if expanded else "/api/nodes/collapse-all"
        data = await self._request("POST", path)
        return data["nodesUpdated"]

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise APIError(None, str(e)) from e
        if response.is_error:
            try:
                detail = response.json().get("detail", response.text)
            except ValueError:
                detail = response.text
            logger.debug("%s %s -> %d %s", method, path, response.status_code, detail)
            raise APIError(response.status_code, str(detail))
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

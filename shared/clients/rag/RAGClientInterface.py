import json
from abc import abstractmethod
from typing import Any

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.clients.rag.models.Scroll import ScrollResult
from shared.helper.HelperConfig import HelperConfig


class RAGClientInterface(ClientInterface):
    """Vector store client.

    Every read or delete that targets a document takes its scope as a list of
    equality conditions built with get_match_condition(). The conditions are
    sent to the backend as a filter, so isolation between documents is
    enforced by the vector store itself.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_client_type(self) -> str:
        return "rag"

    @abstractmethod
    def get_collection_name(self) -> str:
        """Returns the name of the collection all points are stored in."""
        pass

    ################ ENDPOINTS ##################
    # paths relative to the base URL, all scoped to the collection

    @abstractmethod
    def _get_endpoint_collection(self) -> str:
        """Collection info (GET) and creation (PUT)."""
        pass

    @abstractmethod
    def _get_endpoint_check_collection_existence(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_points(self) -> str:
        """Batch upsert."""
        pass

    @abstractmethod
    def _get_endpoint_delete_points(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_search(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_scroll(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_count(self) -> str:
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_match_condition(self, key: str, value: Any) -> dict:
        """Condition matching points whose payload field key equals value."""
        pass

    @abstractmethod
    def get_create_collection_payload(self, vector_size: int, distance: str) -> dict:
        pass

    @abstractmethod
    def get_search_payload(self, vector: list[float], filters: list[dict], limit: int) -> dict:
        """Body of a nearest-neighbour search over points matching all filters.

        Hits must carry their payload, vectors are not needed.
        """
        pass

    @abstractmethod
    def get_scroll_payload(self, filters: list[dict], with_payload: bool | list, with_vector: bool, limit: int | None = None, offset: str | int | None = None) -> dict:
        """Body of one scroll page.

        Args:
            filters (list[dict]): Conditions every point must satisfy.
            with_payload (bool | list): True, False or the payload fields to return.
            with_vector (bool): Whether to return the vectors.
            limit (int | None): Page size.
            offset (str | int | None): Cursor from the previous page, None for the first.
        """
        pass

    @abstractmethod
    def get_count_payload(self, filters: list[dict]) -> dict:
        pass

    @abstractmethod
    def get_delete_payload(self, filters: list[dict]) -> dict:
        pass

    ################ RESPONSE PARSER ##################
    @abstractmethod
    def extract_collection_vector_size(self, raw_response: dict) -> int | None:
        """Vector size from a collection info response, None if absent."""
        pass

    @abstractmethod
    def extract_search_hits(self, raw_response: dict) -> list[dict]:
        """Hits as {"id": ..., "score": float, "payload": dict}, best first."""
        pass

    @abstractmethod
    def extract_scroll_content(self, raw_response: dict) -> dict:
        """The "result" (point dicts), "status" and "time" of a scroll response."""
        pass

    @abstractmethod
    def extract_next_page_offset(self, raw_response: dict) -> str | int | None:
        """Cursor of the next scroll page, None after the last page."""
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def _send_json(self, method: str, endpoint: str, body: dict, params: dict | None = None) -> dict:
        response = await self.do_request(
            method=method,
            content=json.dumps(body),
            params=params,
            endpoint=endpoint,
            additional_headers={"Content-Type": "application/json"},
            raise_on_error=True,
        )
        return response.json()

    async def do_existence_check(self) -> bool:
        response = await self.do_request(
            method="GET", endpoint=self._get_endpoint_check_collection_existence(), raise_on_error=True
        )
        return bool(response.json().get("result", {}).get("exists"))

    async def do_fetch_collection_vector_size(self) -> int | None:
        """Vector size the existing collection was created with, None if unknown."""
        response = await self.do_request(method="GET", endpoint=self._get_endpoint_collection(), raise_on_error=True)
        return self.extract_collection_vector_size(response.json())

    async def do_create_collection(self, vector_size: int, distance: str = "Cosine") -> httpx.Response:
        """Create the collection.

        The response is returned unchecked: a concurrent creator may already
        have won the race and the caller decides how to treat that.
        """
        return await self.do_request(
            method="PUT",
            json=self.get_create_collection_payload(vector_size, distance),
            endpoint=self._get_endpoint_collection(),
        )

    async def do_upsert_points(self, points: list[dict[str, Any]]) -> None:
        """Insert or replace points as one batch, waiting until they are searchable."""
        await self._send_json("PUT", self._get_endpoint_points(), {"points": points}, params={"wait": "true"})

    async def do_delete_points_by_filter(self, filters: list[dict]) -> None:
        """Delete every point matching all filters.

        Raises:
            ValueError: If filters is empty, which would match the whole collection.
        """
        if not filters:
            raise ValueError("Refusing to delete points without a filter.")
        await self._send_json(
            "POST", self._get_endpoint_delete_points(), self.get_delete_payload(filters), params={"wait": "true"}
        )

    async def do_search(self, vector: list[float], filters: list[dict], limit: int) -> list[dict]:
        raw = await self._send_json("POST", self._get_endpoint_search(), self.get_search_payload(vector, filters, limit))
        return self.extract_search_hits(raw)

    async def do_scroll(self, filters: list[dict], with_payload: bool | list, with_vector: bool, limit: int | None = None, offset: str | int | None = None) -> ScrollResult:
        """Fetch one page of points matching all filters.

        Pass the returned next_page_offset back as offset to read the next
        page; it is None on the last one.
        """
        body = self.get_scroll_payload(filters, with_payload, with_vector, limit, offset)
        raw = await self._send_json("POST", self._get_endpoint_scroll(), body)
        content = self.extract_scroll_content(raw)
        return ScrollResult(
            result=content.get("result", []),
            status=content.get("status", "ok"),
            time=content.get("time", 0),
            next_page_offset=self.extract_next_page_offset(raw),
        )

    async def do_count(self, filters: list[dict]) -> int:
        raw = await self._send_json("POST", self._get_endpoint_count(), self.get_count_payload(filters))
        return int(raw.get("result", {}).get("count", 0))

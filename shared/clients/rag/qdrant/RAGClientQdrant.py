from typing import Any

from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class RAGClientQdrant(RAGClientInterface):
    """Qdrant over its REST API.

    Settings: RAG_QDRANT_BASE_URL (required), RAG_QDRANT_API_KEY and
    RAG_QDRANT_COLLECTION (default "documents").
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url: str = self.get_config_val("BASE_URL")
        self._api_key: str = self.get_config_val("API_KEY", default="")
        self._collection_name: str = self.get_config_val("COLLECTION", default="documents")

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_engine_name(self) -> str:
        return "Qdrant"

    def get_collection_name(self) -> str:
        return self._collection_name

    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL"),
            EnvConfig(env_key="API_KEY", default=""),
            EnvConfig(env_key="COLLECTION", default="documents"),
        ]

    def _get_auth_header(self) -> dict:
        return {"api-key": self._api_key} if self._api_key else {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/healthz"

    def _get_endpoint_collection(self) -> str:
        return f"/collections/{self._collection_name}"

    def _get_endpoint_check_collection_existence(self) -> str:
        return self._get_endpoint_collection() + "/exists"

    def _get_endpoint_points(self) -> str:
        return self._get_endpoint_collection() + "/points"

    def _get_endpoint_delete_points(self) -> str:
        return self._get_endpoint_points() + "/delete"

    def _get_endpoint_search(self) -> str:
        return self._get_endpoint_points() + "/search"

    def _get_endpoint_scroll(self) -> str:
        return self._get_endpoint_points() + "/scroll"

    def _get_endpoint_count(self) -> str:
        return self._get_endpoint_points() + "/count"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    @staticmethod
    def _must(filters: list[dict]) -> dict:
        return {"must": filters}

    def get_match_condition(self, key: str, value: Any) -> dict:
        return {"key": key, "match": {"value": value}}

    def get_create_collection_payload(self, vector_size: int, distance: str) -> dict:
        return {"vectors": {"size": vector_size, "distance": distance}}

    def get_search_payload(self, vector: list[float], filters: list[dict], limit: int) -> dict:
        return {"vector": vector, "filter": self._must(filters), "limit": limit, "with_payload": True, "with_vector": False}

    def get_scroll_payload(self, filters: list[dict], with_payload: bool | list, with_vector: bool, limit: int | None = None, offset: str | int | None = None) -> dict:
        body = {"filter": self._must(filters), "limit": limit, "with_payload": with_payload, "with_vector": with_vector}
        if offset is not None:
            body["offset"] = offset
        return body

    def get_count_payload(self, filters: list[dict]) -> dict:
        return {"filter": self._must(filters), "exact": True}

    def get_delete_payload(self, filters: list[dict]) -> dict:
        return {"filter": self._must(filters)}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_collection_vector_size(self, raw_response: dict) -> int | None:
        params = raw_response.get("result", {}).get("config", {}).get("params", {})
        # named vectors come as a dict of configs, only the unnamed form is used here
        size = (params.get("vectors") or {}).get("size")
        return int(size) if size is not None else None

    def extract_search_hits(self, raw_response: dict) -> list[dict]:
        return [
            {"id": hit.get("id"), "score": float(hit.get("score") or 0.0), "payload": hit.get("payload") or {}}
            for hit in raw_response.get("result", [])
        ]

    def extract_scroll_content(self, raw_response: dict) -> dict:
        return {
            "result": raw_response.get("result", {}).get("points", []),
            "status": raw_response.get("status", "ok"),
            "time": raw_response.get("time", 0),
        }

    def extract_next_page_offset(self, raw_response: dict) -> str | int | None:
        return raw_response.get("result", {}).get("next_page_offset")

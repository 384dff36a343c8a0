from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperEngine import load_engine_class


class RAGClientManager:
    """Instantiates the vector store client named by RAG_ENGINE (e.g. "Qdrant")."""

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        engine = helper_config.get_string_val("RAG_ENGINE")
        client_class = load_engine_class("shared.clients.rag", "RAGClient", engine)
        self.client: RAGClientInterface = client_class(helper_config=helper_config)
        self.logging.debug("Instantiated RAG client %s (collection '%s').", client_class.__name__, self.client.get_collection_name())

    def get_client(self) -> RAGClientInterface:
        return self.client

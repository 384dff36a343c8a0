from shared.clients.cache.CacheClientInterface import CacheClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperEngine import load_engine_class


class CacheClientManager:
    """Instantiates the cache engine named by CACHE_ENGINE ("Redis" or "Memory")."""

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        engine = helper_config.get_string_val("CACHE_ENGINE")
        client_class = load_engine_class("shared.clients.cache", "CacheClient", engine)
        self.client: CacheClientInterface = client_class(helper_config=helper_config)
        self.logging.debug("Instantiated cache client %s.", client_class.__name__)

    def get_client(self) -> CacheClientInterface:
        return self.client

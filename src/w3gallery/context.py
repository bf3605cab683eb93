"""Application context: the objects one gallery session works with."""

from dataclasses import dataclass

from .config import Config, get_config, get_fragment_base_url, get_public_endpoint
from .logging_config import get_logger
from .services.auth import Credential
from .services.gallery import GalleryManager
from .services.storage import StorageClient, create_storage_client
from .ui.document import Document
from .ui.router import FragmentLoader, NavigationHistory, Router
from .ui.views import ViewInitializer

logger = get_logger(__name__)


@dataclass
class AppContext:
    """Everything the router and views need, built once and passed explicitly."""

    config: Config
    storage: StorageClient
    manager: GalleryManager
    document: Document
    views: ViewInitializer
    router: Router

    @classmethod
    def create(
        cls,
        path: str = "/",
        credential: Credential | None = None,
        storage: StorageClient | None = None,
        public_endpoint: str | None = None,
        loader: FragmentLoader | None = None,
    ) -> "AppContext":
        """
        Build the context for one run of the application.

        Must be called with an event loop running so that the gallery manager
        starts loading metadata right away.

        Args:
            path: Path of the current location
            credential: Credential that already passed the login probe
            storage: Storage client (defaults to the configured backend)
            public_endpoint: Public bucket URL (defaults to the configured one)
            loader: Fragment loader (defaults to the configured source)
        """
        storage = storage or create_storage_client()
        manager = GalleryManager(storage, public_endpoint or get_public_endpoint())
        if credential is not None:
            manager.restore_credential(credential)

        document = Document()
        views = ViewInitializer(manager, document)
        router = Router(
            document,
            loader or FragmentLoader(base_url=get_fragment_base_url()),
            views,
            history=NavigationHistory(path),
        )

        logger.debug("app_context_created", path=path, logged_in=credential is not None)
        return cls(
            config=get_config(),
            storage=storage,
            manager=manager,
            document=document,
            views=views,
            router=router,
        )

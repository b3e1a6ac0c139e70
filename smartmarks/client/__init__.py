from smartmarks.client.channel import ChangeChannel
from smartmarks.client.config import ClientSettings
from smartmarks.client.identity import IdentityClient
from smartmarks.client.models import Bookmark, ChangeEvent, Notice
from smartmarks.client.store import BookmarkStoreClient
from smartmarks.client.synchronizer import BookmarkSynchronizer

__all__ = [
    "Bookmark",
    "BookmarkStoreClient",
    "BookmarkSynchronizer",
    "ChangeChannel",
    "ChangeEvent",
    "ClientSettings",
    "IdentityClient",
    "Notice",
]

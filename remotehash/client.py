"""Entry point handing out maps that share one store."""

import logging
import threading

from .exceptions import ClientShutdownError
from .map import RemoteMap
from .retry import RetryPolicy
from .stores.base import Store

_LOGGER = logging.getLogger(__name__)


class Client:
    """Registry of RemoteMap instances over a single store.

    get_map() returns the same instance for the same name until that map
    is destroyed. shutdown() destroys every map and closes the store.

    Args:
        store: Store shared by all maps
        retry: Default retry policy for the maps' conditional operations
    """

    def __init__(self, store: Store, retry: RetryPolicy | None = None) -> None:
        self.store = store
        self.retry = retry
        self._maps: dict[str, RemoteMap] = {}
        self._lock = threading.Lock()
        self._shut_down = False

    def get_map(self, name: str) -> RemoteMap:
        """Get the map for a hash name, creating it on first use.

        Raises:
            ClientShutdownError: If shutdown() has already been called
        """
        with self._lock:
            if self._shut_down:
                raise ClientShutdownError()
            remote_map = self._maps.get(name)
            if remote_map is None:
                remote_map = RemoteMap(self.store, name, retry=self.retry, client=self)
                self._maps[name] = remote_map
            return remote_map

    def remove(self, remote_map: RemoteMap) -> None:
        """Forget a map; called by RemoteMap.destroy()."""
        with self._lock:
            if self._maps.get(remote_map.name) is remote_map:
                del self._maps[remote_map.name]

    def shutdown(self) -> None:
        """Destroy every map and close the store."""
        with self._lock:
            if self._shut_down:
                return
            self._shut_down = True
            maps = list(self._maps.values())
        for remote_map in maps:
            remote_map.destroy()
        _LOGGER.debug("Destroyed %d maps, closing store", len(maps))
        self.store.close()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

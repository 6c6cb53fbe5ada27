"""
Network-state monitor and the online guard used by every write.
"""

from __future__ import annotations

import functools
from typing import Any, Callable, List, TypeVar

import requests

from .exceptions import OfflineError
from .logging import get_logger


logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])
Listener = Callable[[bool], None]


class ConnectivityMonitor:
    """
    Holds the ``is_online`` flag.

    The flag starts from a single check of the backend health endpoint and
    afterwards only changes through ``set_online``, which the HTTP client
    calls when a request fails to connect or succeeds again. Listeners are
    notified on transitions only.
    """

    def __init__(self, initial: bool = True) -> None:
        self._online = initial
        self._listeners: List[Listener] = []

    @property
    def is_online(self) -> bool:
        return self._online

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_online(self, online: bool) -> None:
        if online == self._online:
            return
        self._online = online
        logger.info("Connectivity changed", online=online)
        for listener in list(self._listeners):
            listener(online)

    def recheck(self, health_url: str, timeout: float = 5.0) -> bool:
        self.set_online(backend_healthy(health_url, timeout=timeout))
        return self._online

    def require_online(self, message: str) -> None:
        if not self._online:
            raise OfflineError(message)


def backend_healthy(health_url: str, timeout: float = 5.0) -> bool:
    try:
        response = requests.get(health_url, timeout=timeout)
    except requests.RequestException as exc:
        logger.debug("Backend health check failed", url=health_url, error=str(exc))
        return False
    return response.status_code < 500


def requires_online(message: str) -> Callable[[F], F]:
    """
    Reject the wrapped method with ``OfflineError(message)`` when offline.

    The decorated object must expose a ``connectivity`` attribute holding a
    ``ConnectivityMonitor``.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(self, *args: Any, **kwargs: Any) -> Any:
            monitor: ConnectivityMonitor = self.connectivity
            if not monitor.is_online:
                logger.info("Rejected while offline", operation=func.__name__)
                raise OfflineError(message)
            return func(self, *args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator


__all__ = ["ConnectivityMonitor", "backend_healthy", "requires_online"]

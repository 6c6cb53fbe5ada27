"""
Controller factory wiring the cache, connectivity, remote and services.
"""

from __future__ import annotations

from typing import Optional

import requests
from sqlalchemy import Engine

from .activity import ActivityLog
from .auth import AuthClient
from .cache import LocalCache
from .categories import CategoryManager
from .config import Settings, get_settings
from .connectivity import ConnectivityMonitor
from .controller import NotesController
from .database import create_cache_engine
from .logging import get_logger
from .notes import NoteService
from .remote import RemoteClient


logger = get_logger(__name__)


def create_controller(
    settings: Optional[Settings] = None,
    *,
    engine: Optional[Engine] = None,
    http: Optional[requests.Session] = None,
    check_health: bool = True,
) -> NotesController:
    settings = settings or get_settings()
    cache = LocalCache(engine or create_cache_engine(settings.cache_database_url))

    connectivity = ConnectivityMonitor()
    remote = RemoteClient(
        settings.supabase_url,
        settings.supabase_anon_key,
        timeout=settings.request_timeout_seconds,
        connectivity=connectivity,
        http=http,
    )
    if check_health:
        connectivity.recheck(remote.health_url)

    auth = AuthClient(remote, cache, redirect_url=settings.redirect_url)
    remote.token_provider = auth.access_token

    def current_user_id() -> Optional[str]:
        return auth.session.user.id if auth.session else None

    activity = ActivityLog(remote, connectivity, current_user_id)
    controller = NotesController(
        remote=remote,
        auth=auth,
        cache=cache,
        connectivity=connectivity,
        notes=NoteService(
            remote,
            cache,
            connectivity,
            activity,
            current_user_id,
            image_bucket=settings.image_bucket,
        ),
        categories=CategoryManager(remote, cache, connectivity, current_user_id),
        activity=activity,
    )
    controller.start()
    logger.info("Controller ready", online=connectivity.is_online, backend=settings.supabase_url)
    return controller


__all__ = ["create_controller"]

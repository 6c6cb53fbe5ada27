"""
Unit Tests for the controller factory.
"""

from unittest.mock import MagicMock

import requests

from premium_notes.app import create_controller
from premium_notes.auth import VIEW_LOGIN
from premium_notes.config import Settings
from premium_notes.database import create_cache_engine


class TestCreateController:
    """Tests for wiring the application."""

    def test_fresh_controller(self, cache_url):
        """Should start on the login view without touching the network."""
        http = MagicMock(spec=requests.Session)
        settings = Settings()
        settings.supabase_url = "http://backend.test"
        settings.image_bucket = "bucket"

        controller = create_controller(settings, engine=create_cache_engine(cache_url), http=http, check_health=False)

        assert controller.current_view() == VIEW_LOGIN
        assert controller.notes.image_bucket == "bucket"
        assert controller.remote.health_url == "http://backend.test/auth/v1/health"
        assert controller.remote.token_provider() is None
        http.request.assert_not_called()

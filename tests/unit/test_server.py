"""
Unit Tests for the console entry point.
"""

from pathlib import Path
from unittest.mock import patch

import pytest

import premium_notes
from premium_notes.config import Settings
from premium_notes.server import APP_SCRIPT, build_command, main


class TestAppScript:
    """Tests for locating the UI script."""

    def test_script_ships_inside_package(self):
        """Should resolve the UI script under the installed package directory."""
        package_dir = Path(premium_notes.__file__).resolve().parent

        assert APP_SCRIPT.is_file()
        assert package_dir in APP_SCRIPT.parents


class TestBuildCommand:
    """Tests for the streamlit command line."""

    def test_binds_to_loopback_by_default(self):
        """Should keep the device-local session off other network interfaces."""
        command = build_command(Settings())

        assert command[:3] == ["streamlit", "run", str(APP_SCRIPT)]
        assert "--server.address=localhost" in command
        assert "--server.port=8501" in command

    def test_address_from_environment(self, monkeypatch):
        """Should honour an explicit bind address."""
        monkeypatch.setenv("NOTES_SERVER_ADDRESS", "127.0.0.1")
        monkeypatch.setenv("NOTES_SERVER_PORT", "9000")
        settings = Settings()
        settings.update_from_env()

        command = build_command(settings)

        assert "--server.address=127.0.0.1" in command
        assert "--server.port=9000" in command

    def test_main_runs_streamlit(self):
        """Should hand the command to the streamlit CLI and exit with its status."""
        with patch("premium_notes.server.stcli.main", return_value=0) as cli_main, \
                patch("premium_notes.server.sys") as fake_sys:
            fake_sys.exit.side_effect = SystemExit

            with pytest.raises(SystemExit):
                main()

        cli_main.assert_called_once_with()
        fake_sys.exit.assert_called_once_with(0)
        assert fake_sys.argv[:3] == ["streamlit", "run", str(APP_SCRIPT)]

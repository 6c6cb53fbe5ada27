"""
Entry-point to run the Streamlit UI.

The local cache holds the signed-in session for this device, so the UI
binds to the loopback interface unless configured otherwise.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Optional

from streamlit.web import cli as stcli

from .config import Settings, get_settings


APP_SCRIPT = Path(__file__).resolve().parent / "ui" / "streamlit_app.py"


def build_command(settings: Optional[Settings] = None) -> List[str]:
    settings = settings or get_settings()
    return [
        "streamlit",
        "run",
        str(APP_SCRIPT),
        f"--server.address={settings.server_address}",
        f"--server.port={settings.server_port}",
        f"--logger.level={'debug' if settings.debug else 'info'}",
    ]


def main() -> None:
    sys.argv = build_command()
    sys.exit(stcli.main())


if __name__ == "__main__":
    main()

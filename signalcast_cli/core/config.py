# signalcast_cli/core/config.py
from pathlib import Path
import os

# Backend URL (FastAPI)
BASE_URL = os.environ.get("SIGNALCAST_URL", "http://localhost:8000").rstrip("/")

# Push channel URL, same host with the websocket scheme
WS_URL = BASE_URL.replace("https://", "wss://", 1).replace("http://", "ws://", 1) + "/ws"

# Seconds before an HTTP call is abandoned
REQUEST_TIMEOUT = float(os.environ.get("SIGNALCAST_TIMEOUT", "5"))

# Seconds to wait before reopening a dropped push channel
RECONNECT_DELAY = float(os.environ.get("SIGNALCAST_RECONNECT_DELAY", "2"))

# Folder where the CLI keeps local data (token, etc.)
APP_DIR = Path(os.environ.get("SIGNALCAST_HOME", str(Path.home() / ".signalcast")))

# File holding the session token
SESSION_FILE = APP_DIR / "session.json"

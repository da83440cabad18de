# signalcast_cli/core/session.py
import json
import logging
from typing import Optional

from . import config

logger = logging.getLogger(__name__)


def save_token(access_token: str, email: Optional[str] = None) -> None:
    """
    Stores the session token (and the email it was issued for) in SESSION_FILE.
    """
    config.APP_DIR.mkdir(parents=True, exist_ok=True)
    data = {"access_token": access_token, "email": email}
    with open(config.SESSION_FILE, "w", encoding="utf-8") as f:
        json.dump(data, f)


def _load() -> dict:
    if not config.SESSION_FILE.exists():
        return {}
    try:
        with open(config.SESSION_FILE, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as exc:
        # An unreadable session file means there is no usable session
        logger.warning("Ignoring unreadable session file %s: %s", config.SESSION_FILE, exc)
        return {}
    return data if isinstance(data, dict) else {}


def load_token() -> Optional[str]:
    """
    Reads the session token. Returns None when there is no valid session file.
    """
    return _load().get("access_token")


def load_email() -> Optional[str]:
    return _load().get("email")


def is_logged_in() -> bool:
    return load_token() is not None


def clear_token() -> None:
    """
    Deletes the session file. Tokens are stateless, so discarding it is the logout.
    """
    if config.SESSION_FILE.exists():
        config.SESSION_FILE.unlink()

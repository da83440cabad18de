import requests
from typing import Any, Dict, List, Optional

from . import config


class ApiError(Exception):
    """A failed call. ``message`` is the server's ``detail`` when it sent one."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _auth_headers(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _request(method: str, path: str, **kwargs) -> Any:
    url = f"{config.BASE_URL}{path}"
    kwargs.setdefault("timeout", config.REQUEST_TIMEOUT)
    try:
        resp = requests.request(method, url, **kwargs)
    except requests.RequestException as exc:
        raise ApiError(f"Network error: {exc}")

    if resp.status_code >= 400:
        try:
            detail = resp.json().get("detail")
        except ValueError:
            detail = None
        if not isinstance(detail, str) or not detail:
            detail = f"Request failed with status {resp.status_code}"
        raise ApiError(detail, resp.status_code)

    try:
        return resp.json()
    except ValueError:
        raise ApiError(f"Invalid response from server (status {resp.status_code})", resp.status_code)


def api_register(email: str, password: str) -> dict:
    """
    Creates an account and returns the public identity.
    """
    return _request("POST", "/api/auth/register", json={"identifier": email, "secret": password})


def api_login(email: str, password: str) -> str:
    """
    Logs in and returns the session token.
    """
    data = _request("POST", "/api/auth/login", json={"identifier": email, "secret": password})
    token = data.get("token")
    if not token:
        raise ApiError("Login response did not contain a token")
    return token


def api_health() -> bool:
    return bool(_request("GET", "/api/health").get("ok"))


def api_create_signal(
    token: str,
    signal_type: str,
    event_timestamp: str,
    payload: Optional[dict] = None,
) -> dict:
    body = {"type": signal_type, "eventTimestamp": event_timestamp, "payload": payload or {}}
    return _request("POST", "/api/signals", json=body, headers=_auth_headers(token))


def api_list_signals(
    token: str,
    signal_type: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[dict]:
    """
    Snapshot of signals, newest event first.
    """
    params = {}
    if signal_type:
        params["type"] = signal_type
    if start:
        params["from"] = start
    if end:
        params["to"] = end
    if limit:
        params["limit"] = limit
    return _request("GET", "/api/signals", params=params, headers=_auth_headers(token))


def api_delete_signal(token: str, signal_id: str) -> bool:
    data = _request("DELETE", f"/api/signals/{signal_id}", headers=_auth_headers(token))
    return bool(data.get("ok"))

"""
Live session: authentication, snapshot fetch and push channel for one client.

States go UNAUTHENTICATED -> AUTHENTICATING -> LIVE. Entering LIVE starts
the snapshot fetch and the push listener at the same time; neither waits for
the other, the view's merge rules absorb the race.
"""
import json
import logging
import threading
from contextlib import contextmanager
from enum import Enum
from typing import Callable, Iterator, List, Optional
from urllib.parse import urlencode

from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidStatus
from websockets.sync.client import connect

from . import config
from .api import ApiError, api_delete_signal, api_list_signals, api_login
from .view import SignalView

logger = logging.getLogger(__name__)


class ClientState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    LIVE = "live"


class ChannelRefused(Exception):
    """The server rejected the push handshake (bad or expired token)."""


@contextmanager
def open_channel(token: str) -> Iterator:
    url = f"{config.WS_URL}?{urlencode({'token': token})}"
    try:
        ws = connect(url, open_timeout=config.REQUEST_TIMEOUT)
    except InvalidStatus as exc:
        raise ChannelRefused(f"Live channel refused (HTTP {exc.response.status_code})")
    with ws:
        yield ws


class LiveSession:
    def __init__(
        self,
        view: Optional[SignalView] = None,
        fetch: Callable[..., List[dict]] = api_list_signals,
        channel: Callable[[str], object] = open_channel,
        reconnect_delay: Optional[float] = None,
        on_error: Optional[Callable[[str], None]] = None,
        token: Optional[str] = None,
    ):
        self.view = view or SignalView()
        self.state = ClientState.UNAUTHENTICATED
        self.token = token
        self.filters: dict = {}
        self.last_error: Optional[str] = None
        self.reconnect_delay = config.RECONNECT_DELAY if reconnect_delay is None else reconnect_delay
        self._fetch = fetch
        self._channel_factory = channel
        self._on_error = on_error
        self._stop = threading.Event()
        self._threads: List[threading.Thread] = []
        self._channel = None

    # -- lifecycle -----------------------------------------------------------

    def login(self, email: str, password: str, **filters) -> str:
        self.state = ClientState.AUTHENTICATING
        try:
            token = api_login(email, password)
        except ApiError as exc:
            self.state = ClientState.UNAUTHENTICATED
            self._fail(exc.message)
            raise
        self.start(token, **filters)
        return token

    def start(self, token: str, **filters) -> None:
        """Go LIVE with ``token``: snapshot fetch and push listener race."""
        self.token = token
        self.filters = filters
        self.last_error = None
        self.state = ClientState.LIVE
        self._stop.clear()
        self._threads = [
            threading.Thread(target=self.refresh, name="signalcast-snapshot", daemon=True),
            threading.Thread(target=self.listen, name="signalcast-push", daemon=True),
        ]
        for thread in self._threads:
            thread.start()

    def close(self) -> None:
        """Stop the push listener. The view is kept."""
        self._stop.set()
        channel = self._channel
        if channel is not None and hasattr(channel, "close"):
            channel.close()
        for thread in self._threads:
            if thread is not threading.current_thread():
                thread.join(timeout=config.REQUEST_TIMEOUT)
        self._threads = []

    def logout(self) -> None:
        self.close()
        self.token = None
        self.view.clear()
        self.state = ClientState.UNAUTHENTICATED

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    # -- request-driven ------------------------------------------------------

    def refresh(self, **filters) -> bool:
        """Fetch a snapshot and replace the view with it."""
        if filters:
            self.filters = filters
        try:
            records = self._fetch(self.token, **self.filters)
        except ApiError as exc:
            self._fail(exc.message)
            return False
        self.view.replace(records)
        return True

    def delete(self, signal_id: str) -> None:
        api_delete_signal(self.token, signal_id)
        self.view.remove_local(signal_id)

    # -- push channel --------------------------------------------------------

    def handle_message(self, raw) -> bool:
        try:
            message = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
        except ValueError:
            logger.warning("Ignoring malformed push message: %r", raw)
            return False
        if not isinstance(message, dict):
            return False
        return self.view.apply_event(message)

    def listen(self) -> None:
        """Consume pushes until closed, reconnecting after unexpected drops.

        After a reconnect the view is re-seeded from a fresh snapshot, since
        events published while disconnected are never replayed.
        """
        reconnecting = False
        while not self._stop.is_set():
            try:
                with self._channel_factory(self.token) as channel:
                    self._channel = channel
                    if reconnecting:
                        self.refresh()
                    for raw in channel:
                        self.handle_message(raw)
            except ChannelRefused as exc:
                self.state = ClientState.UNAUTHENTICATED
                self._fail(str(exc))
                self._stop.set()
                return
            except (ConnectionClosed, InvalidHandshake, OSError) as exc:
                if self._stop.is_set():
                    return
                self._fail(f"Live channel lost: {exc}")
            finally:
                self._channel = None

            reconnecting = True
            if self._stop.wait(self.reconnect_delay):
                return

    def _fail(self, message: str) -> None:
        self.last_error = message
        logger.warning(message)
        if self._on_error is not None:
            self._on_error(message)

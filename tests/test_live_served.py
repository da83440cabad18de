import socket
import threading
import time
import unittest
from unittest.mock import patch

import uvicorn
from typer.testing import CliRunner

from signalcast.live.broadcaster import broadcaster
from signalcast.main import app
from signalcast_cli.core import config
from signalcast_cli.core.api import api_create_signal, api_delete_signal, api_login, api_register
from signalcast_cli.core.live import ChannelRefused, ClientState, LiveSession, open_channel
from signalcast_cli.main import app as cli_app

from .helpers import PASSWORD, reset_database

runner = CliRunner()


def _free_port():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def _wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


class TestServedLiveSession(unittest.TestCase):
    """Real uvicorn server, real requests and websockets clients."""

    @classmethod
    def setUpClass(cls):
        port = _free_port()
        cls.server = uvicorn.Server(
            uvicorn.Config(app, host="127.0.0.1", port=port, log_level="warning")
        )
        cls.thread = threading.Thread(target=cls.server.run, daemon=True)
        cls.thread.start()
        if not _wait_for(lambda: cls.server.started, timeout=10):
            raise RuntimeError("server did not start")

        cls.patches = [
            patch.object(config, "BASE_URL", f"http://127.0.0.1:{port}"),
            patch.object(config, "WS_URL", f"ws://127.0.0.1:{port}/ws"),
        ]
        for p in cls.patches:
            p.start()

    @classmethod
    def tearDownClass(cls):
        for p in cls.patches:
            p.stop()
        cls.server.should_exit = True
        cls.thread.join(timeout=10)

    def setUp(self):
        reset_database()

    def _account(self, email):
        api_register(email, PASSWORD)
        return api_login(email, PASSWORD)

    def test_bad_token_is_refused_at_handshake(self):
        with self.assertRaises(ChannelRefused) as ctx:
            with open_channel("garbage"):
                pass
        self.assertEqual(str(ctx.exception), "Live channel refused (HTTP 403)")

        errors = []
        session = LiveSession(on_error=errors.append, reconnect_delay=0.1)
        session.start("garbage")
        self.assertTrue(_wait_for(lambda: session.stopped))
        session.close()

        self.assertEqual(session.state, ClientState.UNAUTHENTICATED)
        self.assertIn("Live channel refused (HTTP 403)", errors)
        self.assertEqual(len(broadcaster.registry), 0)

    def test_create_and_delete_reach_another_session(self):
        token_a = self._account("a@x.com")
        token_b = self._account("b@x.com")

        session = LiveSession(reconnect_delay=0.1)
        session.start(token_b)
        try:
            self.assertTrue(_wait_for(lambda: len(broadcaster.registry) == 1))
            for thread in list(session._threads):
                if thread.name == "signalcast-snapshot":
                    thread.join(timeout=5)
            self.assertEqual(len(session.view), 0)

            record = api_create_signal(token_a, "ping", "2024-05-01T10:00:00Z", {"n": 1})
            self.assertTrue(_wait_for(lambda: record["id"] in session.view))
            self.assertEqual(session.view.records()[0]["owner"], "a@x.com")

            api_delete_signal(token_a, record["id"])
            self.assertTrue(_wait_for(lambda: record["id"] not in session.view))
            self.assertEqual(session.state, ClientState.LIVE)
        finally:
            session.close()

        self.assertTrue(_wait_for(lambda: len(broadcaster.registry) == 0))

    @patch("signalcast_cli.signals.commands.load_token")
    def test_watch_exits_when_channel_refuses_token(self, mock_token):
        mock_token.return_value = "garbage"
        result = runner.invoke(cli_app, ["signals", "watch"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Error: Live channel refused (HTTP 403)", result.stdout)


if __name__ == "__main__":
    unittest.main()

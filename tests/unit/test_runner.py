"""Tests for the uvicorn runner."""

import uvicorn

from algoshelf.app import App
from algoshelf.core.core import Core
from algoshelf.web.runner import run_server


class TestRunServer:
    """Tests for run_server."""

    def test_proxy_settings_passed_to_uvicorn(self, config, fake_db, monkeypatch):
        """Test that forwarded addresses are resolved by uvicorn from trusted proxies only."""
        calls = []
        monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append(kwargs))
        proxied = config.model_copy(update={"trust_forwarded_for": True, "forwarded_allow_ips": "10.0.0.2"})

        run_server(App(proxied, core=Core(proxied, database=fake_db)), proxied)

        assert calls[0]["proxy_headers"] is True
        assert calls[0]["forwarded_allow_ips"] == "10.0.0.2"
        assert calls[0]["port"] == proxied.port

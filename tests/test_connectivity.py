"""Tests pour la sonde de connectivité."""
import socket
from unittest.mock import MagicMock

from airquality import connectivity
from airquality.connectivity import probe_connection, service_address


class TestConnectivity:

    def test_service_address(self):
        assert service_address("https://api.gios.gov.pl/pjp-api/rest") == ("api.gios.gov.pl", 443)
        assert service_address("http://localhost:8080/api") == ("localhost", 8080)
        assert service_address("http://example.org") == ("example.org", 80)

    def test_probe_success(self, monkeypatch):
        connection = MagicMock()
        create = MagicMock(return_value=connection)
        monkeypatch.setattr(connectivity.socket, "create_connection", create)

        assert probe_connection("https://api.gios.gov.pl/pjp-api/rest", timeout=1.5) is True
        create.assert_called_once_with(("api.gios.gov.pl", 443), timeout=1.5)
        connection.__exit__.assert_called_once()

    def test_probe_failure(self, monkeypatch):
        monkeypatch.setattr(
            connectivity.socket, "create_connection", MagicMock(side_effect=socket.timeout("timed out"))
        )

        assert probe_connection("https://api.gios.gov.pl/pjp-api/rest") is False

    def test_probe_without_host(self):
        assert probe_connection("not a url") is False

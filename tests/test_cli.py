"""Tests for the typer command line."""

import httpx
import pytest
from typer.testing import CliRunner

from ticketoffice import cli
from ticketoffice.client import TicketOffice

SEARCH = "/api/public/v1/event/search"
ME = {"id": 1, "username": "ana", "email": "ana@example.com", "role": ["SELLER"]}

runner = CliRunner()


@pytest.fixture(autouse=True)
def wired(monkeypatch, settings, fake_api):
    monkeypatch.setattr(cli, "_office", lambda: TicketOffice(settings, transport=fake_api.transport))
    return fake_api


@pytest.fixture
def catalog(fake_api, payload):
    fake_api.add("GET", SEARCH, httpx.Response(200, json=payload(
        {"id": "a", "name": "Festival de Jazz", "date": "2025-06-07T18:00:00Z", "price": 50000,
         "currency": "COP", "location": "Bogotá, Colombia"},
        {"id": "b", "name": "Concierto", "date": "2025-06-01T20:00:00Z", "price": 120,
         "currency": "COP", "location": "Medellín, Colombia", "status": "INACTIVE"},
        {"id": "c", "name": "Obra", "date": "", "price": 80,
         "currency": "COP", "location": "Buenos Aires, Argentina"},
    )))
    return fake_api


class TestSearch:
    """Tests for the search and facets commands."""

    def test_lists_matching_events(self, catalog):
        result = runner.invoke(cli.app, ["search", "--country", "COL"])
        assert result.exit_code == 0, result.output
        lines = result.output.strip().splitlines()
        assert lines[0].startswith("a  7 de junio de 2025, 18:00  Festival de Jazz")
        assert "COP 50.000" in lines[0]
        assert lines[1].startswith("c  -  Obra")
        assert lines[-1] == "Page 1/1 (2 event(s))"
        assert catalog.requests[0].url.params["pageSize"] == "100"

    def test_filters_and_sort(self, catalog):
        result = runner.invoke(
            cli.app, ["search", "-c", "COL", "--max-price", "100", "--sort", "priceDesc"]
        )
        assert result.exit_code == 0, result.output
        assert result.output.startswith("c  ")

    def test_no_results(self, catalog):
        result = runner.invoke(cli.app, ["search", "-c", "COL", "--category", "Feria"])
        assert "No events found." in result.output

    def test_upstream_error_exits_1(self, fake_api):
        fake_api.add("GET", SEARCH, httpx.Response(503))
        result = runner.invoke(cli.app, ["search", "-c", "COL"])
        assert result.exit_code == 1
        assert "Error: The server could not complete the action" in result.output

    def test_facets(self, catalog):
        result = runner.invoke(cli.app, ["facets", "-c", "COL"])
        assert result.exit_code == 0, result.output
        assert "Countries: Argentina, Colombia" in result.output
        assert "  Colombia: Bogotá, Medellín" in result.output


class TestFavorites:
    """Tests for the favorites sub-commands."""

    def test_add_list_remove(self):
        assert runner.invoke(cli.app, ["favorites", "add", "e1"]).exit_code == 0
        assert "e1" in runner.invoke(cli.app, ["favorites", "list"]).output
        runner.invoke(cli.app, ["favorites", "remove", "e1"])
        assert "No favorites yet." in runner.invoke(cli.app, ["favorites", "list"]).output

    def test_saved_only_search(self, catalog):
        runner.invoke(cli.app, ["favorites", "add", "c"])
        result = runner.invoke(cli.app, ["search", "-c", "COL", "--saved-only"])
        assert result.output.startswith("c  ")
        assert "(1 event(s))" in result.output


class TestSession:
    """Tests for login, whoami and logout."""

    def test_login_whoami_logout(self, fake_api):
        fake_api.add("POST", "/auth/login", httpx.Response(200, json={"token": "tok"}))
        fake_api.add("GET", "/users/me", httpx.Response(200, json=ME))

        result = runner.invoke(cli.app, ["login", "--username", "ana", "--password", "pw"])
        assert result.exit_code == 0, result.output
        assert "Logged in as ana (seller)." in result.output

        result = runner.invoke(cli.app, ["whoami"])
        assert result.exit_code == 0, result.output
        assert "ana <ana@example.com> role=seller" in result.output
        assert "Validar Entradas" in result.output
        assert "Vendedores" not in result.output

        assert "Logged out." in runner.invoke(cli.app, ["logout"]).output
        assert runner.invoke(cli.app, ["whoami"]).exit_code == 1

    def test_bad_credentials(self, fake_api):
        fake_api.add("POST", "/auth/login", httpx.Response(401))
        result = runner.invoke(cli.app, ["login", "--username", "ana", "--password", "nope"])
        assert result.exit_code == 1
        assert "session has expired" in result.output

    def test_login_reply_without_token(self, fake_api):
        fake_api.add("POST", "/auth/login", httpx.Response(200, json={"message": "ok"}))
        result = runner.invoke(cli.app, ["login", "--username", "ana", "--password", "pw"])
        assert result.exit_code == 1
        assert "Error: The server sent an unexpected response" in result.output

    def test_malformed_user_profile(self, fake_api):
        fake_api.add("POST", "/auth/login", httpx.Response(200, json={"token": "tok"}))
        fake_api.add("GET", "/users/me", httpx.Response(200, json={"id": 1}))
        result = runner.invoke(cli.app, ["login", "--username", "ana", "--password", "pw"])
        assert result.exit_code == 1
        assert "Error:" in result.output


class TestBackoffice:
    """Tests for validate and sales-csv."""

    def test_validate_ok(self, fake_api):
        fake_api.add("POST", "/api/public/v1/checkout/session/abc/validate", httpx.Response(204))
        result = runner.invoke(cli.app, ["validate", "abc"])
        assert result.exit_code == 0
        assert "Ticket validated." in result.output

    def test_validate_unknown_ticket(self, fake_api):
        fake_api.add("POST", "/api/public/v1/checkout/session/zzz/validate", httpx.Response(404))
        result = runner.invoke(cli.app, ["validate", "zzz"])
        assert result.exit_code == 1
        assert "Ticket not found" in result.output

    def test_sales_csv_to_file(self, fake_api, tmp_path):
        fake_api.add("GET", "/api/v1/sales", httpx.Response(200, json=[{
            "id": "s1", "date": "2025-06-01T10:00:00Z", "eventId": "e1", "eventName": "Jazz",
            "sellerId": "u1", "sellerName": "Norte", "buyerEmail": "a@b.co", "quantity": 1,
            "unitPrice": 10, "total": 10, "paymentStatus": "paid", "orderId": "O-1",
        }]))
        out = tmp_path / "sales.csv"
        result = runner.invoke(cli.app, ["sales-csv", "--from", "2025-06-01", "-o", str(out)])
        assert result.exit_code == 0, result.output
        assert "Wrote 1 sale(s)" in result.output
        assert fake_api.requests[0].url.params["from"] == "2025-06-01"
        text = out.read_text(encoding="utf-8")
        assert text.startswith('"Fecha","Evento"')
        assert '"Jazz"' in text

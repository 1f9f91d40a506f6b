import datetime
import json

import pytest
import requests

from api_client import DEFAULT_CONFIG, ApiClient, load_config
from errors import ApiError, SessionExpiredError
from conftest import make_response


def test_load_config_defaults_when_missing(tmp_path):
    assert load_config(str(tmp_path / "nope.json")) == DEFAULT_CONFIG


def test_load_config_merges_known_keys(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"api_base_url": "http://srv/api", "timeout": 5, "extra": 1}), encoding="utf-8")
    config = load_config(str(path))
    assert config["api_base_url"] == "http://srv/api"
    assert config["timeout"] == 5
    assert config["session_file"] == "session.json"
    assert "extra" not in config


@pytest.mark.parametrize("content", ["[1, 2]", "{no json"])
def test_load_config_invalid_file(tmp_path, content):
    path = tmp_path / "config.json"
    path.write_text(content, encoding="utf-8")
    assert load_config(str(path)) == DEFAULT_CONFIG


def test_from_config():
    c = ApiClient.from_config({"api_base_url": "http://srv/api/", "timeout": 7})
    assert c.base_url == "http://srv/api"
    assert c.timeout == 7


def test_login_unwraps_envelope_without_token_header(client, http):
    http.queue(make_response(body={"success": True, "data": {"user": {"id": 1}, "token": "t0k"}}))
    data = client.login("a@x.mx", "pw")

    assert data["token"] == "t0k"
    call = http.calls[0]
    assert call.method == "POST"
    assert call.url == "http://test/api/auth/login"
    assert call.json == {"email": "a@x.mx", "password": "pw"}
    assert call.timeout == 5
    assert "Authorization" not in call.headers


def test_login_401_is_credentials_error_not_session(client, http):
    http.queue(make_response(status=401, body={"success": False}))
    with pytest.raises(ApiError) as exc:
        client.login("a@x.mx", "bad")
    assert not isinstance(exc.value, SessionExpiredError)
    assert exc.value.message == "Credenciales incorrectas"
    assert exc.value.status == 401


def test_login_server_message_wins(client, http):
    http.queue(make_response(status=400, body={"success": False, "message": "Usuario bloqueado"}))
    with pytest.raises(ApiError, match="Usuario bloqueado"):
        client.login("a@x.mx", "pw")


def test_login_without_token_fails(client, http):
    http.queue(make_response(body={"success": True, "data": {"user": {"id": 1}}}))
    with pytest.raises(ApiError):
        client.login("a@x.mx", "pw")


def test_bearer_header_once_authenticated(client, http):
    client.token = "abc"
    http.queue(make_response(body={"success": True, "data": [{"id": 1}]}))
    assert client.professors() == [{"id": 1}]
    assert http.calls[0].headers["Authorization"] == "Bearer abc"
    assert http.calls[0].url == "http://test/api/users/professors"


def test_401_on_authenticated_call_expires_session(client, http):
    client.token = "old"
    http.queue(make_response(status=401, body={"message": "Token inválido"}))
    with pytest.raises(SessionExpiredError, match="Token inválido"):
        client.me()


def test_success_false_is_api_error(client, http):
    client.token = "abc"
    http.queue(make_response(body={"success": False, "message": "Horario ocupado"}))
    with pytest.raises(ApiError, match="Horario ocupado"):
        client.create_advisory({"professorId": 7})


def test_body_without_data_is_the_payload(client, http):
    client.token = "abc"
    http.queue(make_response(body=[{"id": 5}]))
    assert client.my_schedules() == [{"id": 5}]


def test_html_error_page_is_reduced_to_text(client, http):
    client.token = "abc"
    page = b"<html><body><h1>502 Bad Gateway</h1><p>nginx</p></body></html>"
    http.queue(make_response(status=502, raw=page, content_type="text/html"))
    with pytest.raises(ApiError) as exc:
        client.director_history()
    assert exc.value.message == "502 Bad Gateway nginx"
    assert exc.value.status == 502


def test_undecodable_body(client, http):
    client.token = "abc"
    http.queue(make_response(raw=b"not json", content_type="text/plain"))
    with pytest.raises(ApiError, match="Respuesta inválida"):
        client.me()


def test_network_error_becomes_api_error(client, http):
    http.queue(requests.ConnectionError("refused"))
    with pytest.raises(ApiError) as exc:
        client.login("a@x.mx", "pw")
    assert exc.value.status is None
    assert "Error de conexión" in exc.value.message


def test_logout_without_token_does_nothing(client, http):
    client.logout()
    assert http.calls == []


def test_status_patch_and_availability_paths(client, http):
    client.token = "abc"
    http.queue(
        make_response(body={"success": True, "data": {"id": 4, "status": "accepted"}}),
        make_response(body={"success": True, "data": {"id": 9, "isAvailable": False}}),
        make_response(status=204),
    )
    client.update_advisory_status(4, {"status": "accepted"})
    client.set_schedule_availability(9, False)
    assert client.delete_schedule(9) is None

    assert [(c.method, c.url) for c in http.calls] == [
        ("PUT", "http://test/api/advisories/4/status"),
        ("PUT", "http://test/api/schedules/9/availability"),
        ("DELETE", "http://test/api/schedules/9"),
    ]
    assert http.calls[1].json == {"isAvailable": False}


def test_available_slots_path(client, http):
    client.token = "abc"
    http.queue(make_response(body={"success": True, "data": []}))
    assert client.available_slots(7, datetime.date(2030, 3, 11)) == []
    assert http.calls[0].url == "http://test/api/schedules/available/7/2030-03-11"


def test_advisory_report_returns_bytes(client, http):
    client.token = "abc"
    http.queue(make_response(raw=b"%PDF-1.4 ...", content_type="application/pdf"))
    content = client.advisory_report(datetime.date(2025, 1, 1), datetime.date(2025, 6, 30), professor_id=7)

    assert content == b"%PDF-1.4 ..."
    assert http.calls[0].params == {"startDate": "2025-01-01", "endDate": "2025-06-30", "professorId": 7}


def test_advisory_report_error(client, http):
    client.token = "abc"
    http.queue(make_response(status=500, raw=b"", content_type="application/pdf"))
    with pytest.raises(ApiError, match="Error al generar reporte: 500"):
        client.advisory_report(datetime.date(2025, 1, 1), datetime.date(2025, 6, 30))

"""FastAPI console tests covering pages, forms and JSON endpoints."""

from __future__ import annotations

import inspect

import pytest
from fastapi.routing import APIRoute

from app import settings
from tests.conftest import _console_state, get_test_logger
from tests.helpers import (
    admin_token,
    build_forecast,
    build_model,
    build_plant,
    build_readings,
    build_role,
    build_user,
    page,
)

logger = get_test_logger(__name__)
logger.info("Starting tests for UI module")

TIMES = ["2025-03-05T13:00:00Z", "2025-03-05T14:00:00Z"]


def _plant_routes(fake_session) -> None:
    fake_session.add("GET", "power_plant/1", build_plant(1))
    fake_session.add("GET", "power_plant/1/models", [build_model(10, "xgb")])
    fake_session.add("GET", "forecast/10", build_forecast(TIMES))
    fake_session.add("GET", "reading/1", build_readings(TIMES))


def test_pages_redirect_to_login_without_token(anonymous_client) -> None:
    response = anonymous_client.get("/dashboard", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/login"


def test_api_returns_401_json_without_token(anonymous_client) -> None:
    response = anonymous_client.get("/api/models/10/horizon")
    assert response.status_code == 401
    assert response.json() == {"message": "User not authenticated", "statusCode": 401}


def test_login_sets_cookie_and_logout_clears_it(anonymous_client) -> None:
    assert anonymous_client.get("/login").status_code == 200

    missing = anonymous_client.post("/login", data={"token": "  "}, follow_redirects=False)
    assert missing.status_code == 400
    assert "A token is required" in missing.text

    response = anonymous_client.post("/login", data={"token": "abc"}, follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard"
    assert f"{settings.TOKEN_COOKIE}=abc" in response.headers["set-cookie"]
    assert "httponly" in response.headers["set-cookie"].lower()

    logout = anonymous_client.get("/logout", follow_redirects=False)
    assert logout.headers["location"] == "/login"
    assert f'{settings.TOKEN_COOKIE}=""' in logout.headers["set-cookie"]


def test_dashboard_renders_chart_and_map(console_client, fake_session, operator_token) -> None:
    fake_session.add(
        "GET",
        "dashboard/production_data",
        [{"date": TIMES[0], "value": 10, "type": "production", "plant": "Split"}],
    )
    fake_session.add("GET", "power_plant/overview", {"message": "map down"}, status_code=502)

    response = console_client.get("/dashboard")

    assert response.status_code == 200
    assert "Split (production)" in response.text
    assert "map down" in response.text
    call = fake_session.last("GET", "dashboard/production_data")
    assert call.headers["Authorization"] == f"Bearer {operator_token}"


def test_language_switch_sets_cookie(console_client) -> None:
    response = console_client.get("/lang/hr", headers={"referer": "/plants"}, follow_redirects=False)
    assert response.headers["location"] == "/plants"
    assert f"{settings.LANG_COOKIE}=hr" in response.headers["set-cookie"]


def test_plants_list_and_search(console_client, fake_session) -> None:
    fake_session.add("GET", "power_plant", [build_plant(1)], headers={"X-Total-Count": "1"})
    fake_session.add("GET", "models", {"models": [], "total_count": 0})

    listing = console_client.get("/plants", params={"q": "split"})
    found = console_client.get("/search", params={"q": "split"})

    assert listing.status_code == 200
    assert "Solana Split" in listing.text
    assert ("q", "split") in fake_session.last("GET", "power_plant").param_list()
    assert found.status_code == 200
    assert "Solana Split" in found.text


def test_plant_create_validates_then_redirects(console_client, fake_session) -> None:
    invalid = console_client.post(
        "/plants/create",
        data={"name": "", "latitude": "95", "longitude": "16", "capacity": "100"},
    )
    assert invalid.status_code == 422
    assert "This field is required" in invalid.text
    assert fake_session.calls_for("POST", "power_plant") == []

    fake_session.add("POST", "power_plant", build_plant(7, name="Zadar"))
    response = console_client.post(
        "/plants/create",
        data={"name": "Zadar", "latitude": "44.1", "longitude": "15.2", "capacity": "1000"},
        follow_redirects=False,
    )
    assert response.status_code == 303
    assert response.headers["location"] == "/plants/show/7"
    assert fake_session.last("POST", "power_plant").json["name"] == "Zadar"


def test_plant_show_lists_times_of_forecast(console_client, fake_session) -> None:
    _plant_routes(fake_session)
    fake_session.add("GET", "forecast/10/timestamps", ["2025-03-05T06:00:00Z"])

    response = console_client.get(
        "/plants/show/1",
        params={"tab": "tof", "model_id": 10, "combo": "10|2025-03-05T06:00:00Z"},
    )

    assert response.status_code == 200
    assert "05.03.2025 06:00" in response.text


def test_readings_upload_rejects_non_csv(console_client, fake_session) -> None:
    _plant_routes(fake_session)
    response = console_client.post(
        "/plants/1/readings",
        files={"file": ("readings.xlsx", b"data", "application/octet-stream")},
    )
    assert response.status_code == 400
    assert fake_session.calls_for("POST", "reading/1") == []


def test_readings_upload_shows_backend_result(console_client, fake_session) -> None:
    _plant_routes(fake_session)
    fake_session.add("POST", "reading/1", {"success": False, "message": "Bad rows", "validation_errors": ["row 3"]})

    response = console_client.post("/plants/1/readings", files={"file": ("readings.csv", b"a,b\n", "text/csv")})

    assert response.status_code == 200
    assert "Bad rows" in response.text
    assert "row 3" in response.text


def test_backend_error_renders_error_page(console_client, fake_session) -> None:
    fake_session.add("GET", "power_plant/1", {"message": "Plant exploded"}, status_code=500)
    response = console_client.get("/plants/show/1")
    assert response.status_code == 500
    assert "Plant exploded" in response.text


def test_backend_401_clears_session(console_client, fake_session) -> None:
    fake_session.add("GET", "power_plant/1", {"message": "expired"}, status_code=401)
    response = console_client.get("/plants/show/1", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/login"
    assert settings.TOKEN_COOKIE in response.headers["set-cookie"]


def test_public_forecast_page_needs_no_login(anonymous_client, fake_session) -> None:
    _plant_routes(fake_session)
    response = anonymous_client.get("/forecast/1")
    assert response.status_code == 200
    assert "xgb" in response.text
    assert "Authorization" not in fake_session.last("GET", "forecast/10").headers


def test_forecast_json_includes_readings(anonymous_client, fake_session) -> None:
    _plant_routes(fake_session)

    response = anonymous_client.get(
        "/api/plants/1/forecasts",
        params={"start": TIMES[0], "end": TIMES[1], "readings": "true"},
    )

    body = response.json()
    assert response.status_code == 200
    assert [series["name"] for series in body["series"]] == ["xgb", "Readings"]
    assert body["series"][1]["color"] == "#393939"
    assert body["meta"] == {"from": TIMES[0], "to": TIMES[1], "rows": 4}


def test_forecast_json_rejects_inverted_range(anonymous_client) -> None:
    response = anonymous_client.get("/api/plants/1/forecasts", params={"start": TIMES[1], "end": TIMES[0]})
    assert response.status_code == 400
    assert response.json()["message"] == "End date must be after start date"


def test_forecast_table_and_csv(console_client, fake_session) -> None:
    _plant_routes(fake_session)
    params = {"start": TIMES[0], "end": TIMES[1], "readings": "true"}

    table = console_client.get("/api/plants/1/forecasts/table", params=params).json()
    csv = console_client.get("/api/plants/1/forecasts.csv", params=params)

    assert table["columns"] == ["xgb", "Readings"]
    assert table["rows"][0]["xgb"] == 100.0
    assert csv.headers["content-disposition"] == 'attachment; filename="forecast_data.csv"'
    assert csv.text.splitlines() == [
        "Date,xgb,Readings",
        f"{TIMES[0]},100.0,90.0",
        f"{TIMES[1]},110.0,95.0",
    ]


def test_tof_endpoints(console_client, fake_session) -> None:
    tof = "2025-03-05T06:00:00Z"
    fake_session.add("GET", "power_plant/1/models", [build_model(10, "xgb")])
    fake_session.add("GET", "forecast/10/timestamps", [tof])
    fake_session.add("GET", "forecast/time_of_forecast/10", build_forecast(TIMES))

    tofs = console_client.get("/api/models/10/tofs").json()
    chart = console_client.get("/api/plants/1/tof", params={"combo": f"10|{tof}"}).json()
    invalid = console_client.get("/api/plants/1/tof", params={"combo": "broken"})
    csv = console_client.get("/api/plants/1/tof.csv", params={"combo": f"10|{tof}"})

    assert tofs == {"tofs": [{"value": tof, "label": "05.03.2025 06:00"}]}
    assert chart["series"][0]["name"] == "xgb (05.03.2025 06:00)"
    assert invalid.status_code == 400
    assert csv.headers["content-disposition"].startswith('attachment; filename="tof_forecasts_')


def test_model_metric_endpoints(console_client, fake_session) -> None:
    fake_session.add("GET", "metric/horizon/10", [{"metric_type": "MAE", "horizon": "2", "value": "1.5"}])
    fake_session.add("GET", "metric/cycle/10", [{"time_of_forecast": TIMES[0], "metric_type": "RMSE", "value": "3"}])

    horizon = console_client.get("/api/models/10/horizon").json()
    cycle = console_client.get("/api/models/10/cycle", params={"start_date": "2025-03-01", "end_date": "2025-03-07"})

    assert horizon["categories"] == [2.0]
    assert fake_session.last("GET", "metric/cycle/10").params == {"start_date": "2025-03-01", "end_date": "2025-03-07"}
    assert cycle.json()["series"][0]["name"] == "RMSE"


def test_model_create_requires_file(console_client, fake_session) -> None:
    fake_session.add("GET", "power_plant", [build_plant(1)])
    fake_session.add("GET", "models/weather_params", ["ghi", "temperature"])
    data = {"model_name": "xgb", "model_type": "xgboost", "version": "1", "plant_id": "1", "parameters": ["ghi"]}

    missing = console_client.post("/models/create", data=data)
    assert missing.status_code == 422
    assert "A model file is required" in missing.text

    fake_session.add("POST", "models", {"id": 12})
    created = console_client.post(
        "/models/create",
        data=data,
        files={"file": ("model.pkl", b"bytes", "application/octet-stream")},
        follow_redirects=False,
    )
    assert created.headers["location"] == "/models/show/12"


def test_users_page_requires_permission(console_client, fake_session) -> None:
    console_client.cookies.set(settings.TOKEN_COOKIE, admin_token(permissions=[]))
    response = console_client.get("/users")
    assert response.status_code == 403
    assert "You are not allowed to do this" in response.text
    assert fake_session.calls_for("GET", "users") == []


def test_users_page_and_create(console_client, fake_session) -> None:
    fake_session.add("GET", "users", page([build_user()], total=1))
    fake_session.add("GET", "roles", page([build_role()]))
    fake_session.add("POST", "users", {"ticketUrl": "https://auth.test/ticket/abc"})

    listing = console_client.get("/users")
    created = console_client.post("/users/create", data={"email": "new@example.test", "connection": "db"})
    invalid = console_client.post("/users/create", data={"email": "nope", "connection": "db"})

    assert listing.status_code == 200
    assert "2025-03-04 10:15:30" in listing.text
    assert "https://auth.test/ticket/abc" in created.text
    assert invalid.status_code == 422
    assert len(fake_session.calls_for("POST", "users")) == 1


def test_permissions_save_redirects(console_client, fake_session) -> None:
    fake_session.add("PUT", "permissions", None, status_code=204)
    response = console_client.post(
        "/permissions",
        data={"permissionName": ["user:read", "user:create"], "description": ["Read", "Create"]},
        follow_redirects=False,
    )
    assert response.status_code == 303
    assert response.headers["location"] == "/permissions?saved=1"
    assert fake_session.last("PUT", "permissions").json == {
        "permissions": [
            {"permissionName": "user:read", "description": "Read"},
            {"permissionName": "user:create", "description": "Create"},
        ]
    }


def test_permissions_rejects_duplicates(console_client, fake_session) -> None:
    response = console_client.post(
        "/permissions",
        data={"permissionName": ["user:read", "user:read"], "description": ["Read", "Again"]},
    )
    assert response.status_code == 422
    assert fake_session.calls_for("PUT", "permissions") == []


def test_unknown_api_route_is_json_404(console_client) -> None:
    response = console_client.get("/api/nothing-here")
    assert response.status_code == 404
    assert response.json()["statusCode"] == 404


def test_route_handlers_run_off_the_event_loop() -> None:
    from ui.server import app

    uploads = {"plants_upload_readings", "models_create", "models_playground_run"}
    coroutine_routes = {
        route.name
        for route in app.routes
        if isinstance(route, APIRoute) and inspect.iscoroutinefunction(route.endpoint)
    }
    assert coroutine_routes == uploads


@pytest.fixture
def configured_client(fake_session, operator_token):
    """Console client with a configured static token and an operator cookie."""
    from fastapi.testclient import TestClient

    from ui.server import app, get_console_state

    state = _console_state(fake_session, "static-token")
    app.dependency_overrides[get_console_state] = lambda: state
    client = TestClient(app)
    client.cookies.set(settings.TOKEN_COOKIE, operator_token)
    try:
        yield client
    finally:
        app.dependency_overrides.clear()


def test_public_forecast_never_sends_a_token(configured_client, fake_session) -> None:
    _plant_routes(fake_session)

    page_response = configured_client.get("/forecast/1")
    chart = configured_client.get("/api/plants/1/forecasts", params={"readings": "true"})

    assert page_response.status_code == 200
    assert chart.status_code == 200
    for path in ("power_plant/1/models", "forecast/10", "reading/1"):
        assert all("Authorization" not in call.headers for call in fake_session.calls_for("GET", path))


def test_forecast_json_keeps_forecasts_when_readings_fail(anonymous_client, fake_session) -> None:
    _plant_routes(fake_session)
    fake_session.add("GET", "reading/1", {"message": "boom"}, status_code=500)

    response = anonymous_client.get(
        "/api/plants/1/forecasts",
        params={"start": TIMES[0], "end": TIMES[1], "readings": "true"},
    )

    body = response.json()
    assert response.status_code == 200
    assert [series["name"] for series in body["series"]] == ["xgb"]
    assert body["meta"]["readingsError"] == "boom"


def test_forecast_table_reports_readings_failure(console_client, fake_session) -> None:
    _plant_routes(fake_session)
    fake_session.add("GET", "reading/1", {"message": "boom"}, status_code=500)
    params = {"start": TIMES[0], "end": TIMES[1], "readings": "true"}

    table = console_client.get("/api/plants/1/forecasts/table", params=params).json()
    csv = console_client.get("/api/plants/1/forecasts.csv", params=params)

    assert table["columns"] == ["xgb"]
    assert table["readingsError"] == "boom"
    assert csv.status_code == 200
    assert csv.text.splitlines()[0] == "Date,xgb"


def test_forecast_json_rejects_inverted_mixed_zone_range(anonymous_client) -> None:
    response = anonymous_client.get(
        "/api/plants/1/forecasts",
        params={"start": "2025-03-05T10:00:00Z", "end": "2025-03-05T09:00:00"},
    )
    assert response.status_code == 400


def test_forecast_json_converts_offsets_to_utc(anonymous_client, fake_session) -> None:
    _plant_routes(fake_session)

    response = anonymous_client.get(
        "/api/plants/1/forecasts",
        params={"start": "2025-03-05T15:00:00+02:00", "end": "2025-03-05T16:00:00+02:00"},
    )

    assert response.status_code == 200
    assert fake_session.last("GET", "forecast/10").params == {
        "start_date": TIMES[0],
        "end_date": TIMES[1],
    }


def test_forecast_table_and_csv_filter_models(console_client, fake_session) -> None:
    _plant_routes(fake_session)
    fake_session.add("GET", "power_plant/1/models", [build_model(10, "xgb"), build_model(11, "lstm")])
    fake_session.add("GET", "forecast/11", build_forecast(TIMES, start=200.0))
    params = [("start", TIMES[0]), ("end", TIMES[1]), ("readings", "true"), ("model", "11")]

    table = console_client.get("/api/plants/1/forecasts/table", params=params).json()
    csv = console_client.get("/api/plants/1/forecasts.csv", params=params)

    assert table["columns"] == ["lstm", "Readings"]
    assert csv.text.splitlines()[0] == "Date,lstm,Readings"
    assert fake_session.calls_for("GET", "forecast/10") == []

    both = console_client.get(
        "/api/plants/1/forecasts/table",
        params=[("start", TIMES[0]), ("end", TIMES[1]), ("model", "10"), ("model", "11")],
    ).json()
    assert both["columns"] == ["xgb", "lstm"]


def test_plant_show_offers_model_selection(console_client, fake_session) -> None:
    _plant_routes(fake_session)
    response = console_client.get("/plants/show/1")
    assert response.status_code == 200
    assert 'name="model" value="10"' in response.text


def test_model_metric_endpoints_accept_numbers_and_nulls(console_client, fake_session) -> None:
    fake_session.add("GET", "metric/horizon/10", [{"metric_type": "MAE", "horizon": 1, "value": 3.0}])
    fake_session.add(
        "GET",
        "metric/cycle/10",
        [
            {"time_of_forecast": TIMES[0], "metric_type": "MAE", "value": 12.5},
            {"time_of_forecast": TIMES[1], "metric_type": "MAE", "value": None},
        ],
    )

    horizon = console_client.get("/api/models/10/horizon")
    cycle = console_client.get("/api/models/10/cycle", params={"start_date": "2025-03-01", "end_date": "2025-03-07"})

    assert horizon.status_code == 200
    assert horizon.json()["categories"] == [1.0]
    assert cycle.status_code == 200
    assert [point["value"] for point in cycle.json()["series"][0]["data"]] == [12.5]


def test_model_edit_requires_a_feature(console_client, fake_session) -> None:
    fake_session.add("GET", "models/10", build_model(10, "xgb"))
    fake_session.add("GET", "models/weather_params", ["ghi", "temperature"])

    response = console_client.post("/models/edit/10", data={"is_active": "true"})

    assert response.status_code == 422
    assert fake_session.calls_for("PUT", "models/10") == []

    fake_session.add("PUT", "models/10", build_model(10, "xgb"))
    saved = console_client.post("/models/edit/10", data={"features": ["ghi"]}, follow_redirects=False)
    assert saved.headers["location"] == "/models/show/10"
    assert fake_session.last("PUT", "models/10").json == {"features": ["ghi"], "is_active": False}


def test_roles_require_permission(console_client, fake_session) -> None:
    console_client.cookies.set(settings.TOKEN_COOKIE, admin_token(permissions=[]))
    assert console_client.get("/roles").status_code == 403
    assert console_client.post("/roles/rol_admin/delete").status_code == 403
    assert fake_session.calls_for("GET", "roles") == []
    assert fake_session.calls_for("DELETE", "roles/rol_admin") == []


def test_roles_list_and_show(console_client, fake_session) -> None:
    fake_session.add("GET", "roles", page([build_role()], total=1))
    fake_session.add("GET", "roles/rol_admin", build_role())

    listing = console_client.get("/roles")
    shown = console_client.get("/roles/show/rol_admin")

    assert listing.status_code == 200
    assert "Admin" in listing.text
    assert fake_session.last("GET", "roles").params == {"page": 0, "size": 10}
    assert shown.status_code == 200
    assert "user:read, role:read" in shown.text


def test_roles_create_validates_then_redirects(console_client, fake_session) -> None:
    invalid = console_client.post("/roles/create", data={"name": "Viewer", "description": ""})
    assert invalid.status_code == 422
    assert fake_session.calls_for("POST", "roles") == []

    fake_session.add("POST", "roles", build_role("rol_viewer", name="Viewer"))
    response = console_client.post(
        "/roles/create",
        data={"name": "Viewer", "description": "Read only"},
        follow_redirects=False,
    )
    assert response.status_code == 303
    assert response.headers["location"] == "/roles/show/rol_viewer"
    assert fake_session.last("POST", "roles").json == {"name": "Viewer", "description": "Read only"}


def test_roles_edit_and_delete(console_client, fake_session) -> None:
    fake_session.add("GET", "roles/rol_admin", build_role())
    fake_session.add("GET", "permissions", page([{"permissionName": "user:read", "description": "Read"}]))
    fake_session.add("PUT", "roles/rol_admin", build_role(permissions=["user:read"]))
    fake_session.add("DELETE", "roles/rol_admin", None, status_code=204)

    form = console_client.get("/roles/edit/rol_admin")
    saved = console_client.post(
        "/roles/edit/rol_admin",
        data={"name": "Admin", "description": "Full access", "permissions": ["user:read"]},
        follow_redirects=False,
    )
    deleted = console_client.post("/roles/rol_admin/delete", follow_redirects=False)

    assert form.status_code == 200
    assert "user:read" in form.text
    assert saved.headers["location"] == "/roles/show/rol_admin"
    assert fake_session.last("PUT", "roles/rol_admin").json == {
        "name": "Admin",
        "description": "Full access",
        "permissions": ["user:read"],
    }
    assert deleted.headers["location"] == "/roles"
    assert len(fake_session.calls_for("DELETE", "roles/rol_admin")) == 1

"""API tests for weather locations and their name overrides."""

import pytest

from tests.conftest import auth_headers

ROOT = "root@example.com"


@pytest.fixture
def newark(supabase, superuser):
    return supabase.table("weather_locations").insert({
        "name": "Newark",
        "custom_name": None,
        "admin1": "New Jersey",
        "country": "United States",
        "lat": 40.73,
        "lon": -74.17,
        "channel_id": "C1",
    }).execute().data[0]


class TestOverrideFlow:
    def test_override_display_and_revert(self, client, supabase, superuser, newark) -> None:
        path = f"/api/v1/weather/locations/{newark['id']}"

        response = client.put(path, json={"custom_name": "Newark Intl", "reason": "airport"}, headers=auth_headers(ROOT))
        assert response.status_code == 200
        body = response.json()
        assert body["display_name"] == "Newark Intl"
        assert body["is_overridden"] is True
        assert body["name"]["originalValue"] == "Newark"
        assert body["name"]["overriddenValue"] == "Newark Intl"
        assert body["name"]["isOverridden"] is True
        assert body["name"]["overriddenBy"] == superuser["id"]
        assert body["name"]["reason"] == "airport"

        fetched = client.get(path, headers=auth_headers(ROOT)).json()
        assert fetched["display_name"] == "Newark Intl"

        reverted = client.post(f"{path}/revert", headers=auth_headers(ROOT))
        assert reverted.status_code == 200

        fetched = client.get(path, headers=auth_headers(ROOT)).json()
        assert fetched["name"] == "Newark"
        assert fetched["display_name"] == "Newark"
        assert fetched["is_overridden"] is False

        row = supabase.tables["weather_locations"][0]
        assert row["name"] == "Newark"
        assert row["custom_name"] is None
        assert row["custom_name_reason"] is None
        assert row["custom_name_overridden_at"] is None

    @pytest.mark.parametrize("custom_name", [None, "", "   ", "Newark"])
    def test_clearing_values(self, client, newark, custom_name) -> None:
        path = f"/api/v1/weather/locations/{newark['id']}"
        client.put(path, json={"custom_name": "Newark Intl"}, headers=auth_headers(ROOT))

        response = client.put(path, json={"custom_name": custom_name}, headers=auth_headers(ROOT))
        assert response.status_code == 200
        assert response.json()["name"] == "Newark"

    def test_list_mixes_plain_and_overridden(self, client, supabase, newark) -> None:
        supabase.table("weather_locations").insert({
            "name": "Albany",
            "custom_name": "Albany NY",
            "custom_name_reason": "disambiguation",
            "lat": 42.65,
            "lon": -73.75,
        }).execute()

        body = client.get("/api/v1/weather/locations", headers=auth_headers(ROOT)).json()
        names = {loc["display_name"]: loc["name"] for loc in body}
        assert names["Newark"] == "Newark"
        assert names["Albany NY"]["originalValue"] == "Albany"

    def test_filter_by_channel(self, client, supabase, newark) -> None:
        supabase.table("weather_locations").insert({"name": "Elsewhere", "lat": 1.0, "lon": 2.0}).execute()
        body = client.get("/api/v1/weather/locations?channel_id=C1", headers=auth_headers(ROOT)).json()
        assert [loc["id"] for loc in body] == [newark["id"]]


class TestCreateAndDelete:
    def test_create_plain(self, client, superuser) -> None:
        response = client.post(
            "/api/v1/weather/locations",
            json={"name": "Trenton", "lat": 40.22, "lon": -74.76, "country": "United States"},
            headers=auth_headers(ROOT),
        )
        assert response.status_code == 201
        assert response.json()["name"] == "Trenton"

    def test_create_with_tagged_name(self, client, supabase, superuser) -> None:
        response = client.post(
            "/api/v1/weather/locations",
            json={
                "name": {"originalValue": "Newark", "overriddenValue": "Newark Intl", "isOverridden": True},
                "lat": 40.73,
                "lon": -74.17,
            },
            headers=auth_headers(ROOT),
        )
        assert response.status_code == 201
        assert response.json()["display_name"] == "Newark Intl"
        row = supabase.tables["weather_locations"][0]
        assert row["name"] == "Newark"
        assert row["custom_name"] == "Newark Intl"

    @pytest.mark.parametrize("name", ["", {"isOverridden": True}])
    def test_create_rejects_bad_names(self, client, superuser, name) -> None:
        response = client.post(
            "/api/v1/weather/locations",
            json={"name": name, "lat": 1.0, "lon": 2.0},
            headers=auth_headers(ROOT),
        )
        assert response.status_code == 400

    def test_create_rejects_bad_coordinates(self, client, superuser) -> None:
        response = client.post(
            "/api/v1/weather/locations",
            json={"name": "Nowhere", "lat": 120.0, "lon": 2.0},
            headers=auth_headers(ROOT),
        )
        assert response.status_code == 422

    def test_delete(self, client, newark) -> None:
        path = f"/api/v1/weather/locations/{newark['id']}"
        assert client.delete(path, headers=auth_headers(ROOT)).status_code == 204
        assert client.get(path, headers=auth_headers(ROOT)).status_code == 404
        assert client.delete(path, headers=auth_headers(ROOT)).status_code == 404


class TestWeatherGating:
    def test_reader_cannot_override(self, client, data, newark) -> None:
        reader = data.user("r@example.com")
        data.grant(reader, "nova.weather.read")
        headers = auth_headers("r@example.com")
        assert client.get("/api/v1/weather/locations", headers=headers).status_code == 200
        response = client.put(
            f"/api/v1/weather/locations/{newark['id']}", json={"custom_name": "X"}, headers=headers
        )
        assert response.status_code == 403

    def test_pending_writer_cannot_override(self, client, data, newark) -> None:
        pending = data.user("p@example.com", status="pending")
        data.grant(pending, "nova.weather.read")
        data.grant(pending, "nova.weather.write")
        response = client.post(
            f"/api/v1/weather/locations/{newark['id']}/revert", headers=auth_headers("p@example.com")
        )
        assert response.status_code == 403

    def test_no_weather_permission(self, client, data, newark) -> None:
        data.user("n@example.com")
        assert client.get("/api/v1/weather/locations", headers=auth_headers("n@example.com")).status_code == 403

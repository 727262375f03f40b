"""
Tests for app/weather/service.py and app/weather/fallback.py.

OpenWeatherMap is replaced by an ``httpx.MockTransport`` routing on the
request path; coroutines are driven with ``asyncio.run``.

What we test
------------
  - Observation parsing: rounding, km visibility, UV lookup and its failure.
  - Forecast parsing: one entry per UTC date, day limit, pop -> percentage.
  - Daily aggregation: runs of 8 slots, rain totals in mm, and the forecast
    alerts raised from them.
  - Upstream alerts are preferred; otherwise alerts are synthesized.
  - Geocoding: built-in table, remote lookup, not found.
  - Every upstream failure (and a missing API key) falls back to baseline data.
  - Well-formed JSON of the wrong shape (a list where an object is expected,
    an error object where a list is expected) falls back the same way.
  - Dashboard composes all of the above.
"""

from __future__ import annotations

import asyncio
from datetime import date, datetime, timedelta, timezone

import httpx
import pytest

from app.weather.alerts import synthesize_forecast_alerts
from app.weather.fallback import fallback_daily_summaries, fallback_forecast, fallback_observation
from app.weather.recommendations import recommend, total_precipitation
from app.weather.service import WeatherService


def _ts(year, month, day, hour):
    return int(datetime(year, month, day, hour, tzinfo=timezone.utc).timestamp())


CURRENT_PAYLOAD = {
    "name": "Nashik",
    "sys": {"country": "IN"},
    "main": {"temp": 37.5, "feels_like": 39.4, "humidity": 40, "pressure": 1008},
    "wind": {"speed": 9.26},
    "visibility": 8400,
    "weather": [{"description": "clear sky", "icon": "01d"}],
}


def _slot(ts, temp_max, temp_min, pop, rain=None, humidity=55):
    slot = {
        "dt": ts,
        "main": {
            "temp": (temp_max + temp_min) / 2,
            "temp_max": temp_max,
            "temp_min": temp_min,
            "humidity": humidity,
        },
        "wind": {"speed": 3.4},
        "weather": [{"description": "light rain", "icon": "10d"}],
        "pop": pop,
    }
    if rain is not None:
        slot["rain"] = {"3h": rain}
    return slot


FORECAST_PAYLOAD = {
    "list": [
        _slot(_ts(2024, 6, 1, 3), 31.6, 24.2, 0.2),
        _slot(_ts(2024, 6, 1, 6), 33.0, 25.0, 0.9),
        _slot(_ts(2024, 6, 2, 3), 30.4, 23.5, 0.75),
        _slot(_ts(2024, 6, 3, 3), 29.5, 22.0, 0.0),
        _slot(_ts(2024, 6, 4, 3), 28.0, 21.0, 0.1),
    ]
}


def _service(handler, api_key="test-key"):
    return WeatherService(api_key=api_key, transport=httpx.MockTransport(handler))


def _router(routes):
    """Build a handler that answers by URL path suffix."""
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        for suffix, response in routes.items():
            if request.url.path.endswith(suffix):
                return response() if callable(response) else response
        return httpx.Response(404, json={"message": "not found"})

    handler.calls = calls
    return handler


# ── Current observation ───────────────────────────────────────────────────────

def test_current_observation_parsing():
    handler = _router({
        "/weather": httpx.Response(200, json=CURRENT_PAYLOAD),
        "/uvi": httpx.Response(200, json={"value": 8.26}),
    })
    obs = asyncio.run(_service(handler).get_current_observation(19.99, 73.78))

    assert obs.location == "Nashik, IN"
    assert obs.temperature == 38
    assert obs.feels_like == 39
    assert obs.humidity == 40
    assert obs.wind_speed == 9.3
    assert obs.visibility == 8.4
    assert obs.uv_index == 8.3
    assert obs.pressure == 1008

    weather_request = next(r for r in handler.calls if r.url.path.endswith("/weather"))
    assert weather_request.url.params["units"] == "metric"
    assert weather_request.url.params["appid"] == "test-key"


def test_uv_failure_defaults_to_zero():
    handler = _router({
        "/weather": httpx.Response(200, json=CURRENT_PAYLOAD),
        "/uvi": httpx.Response(500),
    })
    obs = asyncio.run(_service(handler).get_current_observation(19.99, 73.78))
    assert obs.uv_index == 0
    assert obs.location == "Nashik, IN"


def test_missing_visibility_defaults_to_ten_km():
    payload = {k: v for k, v in CURRENT_PAYLOAD.items() if k != "visibility"}
    handler = _router({
        "/weather": httpx.Response(200, json=payload),
        "/uvi": httpx.Response(200, json={"value": 2}),
    })
    obs = asyncio.run(_service(handler).get_current_observation(19.99, 73.78))
    assert obs.visibility == 10


def test_current_observation_falls_back_on_http_error():
    handler = _router({"/weather": httpx.Response(401, json={"message": "Invalid API key"})})
    obs = asyncio.run(_service(handler).get_current_observation(19.99, 73.78))
    assert obs == fallback_observation()


def test_current_observation_falls_back_on_connection_error():
    def handler(request):
        raise httpx.ConnectError("network down", request=request)

    obs = asyncio.run(_service(handler).get_current_observation(19.99, 73.78))
    assert obs == fallback_observation()


def test_current_observation_falls_back_on_malformed_payload():
    handler = _router({
        "/weather": httpx.Response(200, json={"name": "Nashik"}),
        "/uvi": httpx.Response(200, json={"value": 2}),
    })
    obs = asyncio.run(_service(handler).get_current_observation(19.99, 73.78))
    assert obs == fallback_observation()


def test_current_observation_falls_back_on_list_payload():
    handler = _router({
        "/weather": httpx.Response(200, json=[]),
        "/uvi": httpx.Response(200, json={"value": 2}),
    })
    obs = asyncio.run(_service(handler).get_current_observation(19.99, 73.78))
    assert obs == fallback_observation()


def test_uv_list_payload_defaults_to_zero():
    handler = _router({
        "/weather": httpx.Response(200, json=CURRENT_PAYLOAD),
        "/uvi": httpx.Response(200, json=[]),
    })
    obs = asyncio.run(_service(handler).get_current_observation(19.99, 73.78))
    assert obs.uv_index == 0
    assert obs.location == "Nashik, IN"


def test_no_api_key_skips_network():
    handler = _router({})
    service = _service(handler, api_key="")
    obs = asyncio.run(service.get_current_observation(19.99, 73.78))
    forecast = asyncio.run(service.get_forecast(19.99, 73.78))

    assert obs == fallback_observation()
    assert len(forecast) == 5
    assert handler.calls == []


# ── Forecast ──────────────────────────────────────────────────────────────────

def test_forecast_keeps_first_slot_per_day():
    handler = _router({"/forecast": httpx.Response(200, json=FORECAST_PAYLOAD)})
    forecast = asyncio.run(_service(handler).get_forecast(19.99, 73.78))

    assert [d.date for d in forecast] == [date(2024, 6, 1), date(2024, 6, 2), date(2024, 6, 3), date(2024, 6, 4)]
    first = forecast[0]
    assert first.high == 32
    assert first.low == 24
    assert first.precipitation == 20
    assert forecast[1].precipitation == 75
    assert first.wind_speed == 3.4


def test_forecast_respects_day_limit():
    handler = _router({"/forecast": httpx.Response(200, json=FORECAST_PAYLOAD)})
    forecast = asyncio.run(_service(handler).get_forecast(19.99, 73.78, days=2))
    assert len(forecast) == 2


def test_forecast_falls_back_on_error():
    handler = _router({"/forecast": httpx.Response(503)})
    forecast = asyncio.run(_service(handler).get_forecast(19.99, 73.78, days=3))
    assert len(forecast) == 3
    assert [d.precipitation for d in forecast] == [d.precipitation for d in fallback_forecast(3)]


@pytest.mark.parametrize("payload", [[], {"cod": "401"}, {"list": "nope"}])
def test_forecast_falls_back_on_wrong_shape(payload):
    handler = _router({"/forecast": httpx.Response(200, json=payload)})
    forecast, summaries = asyncio.run(_service(handler).get_forecast_bundle(19.99, 73.78, days=3))
    assert len(forecast) == 3
    assert [d.high for d in forecast] == [d.high for d in fallback_forecast(3)]
    assert [d.rainfall for d in summaries] == [d.rainfall for d in fallback_daily_summaries(3)]


def _two_day_slots():
    start = _ts(2024, 6, 1, 0)
    slots = [_slot(start + i * 3 * 3600, 36.0, 24.0, 0.1, rain=4.0) for i in range(8)]
    slots[5] = _slot(start + 5 * 3 * 3600, 39.5, 24.0, 0.6, rain=4.0)
    slots.append(_slot(_ts(2024, 6, 2, 0), 12.0, 1.5, 0.0))
    return slots


def test_daily_summaries_aggregate_runs_of_eight_slots():
    handler = _router({"/forecast": httpx.Response(200, json={"list": _two_day_slots()})})
    summaries = asyncio.run(_service(handler).get_daily_summaries(19.99, 73.78))

    assert [s.date for s in summaries] == [date(2024, 6, 1), date(2024, 6, 2)]
    first, second = summaries
    assert first.max_temp == 39.5
    assert first.min_temp == 24.0
    assert first.rainfall == pytest.approx(32.0)
    assert first.avg_temp == pytest.approx((7 * 30.0 + 31.75) / 8)
    assert first.humidity == 55
    assert first.wind_speed == pytest.approx(3.4)
    assert second.min_temp == 1.5
    assert second.rainfall == 0


def test_daily_summaries_respect_day_limit():
    handler = _router({"/forecast": httpx.Response(200, json={"list": _two_day_slots()})})
    summaries = asyncio.run(_service(handler).get_daily_summaries(19.99, 73.78, days=1))
    assert len(summaries) == 1


def _without_mean_temp(slot):
    return {**slot, "main": {k: v for k, v in slot["main"].items() if k != "temp"}}


def test_bad_slot_only_affects_daily_summaries():
    payload = {"list": [_without_mean_temp(slot) for slot in FORECAST_PAYLOAD["list"]]}
    handler = _router({"/forecast": httpx.Response(200, json=payload)})
    forecast, summaries = asyncio.run(_service(handler).get_forecast_bundle(19.99, 73.78, days=5))

    assert len(forecast) == 4
    assert forecast[0].high == 32
    assert [s.rainfall for s in summaries] == [s.rainfall for s in fallback_daily_summaries(5)]


# ── Alerts ────────────────────────────────────────────────────────────────────

def test_upstream_alerts_are_preferred():
    handler = _router({
        "/onecall": httpx.Response(200, json={"alerts": [{
            "sender_name": "IMD",
            "event": "Heat Wave Warning",
            "start": _ts(2024, 6, 1, 0),
            "end": _ts(2024, 6, 2, 0),
            "description": "Severe heat wave conditions.",
            "tags": ["Extreme temperature value", "Severe"],
        }]}),
    })
    alerts = asyncio.run(_service(handler).get_alerts(19.99, 73.78))
    assert len(alerts) == 1
    assert alerts[0].title == "Heat Wave Warning"
    assert alerts[0].id.startswith("IMD")
    assert not any(r.url.path.endswith("/weather") for r in handler.calls)


def test_alerts_are_synthesized_when_upstream_has_none():
    handler = _router({
        "/onecall": httpx.Response(200, json={"lat": 19.99, "lon": 73.78}),
        "/weather": httpx.Response(200, json=CURRENT_PAYLOAD),
        "/uvi": httpx.Response(200, json={"value": 4}),
    })
    alerts = asyncio.run(_service(handler).get_alerts(19.99, 73.78))
    prefixes = sorted(a.id.rsplit("_", 1)[0] for a in alerts)
    assert prefixes == ["high_temp", "strong_wind"]


def test_alerts_are_synthesized_when_upstream_fails(make_observation):
    handler = _router({"/onecall": httpx.Response(401)})
    obs = make_observation(humidity=92)
    alerts = asyncio.run(_service(handler).get_alerts(19.99, 73.78, observation=obs))
    assert [a.title for a in alerts] == ["High Humidity Advisory"]


def test_alerts_without_api_key_use_fallback_observation():
    alerts = asyncio.run(_service(_router({}), api_key="").get_alerts(19.99, 73.78))
    assert alerts == []


def test_alerts_are_synthesized_when_upstream_returns_list(make_observation):
    handler = _router({"/onecall": httpx.Response(200, json=[])})
    obs = make_observation(humidity=92)
    alerts = asyncio.run(_service(handler).get_alerts(19.99, 73.78, observation=obs))
    assert [a.title for a in alerts] == ["High Humidity Advisory"]


def test_alerts_include_daily_forecast_alerts(neutral_observation):
    handler = _router({
        "/onecall": httpx.Response(200, json={}),
        "/forecast": httpx.Response(200, json={"list": _two_day_slots()}),
    })
    alerts = asyncio.run(_service(handler).get_alerts(19.99, 73.78, observation=neutral_observation))

    assert [(a.id, a.severity.value) for a in alerts] == [
        ("forecast_heavy_rain_2024-06-01", "moderate"),
        ("forecast_high_temp_2024-06-01", "moderate"),
        ("forecast_frost_2024-06-02", "severe"),
    ]


def test_forecast_alerts_follow_upstream_alerts():
    handler = _router({
        "/onecall": httpx.Response(200, json={"alerts": [{
            "sender_name": "IMD",
            "event": "Cold Wave Warning",
            "start": _ts(2024, 6, 2, 0),
            "end": _ts(2024, 6, 3, 0),
        }]}),
        "/forecast": httpx.Response(200, json={"list": _two_day_slots()}),
    })
    alerts = asyncio.run(_service(handler).get_alerts(19.99, 73.78))
    assert alerts[0].title == "Cold Wave Warning"
    assert [a.id for a in alerts[1:]] == [
        "forecast_heavy_rain_2024-06-01",
        "forecast_high_temp_2024-06-01",
        "forecast_frost_2024-06-02",
    ]


# ── Geocoding ─────────────────────────────────────────────────────────────────

def test_resolve_location_from_builtin_table():
    handler = _router({})
    coords = asyncio.run(_service(handler).resolve_location("  Nagpur "))
    assert (coords.lat, coords.lon) == (21.1458, 79.0882)
    assert coords.name == "Nagpur"
    assert handler.calls == []


def test_resolve_location_remote():
    handler = _router({
        "/direct": httpx.Response(200, json=[{"name": "Sangli", "lat": 16.85, "lon": 74.58}]),
    })
    coords = asyncio.run(_service(handler).resolve_location("Sangli"))
    assert (coords.lat, coords.lon, coords.name) == (16.85, 74.58, "Sangli")
    assert handler.calls[0].url.params["limit"] == "1"


@pytest.mark.parametrize("response", [
    httpx.Response(200, json=[]),
    httpx.Response(500),
    httpx.Response(200, json={"cod": "400", "message": "Nothing to geocode"}),
    httpx.Response(200, json=[{"name": "Atlantis"}]),
    httpx.Response(200, json=["Atlantis"]),
])
def test_resolve_location_not_found(response):
    handler = _router({"/direct": response})
    assert asyncio.run(_service(handler).resolve_location("Atlantis")) is None


def test_resolve_blank_location():
    assert asyncio.run(_service(_router({})).resolve_location("   ")) is None


# ── Dashboard & fallbacks ─────────────────────────────────────────────────────

def test_dashboard_composes_everything():
    handler = _router({
        "/weather": httpx.Response(200, json=CURRENT_PAYLOAD),
        "/uvi": httpx.Response(200, json={"value": 8.26}),
        "/forecast": httpx.Response(200, json=FORECAST_PAYLOAD),
        "/onecall": httpx.Response(200, json={}),
    })
    dashboard = asyncio.run(_service(handler).get_dashboard(19.99, 73.78))

    assert dashboard.observation.location == "Nashik, IN"
    assert len(dashboard.forecast) == 4
    assert len(dashboard.alerts) == 2
    assert len(dashboard.daily_summaries) == 1
    assert dashboard.fetched_at.tzinfo is not None
    assert dashboard.fetched_at.utcoffset() == timedelta(0)
    assert dashboard.recommendations == recommend(dashboard.observation, dashboard.forecast)
    assert [r.id for r in dashboard.recommendations] == [
        "high_temp_irrigation",
        "strong_wind_precautions",
        "high_uv_protection",
        "heavy_rain_prep",
    ]


def test_fallback_forecast_is_quiet_and_dated():
    forecast = fallback_forecast(5, today=date(2024, 6, 1))
    assert [d.date for d in forecast] == [date(2024, 6, d) for d in range(1, 6)]
    assert 20 <= total_precipitation(forecast) <= 100
    assert all(d.precipitation <= 70 for d in forecast)


def test_fallback_data_yields_only_optimal_conditions():
    assert [r.id for r in recommend(fallback_observation(), fallback_forecast())] == ["optimal_conditions"]


def test_fallback_daily_summaries_are_quiet_and_dated():
    summaries = fallback_daily_summaries(5, today=date(2024, 6, 1))
    assert [s.date for s in summaries] == [date(2024, 6, d) for d in range(1, 6)]
    assert synthesize_forecast_alerts(summaries) == []

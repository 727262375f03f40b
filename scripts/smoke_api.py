#!/usr/bin/env python3
"""
Smoke checks for a running Farm Weather Advisor API.

Usage:
    uvicorn app.main:app --port 8000
    python scripts/smoke_api.py [BASE_URL]
"""

import sys

import httpx

BASE_URL = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"
API_BASE = f"{BASE_URL}/api/v1"

# Nashik
TEST_COORDS = {"lat": 19.9975, "lon": 73.7898}

class Colors:
    GREEN = '\033[92m'
    RED = '\033[91m'
    YELLOW = '\033[93m'
    BLUE = '\033[94m'
    END = '\033[0m'

def print_check(name: str):
    print(f"\n{Colors.BLUE}=== {name} ==={Colors.END}")

def print_success(msg: str):
    print(f"{Colors.GREEN}✓ {msg}{Colors.END}")

def print_error(msg: str):
    print(f"{Colors.RED}✗ {msg}{Colors.END}")

def print_info(msg: str):
    print(f"{Colors.YELLOW}ℹ {msg}{Colors.END}")

def check_health(client: httpx.Client) -> bool:
    """Root and /health endpoints."""
    print_check("Health Checks")

    try:
        r = client.get(f"{BASE_URL}/health")
        assert r.status_code == 200
        data = r.json()
        assert data["status"] == "healthy"
        print_success("GET /health - Detailed health check")
        print_info(f"Weather API: {data.get('weather_api', 'unknown')}")
    except Exception as e:
        print_error(f"GET /health - {str(e)}")
        return False

    return True

def check_weather_flow(client: httpx.Client) -> bool:
    """Geocode, dashboard and evaluate endpoints."""
    print_check("Weather Flow")
    ok = True

    try:
        r = client.get(f"{API_BASE}/weather/geocode", params={"location": "Nashik"})
        assert r.status_code == 200
        print_success(f"GET /weather/geocode - {r.json()}")
    except Exception as e:
        print_error(f"GET /weather/geocode - {str(e)}")
        ok = False

    try:
        r = client.get(f"{API_BASE}/weather/dashboard", params=TEST_COORDS)
        assert r.status_code == 200
        data = r.json()
        assert "observation" in data and "recommendations" in data
        print_success("GET /weather/dashboard - Dashboard retrieved")
        print_info(
            f"{data['observation']['location']}: {data['observation']['temperature']}°C, "
            f"{len(data['alerts'])} alert(s), {len(data['recommendations'])} recommendation(s)"
        )
        for rec in data["recommendations"]:
            print_info(f"  [{rec['urgency']}] {rec['title']}")
    except Exception as e:
        print_error(f"GET /weather/dashboard - {str(e)}")
        ok = False

    try:
        r = client.post(f"{API_BASE}/weather/evaluate", json={
            "observation": {
                "location": "Smoke Test", "temperature": 38, "feels_like": 40, "humidity": 55,
                "wind_speed": 9, "pressure": 1005, "visibility": 6, "uv_index": 8,
            },
            "forecast": [],
        })
        assert r.status_code == 200
        assert len(r.json()["recommendations"]) == 3
        print_success("POST /weather/evaluate - Rules evaluated")
    except Exception as e:
        print_error(f"POST /weather/evaluate - {str(e)}")
        ok = False

    return ok

def main():
    print(f"\n{Colors.BLUE}{'='*60}")
    print("Farm Weather Advisor API - Smoke Checks")
    print(f"{'='*60}{Colors.END}\n")

    print_info(f"Checking: {BASE_URL}")

    with httpx.Client(timeout=30) as client:
        if not check_health(client):
            print_error("\nHealth checks failed. Is the API running?")
            sys.exit(1)

        if not check_weather_flow(client):
            print_error("\nWeather flow had errors.")
            sys.exit(1)

    print(f"\n{Colors.GREEN}{'='*60}")
    print("All checks passed!")
    print(f"{'='*60}{Colors.END}\n")

if __name__ == "__main__":
    main()

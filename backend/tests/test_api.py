"""
Tests for the FastAPI backend endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from api.main import app
from config.settings import ApiConfig

# Roughly 5 m of latitude
LAT_STEP = 4.5e-5

SAMPLE_GPX = b"""<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="test" xmlns="http://www.topografix.com/GPX/1/1">
  <trk>
    <name>Survey flight</name>
    <trkseg>
      <trkpt lat="-38.3300" lon="176.6500"><ele>52.0</ele><time>2024-01-15T10:00:00Z</time></trkpt>
      <trkpt lat="-38.3301" lon="176.6500"><ele>53.0</ele><time>2024-01-15T10:00:01Z</time></trkpt>
      <trkpt lat="-38.3302" lon="176.6500"><ele>54.0</ele><time>2024-01-15T10:00:02Z</time></trkpt>
    </trkseg>
  </trk>
</gpx>
"""


def _straight_flight_csv(count: int = 30) -> bytes:
    lines = ["time_ms,latitude,longitude,altitude,yaw,pitch"]
    for i in range(count):
        lines.append(f"{i * 500},{-38.33 + i * LAT_STEP:.6f},176.65,60,0,0")
    return ("\n".join(lines) + "\n").encode()


@pytest.fixture
def client():
    return TestClient(app)


class TestInfoEndpoints:
    """Tests for the informational endpoints."""

    def test_root(self, client):
        """Root lists the available endpoints."""
        response = client.get("/")
        assert response.status_code == 200
        assert "POST /api/analyze-flight" in response.json()["endpoints"]

    def test_health(self, client):
        """Health check reports healthy."""
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "flight-leg-lab-api"}

    def test_config(self, client):
        """Config exposes default thresholds, ranges and gimbal modes."""
        body = client.get("/api/config").json()

        assert body["defaults"]["min_leg_duration_ms"] == 2000
        assert body["defaults"]["gimbal_mode"] == "absent"
        assert "max_leg_gap_duration_ms" in body["ranges"]
        assert set(body["gimbal_modes"]) == {"used", "not_used", "absent"}


class TestAnalyzeFlightEndpoint:
    """Tests for POST /api/analyze-flight."""

    def test_straight_csv_flight(self, client):
        """A straight, level CSV log is one leg that runs to the end."""
        response = client.post(
            "/api/analyze-flight",
            files={"file": ("survey.csv", _straight_flight_csv(), "text/csv")},
            params={"gimbal_mode": "not_used"},
        )
        assert response.status_code == 200

        body = response.json()
        assert len(body["legs"]) == 1
        leg = body["legs"][0]
        assert leg["leg_name"] == "A"
        assert leg["why_leg_ended"] == "No more steps"
        assert leg["start_time_ms"] == 0
        assert leg["end_time_ms"] == 14500
        assert leg["average_altitude_m"] == pytest.approx(60.0)
        assert body["overlapping_range"] == {"first_leg_id": 1, "last_leg_id": 1}
        assert body["flight_summary"]["status"] == "ok"
        assert body["flight_summary"]["leg_count"] == 1
        assert body["thresholds"]["gimbal_mode"] == "not_used"

    def test_gpx_without_attitude(self, client):
        """A GPX track has no attitude and gets a single placeholder leg."""
        response = client.post(
            "/api/analyze-flight",
            files={"file": ("survey.gpx", SAMPLE_GPX, "application/gpx+xml")},
        )
        assert response.status_code == 200

        body = response.json()
        assert body["flight_summary"]["status"] == "no_yaw_pitch_data"
        assert len(body["legs"]) == 1
        assert body["legs"][0]["why_leg_ended"] == "N/A"
        assert body["legs"][0]["end_time_ms"] == 2000

    def test_unsupported_extension(self, client):
        """Only CSV and GPX uploads are accepted."""
        response = client.post(
            "/api/analyze-flight",
            files={"file": ("survey.txt", _straight_flight_csv(), "text/plain")},
        )
        assert response.status_code == 400

    def test_missing_extension(self, client):
        """Uploads without an extension are rejected as a bad request."""
        response = client.post(
            "/api/analyze-flight",
            files={"file": ("flightlog", _straight_flight_csv(), "text/csv")},
        )
        assert response.status_code == 400

    def test_header_only_csv_rejected(self, client):
        """A CSV with a header but no sections is a bad request, not a server error."""
        content = b"time_ms,latitude,longitude,altitude,yaw,pitch,roll\n"
        assert len(content) >= ApiConfig.MIN_UPLOAD_SIZE
        response = client.post(
            "/api/analyze-flight",
            files={"file": ("survey.csv", content, "text/csv")},
        )
        assert response.status_code == 400
        assert "timestamped" in response.json()["detail"]

    def test_tiny_file_rejected(self, client):
        """Files too small to hold a flight are rejected."""
        response = client.post(
            "/api/analyze-flight",
            files={"file": ("survey.csv", b"time_ms,lat\n", "text/csv")},
        )
        assert response.status_code == 400

    def test_missing_columns_rejected(self, client):
        """A CSV without positions is a bad request."""
        content = b"time_ms,yaw,pitch\n" + b"".join(f"{i * 500},0,0\n".encode() for i in range(20))
        response = client.post(
            "/api/analyze-flight",
            files={"file": ("survey.csv", content, "text/csv")},
        )
        assert response.status_code == 400

    def test_invalid_threshold_rejected(self, client):
        """Out of range thresholds are a bad request."""
        response = client.post(
            "/api/analyze-flight",
            files={"file": ("survey.csv", _straight_flight_csv(), "text/csv")},
            params={"max_leg_gap_duration_ms": 0},
        )
        assert response.status_code == 400

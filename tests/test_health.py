"""Test the health check endpoint"""

from fastapi.testclient import TestClient

from medicore_forms.main import app


def test_health_check():
    client = TestClient(app)

    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "medicore-forms"
    assert "timestamp" in data

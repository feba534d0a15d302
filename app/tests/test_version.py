"""
Tests for version endpoint
"""
from fastapi import status
from app.core.constants import SERVICE_NAME


def test_version_endpoint_returns_version(client):
    """Test that version endpoint returns service and version information"""
    response = client.get("/api/v1/version")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()

    assert data["service"] == SERVICE_NAME
    assert "version" in data
    assert data["env"] in ["local", "staging", "prod"]
    assert data["timezone"] == "Asia/Kolkata"

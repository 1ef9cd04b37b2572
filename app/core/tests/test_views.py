"""
Tests for the health check endpoint.
"""

from unittest.mock import patch

import pytest
from django.db import DatabaseError

LOCMEM_CACHE = {"default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"}}


@pytest.mark.django_db
class TestHealthCheck:
    def test_healthy(self, client, settings):
        settings.CACHES = LOCMEM_CACHE

        response = client.get("/health/")

        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "database": "connected",
            "cache": "connected",
        }

    def test_database_down(self, client, settings):
        settings.CACHES = LOCMEM_CACHE

        with patch("core.views.connection") as mock_connection:
            mock_connection.cursor.side_effect = DatabaseError("connection refused")
            response = client.get("/health/")

        assert response.status_code == 503
        assert response.json()["database"] == "disconnected"

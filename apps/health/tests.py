from unittest import mock

from django.db import DatabaseError
from rest_framework.test import APITestCase


class HealthTests(APITestCase):
    def test_health_is_public(self):
        response = self.client.get("/health/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["status"], "ok")
        self.assertEqual(response.data["services"][0]["name"], "database")

    def test_database_failure_reports_degraded(self):
        with mock.patch("apps.health.views.connection.cursor", side_effect=DatabaseError("connection refused")):
            response = self.client.get("/health/")
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.data["status"], "degraded")
        self.assertEqual(response.data["services"][0]["status"], "unhealthy")

import unittest
from unittest import mock

import requests

from engines.reconciliation_client import ScheduleApiClient
from engines.schedule_store import InProcessApiSession
from utils.exceptions import (
    ApiServerError, ApiTransportError, ApiValidationError, DuplicateRecordError, TRANSPORT,
)

BASE_URL = "http://schedule-api.test/api"
EMPLOYEES = [{"cedula": "123456", "nombre": "Jane Doe"}]
RECORDS = [{"CEDULA": "123456", "Fecha_programacion": "2026-03-10"}]


def fake_response(status_code=200, payload=None):
    response = mock.Mock(spec=requests.Response)
    response.status_code = status_code
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload if payload is not None else {}
    return response


class ClientTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.session = mock.Mock(spec=requests.Session)
        self.client = ScheduleApiClient(
            BASE_URL + "/", validation_timeout=30, date_check_timeout=15, save_timeout=20,
            session=self.session,
        )

    def respond(self, status_code=200, payload=None):
        self.session.post.return_value = fake_response(status_code, payload)

    def fail(self, error):
        self.session.post.side_effect = error


class ValidateEmployeesTests(ClientTestCase):
    def test_reports_missing_employees(self) -> None:
        missing = [{"cedula": "123456", "nombre": "Jane Doe"}]
        self.respond(200, {"isValid": False, "invalidEmployees": missing})
        result = self.client.validate_employees(EMPLOYEES)
        self.assertEqual(result, {"isValid": False, "invalidEmployees": missing})

    def test_request_shape(self) -> None:
        self.respond(200, {"isValid": True, "invalidEmployees": []})
        self.client.validate_employees(EMPLOYEES)

        args, kwargs = self.session.post.call_args
        self.assertEqual(args[0], f"{BASE_URL}/validate-employees")
        self.assertEqual(kwargs["json"], {"employees": EMPLOYEES})
        self.assertIn("t", kwargs["params"])
        self.assertEqual(kwargs["headers"]["Cache-Control"], "no-cache")
        self.assertEqual(kwargs["headers"]["Pragma"], "no-cache")
        self.assertEqual(kwargs["timeout"], 30)

    def test_fails_open_on_server_error(self) -> None:
        self.respond(500, {"error": "boom"})
        self.assertEqual(self.client.validate_employees(EMPLOYEES), {"isValid": True, "invalidEmployees": []})

    def test_fails_open_on_connection_error(self) -> None:
        self.fail(requests.ConnectionError("refused"))
        self.assertTrue(self.client.validate_employees(EMPLOYEES)["isValid"])

    def test_fails_open_on_timeout(self) -> None:
        self.fail(requests.Timeout())
        self.assertTrue(self.client.validate_employees(EMPLOYEES)["isValid"])

    def test_fails_open_on_bad_json(self) -> None:
        self.respond(200, ValueError("not json"))
        self.assertTrue(self.client.validate_employees(EMPLOYEES)["isValid"])

    def test_empty_and_oversized_lists_skip_the_call(self) -> None:
        self.assertTrue(self.client.validate_employees([])["isValid"])
        many = [{"cedula": str(100000 + i), "nombre": "X"} for i in range(1001)]
        self.assertTrue(self.client.validate_employees(many)["isValid"])
        self.session.post.assert_not_called()


class CheckDatesTests(ClientTestCase):
    def test_reports_existing_dates(self) -> None:
        self.respond(200, {"exists": True, "existingDates": ["2026-03-10"]})
        result = self.client.check_dates(["2026-03-10", "2026-03-11"], "Operaciones")
        self.assertEqual(result, {"exists": True, "existingDates": ["2026-03-10"]})

        _, kwargs = self.session.post.call_args
        self.assertEqual(kwargs["json"], {"dates": ["2026-03-10", "2026-03-11"], "area": "Operaciones"})
        self.assertEqual(kwargs["timeout"], 15)

    def test_fails_open(self) -> None:
        self.fail(requests.Timeout())
        self.assertEqual(self.client.check_dates(["2026-03-10"], "Operaciones"),
                         {"exists": False, "existingDates": []})
        self.session.post.side_effect = None
        self.respond(503)
        self.assertFalse(self.client.check_dates(["2026-03-10"], "Operaciones")["exists"])


class SaveTests(ClientTestCase):
    def test_confirmed_save(self) -> None:
        self.respond(200, {"success": True, "message": "Guardado", "recordCount": 1})
        data = self.client.save_schedule(RECORDS)
        self.assertEqual(data["recordCount"], 1)

        args, kwargs = self.session.post.call_args
        self.assertEqual(args[0], f"{BASE_URL}/save-schedule")
        self.assertEqual(kwargs["json"], {"records": RECORDS})
        self.assertEqual(kwargs["timeout"], 20)

    def test_novedades_endpoint(self) -> None:
        self.respond(200, {"success": True, "recordCount": 1})
        self.client.save_novedades(RECORDS)
        self.assertEqual(self.session.post.call_args[0][0], f"{BASE_URL}/save-novedades")

    def test_server_error_fails_closed(self) -> None:
        self.respond(500, {"error": "Error al guardar"})
        with self.assertRaises(ApiServerError) as ctx:
            self.client.save_schedule(RECORDS)
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(self.session.post.call_count, 1)

    def test_conflict_status_is_duplicate(self) -> None:
        self.respond(409, {"error": "Registro duplicado", "details": "Conflicto en: CEDULA"})
        with self.assertRaises(DuplicateRecordError) as ctx:
            self.client.save_schedule(RECORDS)
        self.assertIn("Conflicto en: CEDULA", ctx.exception.message)

    def test_duplicate_wording_is_duplicate(self) -> None:
        self.respond(500, {"error": "Registro duplicado"})
        with self.assertRaises(DuplicateRecordError):
            self.client.save_schedule(RECORDS)

    def test_bad_request_is_validation_error(self) -> None:
        self.respond(400, {"error": "Fechas fuera del año actual"})
        with self.assertRaises(ApiValidationError) as ctx:
            self.client.save_schedule(RECORDS)
        self.assertEqual(ctx.exception.payload["error"], "Fechas fuera del año actual")

    def test_timeout_is_transport_error(self) -> None:
        self.fail(requests.Timeout())
        with self.assertRaises(ApiTransportError) as ctx:
            self.client.save_schedule(RECORDS)
        self.assertEqual(ctx.exception.category, TRANSPORT)

    def test_connection_error_is_transport_error(self) -> None:
        self.fail(requests.ConnectionError())
        with self.assertRaises(ApiTransportError):
            self.client.save_novedades(RECORDS)

    def test_unconfirmed_success_is_rejected(self) -> None:
        self.respond(200, {})
        with self.assertRaises(ApiServerError):
            self.client.save_schedule(RECORDS)


class FromConfigTests(unittest.TestCase):
    def test_reads_timeouts(self) -> None:
        client = ScheduleApiClient.from_config({
            "SCHEDULE_API_URL": BASE_URL, "VALIDATION_TIMEOUT": 5, "SAVE_TIMEOUT": 7,
        })
        self.assertEqual(client.base_url, BASE_URL)
        self.assertEqual(client.validation_timeout, 5)
        self.assertEqual(client.date_check_timeout, 15)
        self.assertEqual(client.save_timeout, 7)
        self.assertIsInstance(client.session, requests.Session)

    def test_from_config_without_url_runs_in_process(self) -> None:
        client = ScheduleApiClient.from_config({"SCHEDULE_API_URL": None})
        self.assertEqual(client.base_url, "")
        self.assertIsInstance(client.session, InProcessApiSession)

    def test_in_process_session_rejects_unknown_paths(self) -> None:
        response = InProcessApiSession().post("/nothing-here", json={})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "Not found"})


if __name__ == "__main__":
    unittest.main()

import unittest
from datetime import date, datetime

from engines.record_normalizer import RecordNormalizer
from utils.excel_upload_handler import ScheduleUploadValidator
from utils.exceptions import YearMismatchError
from utils.schedule_rows import LunchDeductionRule, NovedadesUpload, NovedadRow
from utils.workbook_reader import read_workbook
from workbook_factory import YEAR, build_formato_workbook, make_upload

NOW = datetime(YEAR, 3, 5, 10, 30, 0)


def normalizer():
    return RecordNormalizer(country="CO", clock=lambda: NOW)


class EndToEndNormalizationTests(unittest.TestCase):
    def normalize_sheet(self, cell, lunch=None):
        data = build_formato_workbook(
            [[1, "123456", "Jane Doe", "Operator", cell]],
            date_headers=[datetime(YEAR, 3, 10)],
            lunch=lunch,
        )
        upload = ScheduleUploadValidator().parse(read_workbook(data, "formato"), "formato")
        return normalizer().normalize(upload, "Operaciones")

    def test_single_digit_hour_is_padded(self) -> None:
        records = self.normalize_sheet("7:30 - 15:30")
        self.assertEqual(len(records), 1)
        record = records[0]
        self.assertEqual(record.schedule_label, "07:30 - 15:30")
        self.assertEqual(record.deduction_hours, 0)
        self.assertEqual(record.employee_id, "123456")
        self.assertEqual(record.schedule_date, f"{YEAR}-03-10")
        self.assertEqual(record.area, "Operaciones")

    def test_explicit_deduction_wins_over_lunch_table(self) -> None:
        records = self.normalize_sheet("12:00 - 13:00 [1.5]", lunch=[("12:00 - 13:00", 1)])
        self.assertEqual(records[0].schedule_label, "12:00 - 13:00")
        self.assertEqual(records[0].deduction_hours, 1.5)

    def test_lunch_table_lookup(self) -> None:
        records = self.normalize_sheet("06:00 - 14:00", lunch=[("06:00 - 14:00", 0.5)])
        self.assertEqual(records[0].schedule_label, "06:00 - 14:00")
        self.assertEqual(records[0].deduction_hours, 0.5)

    def test_special_token_ignores_lunch_table(self) -> None:
        records = self.normalize_sheet("descanso", lunch=[("descanso", 2)])
        self.assertEqual(records[0].schedule_label, "descanso")
        self.assertEqual(records[0].deduction_hours, 0)


class RecordNormalizerTests(unittest.TestCase):
    def test_record_payload(self) -> None:
        upload = make_upload([("123456", "Jane", "Operator", ["07:00 - 15:00", None])])
        record = normalizer().normalize(upload, "Lavado")[0]
        self.assertEqual(record.to_payload(), {
            "CEDULA": "123456",
            "Fecha_programacion": f"{YEAR}-03-09",
            "Horario_programacion": "07:00 - 15:00",
            "Area": "Lavado",
            "Tiempo_a_descontar": 0.0,
            "Quincena": f"Q1_Marzo_{YEAR}",
            "clasificacion": None,
            "fecha_consulta": f"{YEAR}-03-05 10:30:00",
        })

    def test_one_record_per_non_empty_cell(self) -> None:
        upload = make_upload([
            ("123456", "Jane", "Op", ["07:00 - 15:00", "  "]),
            ("654321", "John", "Op", ["DESCANSO", "14:00 - 22:00"]),
            ("", "", "", ["07:00 - 15:00", None]),
        ])
        records = normalizer().normalize(upload, "Operaciones")
        self.assertEqual(
            [(r.employee_id, r.schedule_date) for r in records],
            [("123456", f"{YEAR}-03-09"), ("654321", f"{YEAR}-03-09"), ("654321", f"{YEAR}-03-10")],
        )

    def test_holiday_classification(self) -> None:
        upload = make_upload(
            [
                ("123456", "Jane", "Operator", ["07:00 - 15:00", "07:00 - 15:00"]),
                ("654321", "John", "", ["07:00 - 15:00", None]),
            ],
            date_headers=[datetime(YEAR, 1, 1), datetime(YEAR, 3, 10)],
        )
        records = normalizer().normalize(upload, "Operaciones")
        by_key = {(r.employee_id, r.schedule_date): r.classification for r in records}
        self.assertEqual(by_key[("123456", f"{YEAR}-01-01")], "Operator")
        self.assertEqual(by_key[("654321", f"{YEAR}-01-01")], "Festivo")
        self.assertIsNone(by_key[("123456", f"{YEAR}-03-10")])

    def test_spanish_abbreviated_headers(self) -> None:
        upload = make_upload([("123456", "Jane", "Op", ["07:00 - 15:00"])], date_headers=["10-mar"])
        records = normalizer().normalize(upload, "Operaciones")
        self.assertEqual(records[0].schedule_date, f"{YEAR}-03-10")

    def test_unresolvable_header_passes_through(self) -> None:
        upload = make_upload([("123456", "Jane", "Op", ["07:00 - 15:00"])], date_headers=["Lunes"])
        records = normalizer().normalize(upload, "Operaciones")
        self.assertEqual(records[0].schedule_date, "Lunes")

    def test_year_check_counts_unresolvable_header(self) -> None:
        upload = make_upload(
            [("123456", "Jane", "Op", ["07:00 - 15:00", "07:00 - 15:00"])],
            date_headers=["Lunes", datetime(YEAR, 3, 10)],
        )
        with self.assertRaises(YearMismatchError) as ctx:
            normalizer().check_year(upload)
        self.assertEqual(ctx.exception.offending_dates, ["Lunes"])

    def test_year_less_generic_header_uses_current_year(self) -> None:
        upload = make_upload([("123456", "Jane", "Op", ["07:00 - 15:00", None])], date_headers=["10/03", "11/03"])
        normalizer().check_year(upload)
        self.assertEqual(normalizer().record_dates(upload), [f"{YEAR}-03-10"])

    def test_pay_period_follows_save_date(self) -> None:
        later = RecordNormalizer(clock=lambda: datetime(YEAR, 3, 20, 8, 0))
        upload = make_upload([("123456", "Jane", "Op", ["07:00 - 15:00", None])])
        self.assertEqual(later.normalize(upload, "Operaciones")[0].pay_period, f"Q2_Marzo_{YEAR}")

    def test_year_mismatch_rejects_whole_batch(self) -> None:
        upload = make_upload(
            [("123456", "Jane", "Op", ["07:00 - 15:00", "07:00 - 15:00", "07:00 - 15:00"])],
            date_headers=[datetime(YEAR - 1, 12, 30), datetime(YEAR, 3, 10), datetime(YEAR + 1, 1, 2)],
        )
        with self.assertRaises(YearMismatchError) as ctx:
            normalizer().normalize(upload, "Operaciones")
        self.assertEqual(ctx.exception.offending_dates, [f"{YEAR - 1}-12-30", f"{YEAR + 1}-01-02"])

    def test_empty_columns_do_not_count_for_year_check(self) -> None:
        upload = make_upload(
            [("123456", "Jane", "Op", [None, "07:00 - 15:00"])],
            date_headers=[datetime(YEAR - 1, 12, 30), datetime(YEAR, 3, 10)],
        )
        self.assertEqual(len(normalizer().normalize(upload, "Operaciones")), 1)

    def test_record_dates_are_distinct_and_used(self) -> None:
        upload = make_upload(
            [
                ("123456", "Jane", "Op", ["07:00 - 15:00", None, None]),
                ("654321", "John", "Op", [None, None, "DESCANSO"]),
            ],
            date_headers=[datetime(YEAR, 3, 9), datetime(YEAR, 3, 10), datetime(YEAR, 3, 11)],
        )
        self.assertEqual(normalizer().record_dates(upload), [f"{YEAR}-03-09", f"{YEAR}-03-11"])

    def test_lunch_rules_first_label_wins(self) -> None:
        upload = make_upload(
            [("123456", "Jane", "Op", ["06:00 - 14:00", None])],
            lunch_rules=[LunchDeductionRule("06:00 - 14:00", 0.5), LunchDeductionRule("06:00 - 14:00", 1.0)],
        )
        self.assertEqual(normalizer().normalize(upload, "Operaciones")[0].deduction_hours, 0.5)


class NovedadesNormalizationTests(unittest.TestCase):
    def test_novedad_payload(self) -> None:
        upload = NovedadesUpload(
            area="Operaciones",
            responsible="Ana",
            headers=[],
            rows=[NovedadRow(
                row_index=9,
                fecha_programacion=date(YEAR, 3, 10),
                cedula="1234567",
                nombre="Jane",
                tipo_novedad="AUSENCIA",
                motivo="Cita",
            )],
        )
        record = normalizer().normalize_novedades(upload, "Mantenimiento")[0]
        self.assertEqual(record.to_payload(), {
            "FECHA_PROGRAMACION": f"{YEAR}-03-10",
            "CEDULA": "1234567",
            "TIPO_NOVEDAD": "AUSENCIA",
            "FECHA_HORA_EXTRA": None,
            "HORA_INICIO_FIN": None,
            "MOTIVO": "Cita",
            "CEDULA_AUTORIZA": None,
            "AREA": "Mantenimiento",
            "QUINCENA": f"Q1_Marzo_{YEAR}",
            "TIEMPO_DESCONTAR": 0,
            "FECHA_CONSULTA": f"{YEAR}-03-05 10:30:00",
        })


if __name__ == "__main__":
    unittest.main()

# engines/record_normalizer.py
"""
Record Normalizer
Reshapes validated schedule rows into flat, database-ready records:
lunch deduction lookup, single-digit hour padding, date header resolution,
holiday tagging and pay period labelling.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional

from utils.exceptions import YearMismatchError
from utils.helpers import (
    format_db_timestamp, get_pay_period, is_empty, parse_iso_date, resolve_date_header,
)
from utils.holiday_calendar import HolidayCalendar
from utils.schedule_grammar import is_special_shift, pad_single_digit_hours, split_deduction
from utils.schedule_rows import LunchDeductionRule, NovedadesUpload, ScheduleUpload

logger = logging.getLogger(__name__)

HOLIDAY_CLASSIFICATION = 'Festivo'


@dataclass(frozen=True)
class ScheduleRecord:
    employee_id: str
    schedule_date: str
    schedule_label: str
    area: str
    deduction_hours: float
    pay_period: str
    classification: Optional[str]
    query_timestamp: datetime

    def to_payload(self):
        """Body shape expected by /api/save-schedule"""
        return {
            'CEDULA': self.employee_id,
            'Fecha_programacion': self.schedule_date,
            'Horario_programacion': self.schedule_label,
            'Area': self.area,
            'Tiempo_a_descontar': self.deduction_hours,
            'Quincena': self.pay_period,
            'clasificacion': self.classification,
            'fecha_consulta': format_db_timestamp(self.query_timestamp),
        }


@dataclass(frozen=True)
class NovedadRecord:
    fecha_programacion: str
    cedula: str
    tipo_novedad: str
    fecha_hora_extra: Optional[str]
    hora_inicio_fin: Optional[str]
    motivo: Optional[str]
    cedula_autoriza: Optional[str]
    area: str
    quincena: str
    fecha_consulta: datetime
    tiempo_descontar: float = 0

    def to_payload(self):
        """Body shape expected by /api/save-novedades"""
        return {
            'FECHA_PROGRAMACION': self.fecha_programacion,
            'CEDULA': self.cedula,
            'TIPO_NOVEDAD': self.tipo_novedad,
            'FECHA_HORA_EXTRA': self.fecha_hora_extra,
            'HORA_INICIO_FIN': self.hora_inicio_fin,
            'MOTIVO': self.motivo,
            'CEDULA_AUTORIZA': self.cedula_autoriza,
            'AREA': self.area,
            'QUINCENA': self.quincena,
            'TIEMPO_DESCONTAR': self.tiempo_descontar,
            'FECHA_CONSULTA': format_db_timestamp(self.fecha_consulta),
        }


def build_lunch_lookup(rules: List[LunchDeductionRule]) -> Dict[str, float]:
    lookup = {}
    for rule in rules:
        lookup.setdefault(rule.time_label.strip(), rule.deduction_hours)
    return lookup


def normalize_shift(value, lunch_lookup: Dict[str, float]):
    """Return (label, deduction hours) for one non-empty schedule cell"""
    text = str(value).strip()
    if is_special_shift(text):
        return text, 0.0

    label, deduction = split_deduction(text)
    if deduction is None:
        deduction = lunch_lookup.get(label, 0.0)
    return pad_single_digit_hours(label), float(deduction)


class RecordNormalizer:
    """Builds ScheduleRecords for one area from a validated upload"""

    def __init__(self, country='CO', clock: Callable[[], datetime] = datetime.now,
                 holiday_calendar: Optional[HolidayCalendar] = None):
        self.country = country
        self.clock = clock
        self._holiday_calendar = holiday_calendar

    def holiday_calendar(self, year: int) -> HolidayCalendar:
        if self._holiday_calendar is None or self._holiday_calendar.year != year:
            self._holiday_calendar = HolidayCalendar(self.country, year)
        return self._holiday_calendar

    def resolved_dates(self, upload: ScheduleUpload, year: int) -> Dict[int, str]:
        return {col: resolve_date_header(header, year) for col, header in upload.date_headers.items()}

    def record_dates(self, upload: ScheduleUpload, year: Optional[int] = None) -> List[str]:
        """Distinct resolved dates that carry at least one shift, in column order"""
        year = year or self.clock().year
        dates = self.resolved_dates(upload, year)
        used = []
        for col in upload.date_columns:
            if any(row.employee_id and not is_empty(row.shifts.get(col)) for row in upload.rows):
                if dates[col] not in used:
                    used.append(dates[col])
        return used

    def check_year(self, upload: ScheduleUpload, allow_unresolved: bool = False):
        """
        Reject the whole batch when any scheduled date falls outside the current year.
        A date header that does not resolve has no year and counts as offending
        unless allow_unresolved is set.
        """
        year = self.clock().year
        offending = []
        for value in self.record_dates(upload, year):
            parsed = parse_iso_date(value)
            if parsed is None:
                if not allow_unresolved:
                    offending.append(value)
            elif parsed.year != year:
                offending.append(value)
        if offending:
            logger.warning(f"Year check failed, {len(offending)} dates outside {year}: {offending}")
            raise YearMismatchError(offending, year)

    def normalize(self, upload: ScheduleUpload, area: str) -> List[ScheduleRecord]:
        self.check_year(upload, allow_unresolved=True)

        now = self.clock()
        pay_period = get_pay_period(now.date())
        calendar = self.holiday_calendar(now.year)
        dates = self.resolved_dates(upload, now.year)
        lunch_lookup = build_lunch_lookup(upload.lunch_rules)

        records = []
        for row in upload.rows:
            if not row.employee_id:
                continue
            for col in upload.date_columns:
                value = row.shifts.get(col)
                if is_empty(value):
                    continue

                label, deduction = normalize_shift(value, lunch_lookup)
                schedule_date = dates[col]
                classification = None
                if calendar.is_holiday(parse_iso_date(schedule_date)):
                    classification = row.position or HOLIDAY_CLASSIFICATION

                records.append(ScheduleRecord(
                    employee_id=row.employee_id,
                    schedule_date=schedule_date,
                    schedule_label=label,
                    area=area,
                    deduction_hours=deduction,
                    pay_period=pay_period,
                    classification=classification,
                    query_timestamp=now,
                ))

        logger.info(f"Normalized {len(records)} schedule records for {area}")
        return records

    def normalize_novedades(self, upload: NovedadesUpload, area: str) -> List[NovedadRecord]:
        now = self.clock()
        quincena = get_pay_period(now.date())
        records = [
            NovedadRecord(
                fecha_programacion=row.fecha_programacion.isoformat(),
                cedula=row.cedula,
                tipo_novedad=row.tipo_novedad,
                fecha_hora_extra=row.fecha_hora_extra.isoformat() if row.fecha_hora_extra else None,
                hora_inicio_fin=row.hora_inicio_fin or None,
                motivo=row.motivo or None,
                cedula_autoriza=row.cedula_autoriza or None,
                area=area,
                quincena=quincena,
                fecha_consulta=now,
            )
            for row in upload.rows
        ]
        logger.info(f"Prepared {len(records)} novedades for {area}")
        return records

# utils/schedule_rows.py
"""
Named records built once from the raw worksheet matrix
Downstream code works with these instead of positional row access
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

FORMATO = 'formato'
NOVEDADES = 'novedades'
SCHEDULE_TYPES = (FORMATO, NOVEDADES)


@dataclass(frozen=True)
class LunchDeductionRule:
    """Row of the almuerzo sheet: a shift label and the hours it deducts"""
    time_label: str
    deduction_hours: float

    def to_dict(self):
        return {'timeLabel': self.time_label, 'deductionHours': self.deduction_hours}


@dataclass
class EmployeeScheduleRow:
    row_index: int          # zero-based index into the raw matrix
    sheet_row: int          # one-based spreadsheet row number
    employee_id: str
    name: str
    position: str
    shifts: Dict[int, Any] = field(default_factory=dict)  # date column index -> raw cell

    def to_list(self, date_columns: List[int]) -> List[Any]:
        """Flat row in display order: #, id, name, position, one cell per date column"""
        values = [self.sheet_row, self.employee_id, self.name, self.position]
        values.extend(self.shifts.get(col) for col in date_columns)
        return values


@dataclass
class ScheduleUpload:
    responsible: str
    date_range: str
    headers: List[str]
    date_headers: Dict[int, Any]   # column index -> raw header value
    rows: List[EmployeeScheduleRow]
    lunch_rules: List[LunchDeductionRule] = field(default_factory=list)

    @property
    def date_columns(self) -> List[int]:
        return sorted(self.date_headers)

    def employees(self) -> List[Dict[str, str]]:
        """Unique (cedula, nombre) pairs, first occurrence wins"""
        seen = {}
        for row in self.rows:
            if row.employee_id and row.employee_id not in seen:
                seen[row.employee_id] = {'cedula': row.employee_id, 'nombre': row.name}
        return list(seen.values())

    def shift_count(self) -> int:
        return sum(
            1 for row in self.rows for value in row.shifts.values()
            if value is not None and str(value).strip()
        )

    def to_dict(self):
        columns = self.date_columns
        return {
            'type': FORMATO,
            'responsible': self.responsible,
            'dateRange': self.date_range,
            'headers': self.headers,
            'rows': [row.to_list(columns) for row in self.rows],
            'lunchSchedules': [rule.to_dict() for rule in self.lunch_rules],
        }


@dataclass
class NovedadRow:
    row_index: int
    fecha_programacion: date
    cedula: str
    nombre: str
    tipo_novedad: str
    fecha_hora_extra: Optional[date] = None
    hora_inicio_fin: str = ''
    motivo: str = ''
    nombre_autoriza: str = ''
    cedula_autoriza: str = ''

    def to_list(self) -> List[Any]:
        return [
            self.fecha_programacion.isoformat(),
            self.cedula,
            self.nombre,
            self.tipo_novedad,
            self.fecha_hora_extra.isoformat() if self.fecha_hora_extra else '',
            self.hora_inicio_fin,
            self.motivo,
            self.nombre_autoriza,
            self.cedula_autoriza,
        ]


@dataclass
class NovedadesUpload:
    area: str
    responsible: str
    headers: List[str]
    rows: List[NovedadRow]
    lunch_rules: List[LunchDeductionRule] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def employees(self) -> List[Dict[str, str]]:
        seen = {}
        for row in self.rows:
            if row.cedula not in seen:
                seen[row.cedula] = {'cedula': row.cedula, 'nombre': row.nombre}
        return list(seen.values())

    def to_dict(self):
        return {
            'type': NOVEDADES,
            'area': self.area,
            'responsible': self.responsible,
            'headers': self.headers,
            'rows': [row.to_list() for row in self.rows],
            'lunchSchedules': [rule.to_dict() for rule in self.lunch_rules],
        }

# engines/schedule_store.py
"""
Schedule Store
Employee registry check, date collision check and the bulk inserts behind
the /api routes. Each operation takes the decoded request body and returns
(payload, status) so the routes and the in-process API session share it.
Each save runs in a single transaction: every record is stored or none is
"""

import logging
import re
import traceback
from datetime import datetime, date

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import db, ProgramacionTurno, NovedadProgramacion, PersonaValida
from utils.helpers import digits_only, parse_any_date, parse_iso_date

logger = logging.getLogger(__name__)

MAX_EMPLOYEES = 1000
MIN_CEDULA_DIGITS = 6
NBSP = '\u00a0'

MYSQL_DUPLICATE_RE = re.compile(r"Duplicate entry '(.+?)' for key")
SQLITE_UNIQUE_RE = re.compile(r'UNIQUE constraint failed: ([^\s"]+(?:, [^\s"]+)*)')

# ==========================================
# HELPERS
# ==========================================

def is_development():
    return current_app.config.get('APP_ENV') == 'development'


def today():
    return date.today()


def conflict_detail(error):
    """Extract the conflicting key from a database integrity error"""
    text = str(getattr(error, 'orig', error))
    match = MYSQL_DUPLICATE_RE.search(text) or SQLITE_UNIQUE_RE.search(text)
    if match:
        return f'Conflicto en: {match.group(1)}'
    return text


def server_error(message, error, status=500):
    payload = {'error': message, 'details': str(error) if is_development() else None}
    if is_development():
        payload['stack'] = traceback.format_exc()
    return payload, status


class RecordValidationError(ValueError):
    pass


def _schedule_values(record, now):
    cedula = str(record.get('CEDULA', '')).strip()
    if not cedula.isdigit() or len(cedula) < MIN_CEDULA_DIGITS:
        raise RecordValidationError(f"CEDULA inválida: {record.get('CEDULA')}")

    raw_date = str(record.get('Fecha_programacion', ''))
    fecha = parse_iso_date(raw_date)
    if fecha is None:
        raise RecordValidationError(f'Formato de fecha inválido: {raw_date}')

    horario = record.get('Horario_programacion')
    if not isinstance(horario, str) or not horario.strip():
        raise RecordValidationError(f'Horario inválido: {horario}')

    try:
        deduction = float(record.get('Tiempo_a_descontar') or 0)
    except (TypeError, ValueError):
        deduction = 0.0

    return {
        'CEDULA': int(cedula),
        'Fecha_programacion': fecha,
        'Horario_programacion': horario.strip(),
        'Area': record.get('Area'),
        'Tiempo_a_descontar': deduction,
        'Quincena': record.get('Quincena'),
        'clasificacion': record.get('clasificacion') or None,
        'fecha_consulta': now,
    }


def _novedad_values(record, now):
    cedula = str(record.get('CEDULA', '')).strip()
    if not cedula.isdigit():
        raise RecordValidationError(f"CEDULA inválida: {record.get('CEDULA')}")

    fecha = parse_any_date(record.get('FECHA_PROGRAMACION'))
    if fecha is None:
        raise RecordValidationError(f"Fecha de programación inválida: {record.get('FECHA_PROGRAMACION')}")

    fecha_extra = None
    if record.get('FECHA_HORA_EXTRA'):
        fecha_extra = parse_any_date(record.get('FECHA_HORA_EXTRA'))
        if fecha_extra is None:
            raise RecordValidationError(f"Fecha hora extra inválida: {record.get('FECHA_HORA_EXTRA')}")

    autoriza = str(record.get('CEDULA_AUTORIZA') or '').strip()
    if autoriza and not autoriza.isdigit():
        raise RecordValidationError(f'CEDULA_AUTORIZA inválida: {autoriza}')

    return {
        'FECHA_PROGRAMACION': fecha,
        'CEDULA': int(cedula),
        'TIPO_NOVEDAD': record.get('TIPO_NOVEDAD'),
        'FECHA_HORA_EXTRA': fecha_extra,
        'HORA_INICIO_FIN': record.get('HORA_INICIO_FIN') or None,
        'MOTIVO': record.get('MOTIVO') or None,
        'CEDULA_AUTORIZA': int(autoriza) if autoriza else None,
        'AREA': record.get('AREA'),
        'QUINCENA': record.get('QUINCENA'),
        'TIEMPO_DESCONTAR': record.get('TIEMPO_DESCONTAR') or 0,
        'FECHA_CONSULTA': now,
    }


def _prepare(records, build):
    """Validate every record; returns (values, error response)"""
    now = datetime.now()
    values = []
    for index, record in enumerate(records):
        try:
            if not isinstance(record, dict):
                raise RecordValidationError('Registro inválido')
            values.append(build(record, now))
        except RecordValidationError as e:
            logger.error(f"Record {index + 1} failed validation: {e}")
            return None, ({
                'error': 'Error de validación de datos',
                'details': str(e),
                'failedRecord': record,
                'recordIndex': index,
            }, 400)
    return values, None


def _insert(model, values):
    """Insert all rows in one transaction; returns (objects, error response)"""
    objects = [model(**row) for row in values]
    try:
        db.session.add_all(objects)
        db.session.flush()
        db.session.commit()
        return objects, None
    except IntegrityError as e:
        db.session.rollback()
        logger.warning(f"Duplicate record rejected: {e.orig}")
        return None, ({'error': 'Registro duplicado', 'details': conflict_detail(e)}, 409)
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error saving {model.__tablename__}: {e}", exc_info=True)
        return None, server_error('Error al guardar los datos', e)


def _records(data):
    records = data.get('records')
    if not isinstance(records, list) or not records:
        return None
    return records

# ==========================================
# OPERATIONS
# ==========================================

def validate_employees(data):
    """Report which employees are missing from the registry"""
    employees = data.get('employees')

    if not isinstance(employees, list):
        return {'error': 'Formato de lista de empleados inválido'}, 400

    candidates = [emp for emp in employees if isinstance(emp, dict) and emp.get('cedula') is not None]
    if not candidates:
        return {'error': 'No hay cédulas válidas para procesar'}, 400
    if len(candidates) > MAX_EMPLOYEES:
        return {'error': f'Máximo {MAX_EMPLOYEES} empleados por solicitud'}, 400

    cedulas = [digits_only(emp['cedula']) for emp in candidates]
    cedulas = [cedula for cedula in cedulas if cedula]
    if not cedulas:
        return {'error': 'Ninguna cédula válida encontrada'}, 400

    try:
        nit = func.trim(func.replace(PersonaValida.F200_NIT, NBSP, ''))
        rows = db.session.query(PersonaValida.F200_NIT).filter(nit.in_(cedulas)).all()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Registry lookup failed: {e}", exc_info=True)
        return server_error('Error en validación', e)

    found = {digits_only(row[0]) for row in rows}
    invalid = [emp for emp in candidates if digits_only(emp['cedula']) not in found]
    logger.info(f"Validated {len(candidates)} employees, {len(invalid)} not in registry")

    return {
        'isValid': not invalid,
        'invalidEmployees': [
            {'cedula': emp['cedula'], 'nombre': emp.get('nombre') or 'No disponible'}
            for emp in invalid
        ],
        'meta': {
            'totalChecked': len(candidates),
            'validCount': len(found),
            'invalidCount': len(invalid),
        },
    }, 200


def check_dates(data):
    """Report which dates already have schedules stored for an area"""
    dates = data.get('dates')
    area = data.get('area')

    if not isinstance(dates, list) or not dates:
        return {'error': 'No se proporcionaron fechas para validar'}, 400
    if not area:
        return {'error': 'No se proporcionó el área para validar'}, 400

    requested = [parse_iso_date(str(value).split('T')[0]) for value in dates]
    requested = [value for value in requested if value is not None]
    if not requested:
        return {'exists': False, 'existingDates': []}, 200

    try:
        rows = db.session.query(ProgramacionTurno.Fecha_programacion).filter(
            ProgramacionTurno.Area == area,
            ProgramacionTurno.Fecha_programacion.in_(requested),
        ).distinct().all()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error checking dates: {e}")
        if is_development():
            logger.info("Development mode - bypassing date check")
            return {'exists': False, 'existingDates': []}, 200
        return server_error('Failed to check dates in database', e)

    existing = sorted(row[0].isoformat() for row in rows)
    logger.info(f"Existing dates for {area}: {existing}")
    return {'exists': bool(existing), 'existingDates': existing}, 200


def save_schedule(data):
    """Store a batch of schedule records"""
    records = _records(data)
    if records is None:
        return {'error': 'No se recibieron registros para guardar'}, 400

    current_year = today().year
    invalid_year = []
    for record in records:
        value = record.get('Fecha_programacion') if isinstance(record, dict) else None
        parsed = parse_iso_date(str(value or ''))
        if parsed is None or parsed.year != current_year:
            invalid_year.append(value)
    if invalid_year:
        return {
            'error': f'Fechas fuera del año actual ({current_year})',
            'invalidRecords': invalid_year,
        }, 400

    values, error = _prepare(records, _schedule_values)
    if error:
        return error

    objects, error = _insert(ProgramacionTurno, values)
    if error:
        return error

    logger.info(f"Inserted {len(objects)} schedule records")
    return {
        'success': True,
        'message': 'Datos guardados exitosamente',
        'recordCount': len(objects),
        'insertedIds': [obj.id for obj in objects],
    }, 200


def save_novedades(data):
    """Store a batch of schedule exceptions"""
    records = _records(data)
    if records is None:
        return {'error': 'No se recibieron registros para guardar'}, 400

    logger.info(f"Received {len(records)} novedades to save")

    values, error = _prepare(records, _novedad_values)
    if error:
        return error

    objects, error = _insert(NovedadProgramacion, values)
    if error:
        return error

    logger.info(f"Inserted {len(objects)} novedades")
    return {
        'success': True,
        'message': 'Datos guardados exitosamente',
        'recordCount': len(objects),
    }, 200

# ==========================================
# IN-PROCESS API SESSION
# ==========================================

OPERATIONS = {
    '/validate-employees': validate_employees,
    '/check-dates': check_dates,
    '/save-schedule': save_schedule,
    '/save-novedades': save_novedades,
}


class StoreResponse:
    """The parts of a requests.Response that ScheduleApiClient reads"""

    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        return self._payload


class InProcessApiSession:
    """
    Stands in for the HTTP session when the schedule API lives in this app.
    Calls the store operations directly, so a save never waits on a second
    request to the same worker. Needs an application context.
    """

    def post(self, url, json=None, params=None, headers=None, timeout=None):
        path = url[url.rfind('/'):]
        operation = OPERATIONS.get(path)
        if operation is None:
            return StoreResponse(404, {'error': 'Not found'})
        payload, status = operation(json or {})
        return StoreResponse(status, payload)

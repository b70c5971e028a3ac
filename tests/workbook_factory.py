"""In-memory workbooks laid out like the real schedule templates."""

from datetime import date, datetime
from io import BytesIO

from openpyxl import Workbook

from utils.schedule_rows import EmployeeScheduleRow, ScheduleUpload

YEAR = date.today().year

FIXED_HEADERS = ['#', 'CEDULA', 'NOMBRE', 'CARGO']
NOVEDADES_HEADERS = [
    'FECHA PROGRAMACION', 'CEDULA', 'NOMBRE', 'TIPO NOVEDAD', 'FECHA HORA EXTRA',
    'HORA INICIO Y FIN', 'MOTIVO', 'NOMBRE DE QUIEN AUTORIZA', 'CEDULA DE QUIEN AUTORIZA',
]


def default_date_headers():
    return [datetime(YEAR, 3, 9), datetime(YEAR, 3, 10)]


def _save(workbook):
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def _add_lunch_sheet(workbook, lunch):
    sheet = workbook.create_sheet('almuerzo')
    sheet['B12'] = 'HORARIO'
    sheet['C12'] = 'DESCUENTO'
    for offset, (label, deduction) in enumerate(lunch):
        sheet.cell(row=13 + offset, column=2, value=label)
        sheet.cell(row=13 + offset, column=3, value=deduction)


def build_formato_workbook(rows, date_headers=None, responsible='Ana Pérez',
                           date_range='9 al 15 de marzo', headers=None, lunch=None,
                           sheet_title='Formato programación'):
    """rows are lists starting at column A: [#, cedula, name, position, shift, shift, ...]"""
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = sheet_title

    sheet['A9'] = 'Responsable:'
    if responsible is not None:
        sheet['C9'] = responsible
    sheet['A10'] = 'Fechas:'
    if date_range is not None:
        sheet['C10'] = date_range

    for col, header in enumerate(headers or FIXED_HEADERS, start=1):
        sheet.cell(row=12, column=col, value=header)
    headers_row = default_date_headers() if date_headers is None else date_headers
    for offset, header in enumerate(headers_row):
        sheet.cell(row=12, column=5 + offset, value=header)

    for offset, row in enumerate(rows):
        for col, value in enumerate(row, start=1):
            sheet.cell(row=13 + offset, column=col, value=value)

    if lunch:
        _add_lunch_sheet(workbook, lunch)
    return _save(workbook)


def build_novedades_workbook(rows, area='Operaciones', responsible='Ana Pérez',
                             sheet_title='Formato de novedades', header_row=9):
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = sheet_title

    if area is not None:
        sheet['A2'] = 'Área:'
        sheet['B2'] = area
    if responsible is not None:
        sheet['A3'] = 'Responsable:'
        sheet['B3'] = responsible

    if header_row:
        for col, header in enumerate(NOVEDADES_HEADERS, start=1):
            sheet.cell(row=header_row, column=col, value=header)

    first = (header_row or 9) + 1
    for offset, row in enumerate(rows):
        for col, value in enumerate(row, start=1):
            sheet.cell(row=first + offset, column=col, value=value)
    return _save(workbook)


def make_upload(rows, date_headers=None, lunch_rules=None):
    """
    ScheduleUpload built directly from (cedula, name, position, [shifts...]) tuples,
    shifts aligned with date_headers starting at column E.
    """
    headers = default_date_headers() if date_headers is None else date_headers
    date_map = {4 + offset: header for offset, header in enumerate(headers)}
    schedule_rows = []
    for offset, (cedula, name, position, shifts) in enumerate(rows):
        schedule_rows.append(EmployeeScheduleRow(
            row_index=12 + offset,
            sheet_row=13 + offset,
            employee_id=cedula,
            name=name,
            position=position,
            shifts={4 + i: value for i, value in enumerate(shifts)},
        ))
    return ScheduleUpload(
        responsible='Ana Pérez',
        date_range='semana',
        headers=FIXED_HEADERS + [str(h) for h in headers],
        date_headers=date_map,
        rows=schedule_rows,
        lunch_rules=list(lunch_rules or []),
    )

# blueprints/upload.py
"""
Schedule upload system
Preview (parse + validate) and save endpoints for schedule workbooks
"""

from flask import Blueprint, request, jsonify, current_app
from models import AreaType
from engines.reconciliation_client import ScheduleApiClient
from engines.record_normalizer import RecordNormalizer
from engines.save_orchestrator import SaveOrchestrator, SaveOutcome
from utils.decorators import area_access_required
from utils.excel_upload_handler import ScheduleUploadValidator
from utils.exceptions import SaveInProgressError, ScheduleUploadError
from utils.schedule_rows import FORMATO, SCHEDULE_TYPES, ScheduleUpload
from utils.workbook_reader import read_workbook
import logging
import threading

# Set up logging
logger = logging.getLogger(__name__)

# Create blueprint - NO url_prefix so /areas sits at root level
upload_bp = Blueprint('upload', __name__)

# Guards creation of the per-area orchestrators and the shared API client
_orchestrators_lock = threading.Lock()

OUTCOME_STATUS = {
    SaveOutcome.SAVED: 200,
    SaveOutcome.VALIDATION_FAILED: 422,
    SaveOutcome.YEAR_MISMATCH: 422,
    SaveOutcome.SERVER_REJECTED: 422,
    SaveOutcome.EMPLOYEES_NOT_FOUND: 409,
    SaveOutcome.DATES_EXIST: 409,
    SaveOutcome.DUPLICATE_RECORD: 409,
    SaveOutcome.TRANSPORT_ERROR: 502,
    SaveOutcome.FAILED: 502,
}

# ==========================================
# HELPERS
# ==========================================

def allowed_file(filename):
    """Check if uploaded file has allowed extension"""
    return '.' in filename and \
        filename.rsplit('.', 1)[1].lower() in current_app.config['ALLOWED_EXTENSIONS']


def get_api_client():
    client = current_app.extensions.get('schedule_api_client')
    if client is None:
        client = ScheduleApiClient.from_config(current_app.config)
        current_app.extensions['schedule_api_client'] = client
    return client


def get_orchestrator(area):
    """One orchestrator per area so concurrent saves for an area are refused"""
    with _orchestrators_lock:
        orchestrators = current_app.extensions.setdefault('save_orchestrators', {})
        orchestrator = orchestrators.get(area)
        if orchestrator is None:
            orchestrator = SaveOrchestrator(
                area,
                get_api_client(),
                normalizer=RecordNormalizer(country=current_app.config.get('HOLIDAY_COUNTRY', 'CO')),
                debug=current_app.config.get('APP_ENV') == 'development',
            )
            orchestrators[area] = orchestrator
        return orchestrator


def parse_upload():
    """
    Read and parse the submitted workbook.
    Returns (upload, validator, error response).
    """
    file = request.files.get('file')
    if file is None or not file.filename:
        return None, None, (jsonify({'error': 'No file selected'}), 400)
    if not allowed_file(file.filename):
        return None, None, (jsonify({'error': 'Invalid file type. Please upload an Excel file (.xlsx)'}), 400)

    schedule_type = request.form.get('type', FORMATO)
    if schedule_type not in SCHEDULE_TYPES:
        return None, None, (jsonify({'error': f'Unknown schedule type: {schedule_type}'}), 400)

    validator = ScheduleUploadValidator()
    try:
        content = read_workbook(
            file.read(),
            schedule_type,
            timeout=current_app.config.get('WORKBOOK_READ_TIMEOUT', 30),
        )
        upload = validator.parse(content, schedule_type)
    except ScheduleUploadError as e:
        logger.info(f"Rejected upload {file.filename}: {e.message}")
        return None, None, (jsonify(e.to_dict()), 400)

    return upload, validator, None

# ==========================================
# ROUTES
# ==========================================

@upload_bp.route('/areas', methods=['GET'])
def list_areas():
    """Area catalogue"""
    return jsonify({'areas': [area.to_dict() for area in AreaType]})


@upload_bp.route('/upload/preview', methods=['POST'])
@area_access_required
def preview_upload():
    """Parse a workbook and report every validation error without saving"""
    upload, validator, error = parse_upload()
    if error:
        return error

    payload = upload.to_dict()
    if isinstance(upload, ScheduleUpload):
        errors = validator.validate_schedule(upload)
        payload['stats'] = {
            'employees': len(upload.employees()),
            'dates': len(upload.date_columns),
            'shifts': upload.shift_count(),
        }
    else:
        errors = []
        payload['stats'] = {
            'employees': len(upload.employees()),
            'records': len(upload.rows),
        }

    payload['errors'] = [e.to_dict() for e in errors]
    payload['warnings'] = list(validator.warnings)
    payload['canSave'] = not errors
    return jsonify(payload), 200


@upload_bp.route('/upload/save', methods=['POST'])
@area_access_required
def save_upload():
    """Validate, reconcile and persist a workbook for the selected area"""
    upload, validator, error = parse_upload()
    if error:
        return error

    area = AreaType.from_value(request.form.get('area')).value
    confirm = request.form.get('confirm_existing_dates', '').lower() in ('1', 'true', 'on', 'yes')
    orchestrator = get_orchestrator(area)

    try:
        if isinstance(upload, ScheduleUpload):
            result = orchestrator.save(upload, confirm_existing_dates=confirm)
        else:
            result = orchestrator.save_novedades(upload)
    except SaveInProgressError as e:
        return jsonify(e.to_dict()), 429

    payload = result.to_dict()
    if validator.warnings:
        payload['warnings'] = list(validator.warnings)
    return jsonify(payload), OUTCOME_STATUS[result.outcome]

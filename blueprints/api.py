# blueprints/api.py
"""
Schedule API Blueprint
Employee registry check, date collision check and the bulk save endpoints
The work itself lives in engines.schedule_store
"""

from flask import Blueprint, request, jsonify
from engines import schedule_store
import logging

logger = logging.getLogger(__name__)

# Create blueprint
api_bp = Blueprint('api', __name__, url_prefix='/api')


def respond(operation):
    data = request.get_json(silent=True) or {}
    payload, status = operation(data)
    return jsonify(payload), status

# ==========================================
# ROUTES
# ==========================================

@api_bp.route('/validate-employees', methods=['POST'])
def validate_employees():
    """Report which employees are missing from the registry"""
    return respond(schedule_store.validate_employees)


@api_bp.route('/check-dates', methods=['POST'])
def check_dates():
    """Report which dates already have schedules stored for an area"""
    return respond(schedule_store.check_dates)


@api_bp.route('/save-schedule', methods=['POST'])
def save_schedule():
    """Store a batch of schedule records"""
    return respond(schedule_store.save_schedule)


@api_bp.route('/save-novedades', methods=['POST'])
def save_novedades():
    """Store a batch of schedule exceptions"""
    return respond(schedule_store.save_novedades)

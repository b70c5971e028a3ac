# blueprints/auth.py
"""
Area Authentication Blueprint
Unlocks an area with its password and reports or clears that access
"""

from flask import Blueprint, request, jsonify
from models import AreaType
from utils.decorators import get_authenticator
import logging

logger = logging.getLogger(__name__)

# Create blueprint
auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


def _area_or_404(area_id):
    area = AreaType.from_value(area_id)
    if area is None:
        return None, (jsonify({'error': f'Unknown area: {area_id}'}), 404)
    return area, None


@auth_bp.route('/area/<area_id>', methods=['POST'])
def unlock_area(area_id):
    """Check the area password and remember the access"""
    area, error = _area_or_404(area_id)
    if error:
        return error

    data = request.get_json(silent=True) or request.form
    password = data.get('password', '')
    remember = str(data.get('remember', '')).lower() in ('1', 'true', 'on', 'yes')

    if not password:
        return jsonify({'error': 'Please enter the area password'}), 400

    if not get_authenticator().login(area.value, password, remember=remember):
        return jsonify({'error': 'Incorrect password'}), 401

    return jsonify({'success': True, 'area': area.to_dict()}), 200


@auth_bp.route('/area/<area_id>/logout', methods=['POST'])
def lock_area(area_id):
    area, error = _area_or_404(area_id)
    if error:
        return error

    get_authenticator().logout(area.value)
    logger.info(f"Area {area.value} locked")
    return jsonify({'success': True}), 200


@auth_bp.route('/area/<area_id>', methods=['GET'])
def area_status(area_id):
    area, error = _area_or_404(area_id)
    if error:
        return error

    return jsonify({
        'area': area.value,
        'authorized': get_authenticator().is_authorized(area.value),
    }), 200

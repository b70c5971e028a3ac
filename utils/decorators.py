# utils/decorators.py
"""
Custom decorators for access control
"""

from functools import wraps
from flask import current_app, jsonify, request

from models import AreaType


def get_authenticator():
    return current_app.extensions['area_authenticator']


def area_access_required(f):
    """
    Decorator to require an unlocked area for a route.
    The area comes from the URL (area_id) or the submitted form/JSON (area).
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        area_id = kwargs.get('area_id') or request.form.get('area')
        if not area_id and request.is_json:
            area_id = (request.get_json(silent=True) or {}).get('area')

        area = AreaType.from_value(area_id)
        if area is None:
            return jsonify({'error': f'Unknown area: {area_id}'}), 400

        if not get_authenticator().is_authorized(area.value):
            return jsonify({'error': f'Access to {area.value} requires its password'}), 401

        return f(*args, **kwargs)

    return decorated_function

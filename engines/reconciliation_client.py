# engines/reconciliation_client.py
"""
Employee/Date Reconciliation Client
HTTP client for the schedule API: employee existence and date collision
checks (fail open), plus the persistence calls (fail closed)
"""

import logging
import time
from typing import Any, Dict, List, Optional

import requests

from engines.schedule_store import InProcessApiSession
from utils.exceptions import (
    ApiServerError, ApiTransportError, ApiValidationError, DuplicateRecordError,
)

logger = logging.getLogger(__name__)

MAX_EMPLOYEES_PER_REQUEST = 1000


class ScheduleApiClient:
    """Talks to the /api endpoints of the schedule backend"""

    def __init__(self, base_url, validation_timeout=30, date_check_timeout=15,
                 save_timeout=30, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.validation_timeout = validation_timeout
        self.date_check_timeout = date_check_timeout
        self.save_timeout = save_timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config):
        """
        HTTP client for SCHEDULE_API_URL, or, when it is unset, a client that
        runs this app's /api operations in-process
        """
        base_url = config.get('SCHEDULE_API_URL') or ''
        session = None if base_url else InProcessApiSession()
        return cls(
            base_url,
            validation_timeout=config.get('VALIDATION_TIMEOUT', 30),
            date_check_timeout=config.get('DATE_CHECK_TIMEOUT', 15),
            save_timeout=config.get('SAVE_TIMEOUT', 30),
            session=session,
        )

    def _post(self, path, payload, timeout):
        # Cache-busting query parameter
        return self.session.post(
            f'{self.base_url}{path}',
            json=payload,
            params={'t': int(time.time() * 1000)},
            headers={'Cache-Control': 'no-cache', 'Pragma': 'no-cache'},
            timeout=timeout,
        )

    # ==========================================
    # RECONCILIATION CHECKS (FAIL OPEN)
    # ==========================================

    def validate_employees(self, employees: List[Dict[str, str]]) -> Dict[str, Any]:
        """
        Check (cedula, nombre) pairs against the employee registry.
        Any transport or server failure is reported as "all valid".
        """
        passed = {'isValid': True, 'invalidEmployees': []}
        if not employees:
            return passed
        if len(employees) > MAX_EMPLOYEES_PER_REQUEST:
            logger.warning(f"Employee check skipped: {len(employees)} exceeds {MAX_EMPLOYEES_PER_REQUEST}")
            return passed

        try:
            response = self._post('/validate-employees', {'employees': employees}, self.validation_timeout)
            if response.status_code != 200:
                logger.warning(f"Employee check returned HTTP {response.status_code}, continuing without it")
                return passed
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Employee check unavailable, continuing without it: {e}")
            return passed

        invalid = data.get('invalidEmployees') or []
        logger.info(f"Employee check: {len(employees)} checked, {len(invalid)} not found")
        return {
            'isValid': bool(data.get('isValid', not invalid)) and not invalid,
            'invalidEmployees': invalid,
        }

    def check_dates(self, dates: List[str], area: str) -> Dict[str, Any]:
        """Report which dates already have schedules for the area; fails open"""
        passed = {'exists': False, 'existingDates': []}
        if not dates:
            return passed

        try:
            response = self._post('/check-dates', {'dates': dates, 'area': area}, self.date_check_timeout)
            if response.status_code != 200:
                logger.warning(f"Date check returned HTTP {response.status_code}, continuing without it")
                return passed
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Date check unavailable, continuing without it: {e}")
            return passed

        existing = data.get('existingDates') or []
        return {'exists': bool(existing), 'existingDates': existing}

    # ==========================================
    # PERSISTENCE (FAIL CLOSED)
    # ==========================================

    def save_schedule(self, records: List[Dict[str, Any]]) -> Dict[str, Any]:
        return self._save('/save-schedule', records)

    def save_novedades(self, records: List[Dict[str, Any]]) -> Dict[str, Any]:
        return self._save('/save-novedades', records)

    def _save(self, path, records):
        try:
            response = self._post(path, {'records': records}, self.save_timeout)
        except requests.Timeout:
            logger.error(f"{path} timed out after {self.save_timeout}s")
            raise ApiTransportError('The server took too long to respond. Try again.')
        except requests.ConnectionError as e:
            logger.error(f"{path} connection failed: {e}")
            raise ApiTransportError('Could not connect to the server. Check your connection and try again.')
        except requests.RequestException as e:
            logger.error(f"{path} request failed: {e}")
            raise ApiTransportError(f'Request failed: {e}')

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        error_text = f"{data.get('error', '')} {data.get('details', '')}".strip()

        if response.status_code == 409 or 'duplicado' in error_text.lower():
            logger.warning(f"{path} rejected duplicate records: {error_text}")
            raise DuplicateRecordError(
                f"Duplicate record: {data.get('details') or data.get('error') or 'conflicting entry'}",
                details=data,
            )
        if response.status_code == 400:
            logger.warning(f"{path} rejected the batch: {error_text}")
            raise ApiValidationError(data.get('error') or 'The server rejected the records',
                                     status_code=400, payload=data)
        if response.status_code >= 500:
            logger.error(f"{path} failed with HTTP {response.status_code}: {error_text}")
            raise ApiServerError(data.get('error') or f'Server error ({response.status_code})',
                                 status_code=response.status_code, payload=data)
        if response.status_code != 200:
            raise ApiServerError(f'Unexpected response ({response.status_code})',
                                 status_code=response.status_code, payload=data)
        if not (data.get('success') or data.get('message')):
            raise ApiServerError('The server response did not confirm the save',
                                 status_code=response.status_code, payload=data)

        logger.info(f"{path} saved {data.get('recordCount', len(records))} records")
        return data

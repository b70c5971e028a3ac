# utils/session_store.py
"""
Per-area access tokens
The area gate stores a token once a password is accepted; the store is
passed to the authenticator instead of reaching for global state.
"""

import logging
import secrets
from typing import Dict, Optional

from flask import session
from werkzeug.security import check_password_hash

logger = logging.getLogger(__name__)

SESSION_KEY = 'area_tokens'


class SessionStore:
    """Interface: area id -> access token"""

    def get(self, area_id: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, area_id: str, token: str, remember: bool = False):
        raise NotImplementedError

    def clear(self, area_id: str):
        raise NotImplementedError


class FlaskSessionStore(SessionStore):
    """Tokens kept in the signed Flask session cookie"""

    def get(self, area_id):
        return session.get(SESSION_KEY, {}).get(area_id)

    def set(self, area_id, token, remember=False):
        tokens = dict(session.get(SESSION_KEY, {}))
        tokens[area_id] = token
        session[SESSION_KEY] = tokens
        if remember:
            session.permanent = True

    def clear(self, area_id):
        tokens = dict(session.get(SESSION_KEY, {}))
        if tokens.pop(area_id, None) is not None:
            session[SESSION_KEY] = tokens


class InMemorySessionStore(SessionStore):
    def __init__(self):
        self._tokens: Dict[str, str] = {}

    def get(self, area_id):
        return self._tokens.get(area_id)

    def set(self, area_id, token, remember=False):
        self._tokens[area_id] = token

    def clear(self, area_id):
        self._tokens.pop(area_id, None)


class AreaAuthenticator:
    """Checks area passwords against configured werkzeug hashes"""

    def __init__(self, password_hashes: Dict[str, str], store: SessionStore):
        self.password_hashes = password_hashes or {}
        self.store = store

    def login(self, area_id: str, password: str, remember: bool = False) -> bool:
        password_hash = self.password_hashes.get(area_id)
        if not password_hash:
            logger.warning(f"No password configured for area {area_id}; access denied")
            return False
        if not password or not check_password_hash(password_hash, password):
            logger.info(f"Rejected password for area {area_id}")
            return False

        self.store.set(area_id, secrets.token_urlsafe(32), remember=remember)
        logger.info(f"Area {area_id} unlocked")
        return True

    def logout(self, area_id: str):
        self.store.clear(area_id)

    def is_authorized(self, area_id: str) -> bool:
        return self.store.get(area_id) is not None

"""
Admin sign-in for the attendance tracker.

There is one admin account, configured through ADMIN_EMAIL plus either
ADMIN_PASSWORD or a werkzeug ADMIN_PASSWORD_HASH. The signed-in user lives in
the Flask session; listeners registered with on_auth_change() hear about
every sign-in and sign-out, and once immediately on registration.
"""

import re
import secrets
from flask import current_app, has_request_context, session
from werkzeug.security import check_password_hash

from rollcall.exceptions import AuthError


EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
SESSION_KEY = 'admin_email'


class IdentityProvider:
    """Session-backed identity adapter."""

    def __init__(self, app=None):
        self.app = app
        self._listeners = []

    def init_app(self, app):
        """Initialize with Flask app."""
        self.app = app
        app.extensions['rollcall_identity'] = self

    def current_user(self):
        """The signed-in admin as {'email': ...}, or None."""
        if not has_request_context():
            return None
        email = session.get(SESSION_KEY)
        return {'email': email} if email else None

    def sign_in(self, username: str, password: str) -> dict:
        """
        Sign the admin in.

        Args:
            username: Admin email address
            password: Plain-text password

        Returns:
            The signed-in user dict

        Raises:
            AuthError: with code invalid-email, user-not-found, wrong-password
                or unexpected
        """
        email = (username or '').strip().lower()
        if not EMAIL_PATTERN.match(email):
            raise AuthError(AuthError.INVALID_EMAIL)

        if email != current_app.config.get('ADMIN_EMAIL'):
            current_app.logger.info(f"Sign-in rejected for unknown account {email}")
            raise AuthError(AuthError.USER_NOT_FOUND)

        try:
            valid = self._check_password(password or '')
        except (ValueError, TypeError) as e:
            current_app.logger.error(f"Password check failed for {email}: {e}")
            raise AuthError(AuthError.UNEXPECTED) from e

        if not valid:
            current_app.logger.info(f"Wrong password for {email}")
            raise AuthError(AuthError.WRONG_PASSWORD)

        session[SESSION_KEY] = email
        session.permanent = True
        current_app.logger.info(f"Admin signed in: {email}")

        user = {'email': email}
        self._notify(user)
        return user

    def sign_out(self):
        """Clear the session and tell listeners."""
        email = session.pop(SESSION_KEY, None)
        if email:
            current_app.logger.info(f"Admin signed out: {email}")
        self._notify(None)

    def on_auth_change(self, callback):
        """Register a listener. Fires now with the current user, then on every change.

        Returns a function that removes the listener.
        """
        self._listeners.append(callback)
        callback(self.current_user())

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)
        return unsubscribe

    def _check_password(self, password: str) -> bool:
        password_hash = current_app.config.get('ADMIN_PASSWORD_HASH')
        if password_hash:
            return check_password_hash(password_hash, password)
        expected = current_app.config.get('ADMIN_PASSWORD')
        if not expected:
            raise ValueError('no ADMIN_PASSWORD or ADMIN_PASSWORD_HASH configured')
        return secrets.compare_digest(password, expected)

    def _notify(self, user):
        for callback in list(self._listeners):
            callback(user)


def init_identity(app):
    identity = IdentityProvider()
    identity.init_app(app)
    return identity


def get_identity():
    """Get the identity provider bound to the current app."""
    return current_app.extensions['rollcall_identity']

"""Authentication dependencies identifying the owner of a request."""

from __future__ import annotations

import json
import logging
import os
from typing import Optional

from fastapi import Header, HTTPException, status

logger = logging.getLogger(__name__)

API_TOKEN_OWNER = "api"
FIREBASE_OWNER_PREFIX = "firebase:"


class AuthenticationError(HTTPException):
    """Custom exception for authentication failures."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


def _get_firebase_admin():
    """Get or initialize Firebase Admin SDK."""
    try:
        import firebase_admin
        from firebase_admin import auth as admin_auth, credentials

        if not firebase_admin._apps:
            project_id = os.getenv("GOOGLE_CLOUD_PROJECT") or os.getenv("GCP_PROJECT_ID")
            options = {"projectId": project_id} if project_id else None

            cred_path = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")
            if cred_path and not os.path.isabs(cred_path):
                package_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
                candidate = os.path.join(package_dir, cred_path)
                cred_path = candidate if os.path.exists(candidate) else os.path.abspath(cred_path)

            if cred_path and os.path.exists(cred_path):
                cred = credentials.Certificate(cred_path)
                with open(cred_path, "r") as f:
                    sa_data = json.load(f)
                if sa_data.get("project_id"):
                    options = {"projectId": sa_data["project_id"]}
            else:
                cred = credentials.ApplicationDefault()
            firebase_admin.initialize_app(cred, options)

        return admin_auth
    except ImportError:
        logger.warning("Firebase Admin SDK not available")
        return None
    except Exception as exc:
        logger.warning(f"Failed to initialize Firebase Admin: {exc}")
        return None


def _extract_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthenticationError("Missing Authorization header")

    if not authorization.startswith("Bearer "):
        raise AuthenticationError("Invalid Authorization header format. Expected 'Bearer <token>'")

    token = authorization[7:]
    if not token:
        raise AuthenticationError("Missing bearer token")
    return token


def verify_firebase_token(authorization: Optional[str] = Header(None)) -> dict:
    """Verify a Firebase ID token and return its decoded claims."""
    token = _extract_token(authorization)

    admin_auth = _get_firebase_admin()
    if not admin_auth:
        raise AuthenticationError("Firebase authentication not configured")

    try:
        decoded_token = admin_auth.verify_id_token(token)
        logger.info("Firebase token verified", extra={"uid": decoded_token.get("uid")})
        return decoded_token
    except Exception as exc:
        logger.warning("Firebase token verification failed", extra={"error": str(exc)})
        raise AuthenticationError("Invalid or expired Firebase token")


def verify_bearer_token(authorization: Optional[str] = Header(None)) -> str:
    """Verify the shared API_AUTH_TOKEN bearer token."""
    token = _extract_token(authorization)

    expected_token = os.getenv("API_AUTH_TOKEN")
    if not expected_token:
        logger.error("API_AUTH_TOKEN environment variable not set")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server authentication not configured",
        )

    if token != expected_token:
        logger.warning(
            "Invalid authentication token attempt",
            extra={"token_prefix": token[:8] if len(token) >= 8 else token},
        )
        raise AuthenticationError("Invalid bearer token")

    return token


def get_current_owner(authorization: Optional[str] = Header(None)) -> str:
    """Owner id for the private temp store.

    Firebase users own their selection as ``firebase:<uid>``. Callers using API_AUTH_TOKEN
    share the ``api`` owner.
    """
    api_token = os.getenv("API_AUTH_TOKEN")
    if api_token and authorization == f"Bearer {api_token}":
        logger.info("Request authenticated via API_AUTH_TOKEN")
        return API_TOKEN_OWNER

    claims = verify_firebase_token(authorization)
    uid = claims.get("uid") or claims.get("sub")
    if not uid:
        raise AuthenticationError("Firebase token has no uid")
    return f"{FIREBASE_OWNER_PREFIX}{uid}"

"""Firestore backend for the private temp store."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

from google.auth.exceptions import DefaultCredentialsError
from google.cloud import firestore
from google.oauth2 import service_account

from ..utils.errors import TempStoreError
from .tempstore import KeyValueBackend

logger = logging.getLogger(__name__)


def _resolve_credentials_path(cred_path: str) -> str:
    """Resolve relative credential paths against the package directory."""
    if os.path.isabs(cred_path):
        return cred_path
    package_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    resolved_path = os.path.join(package_dir, cred_path)
    if os.path.exists(resolved_path):
        return resolved_path
    return os.path.abspath(cred_path)


class FirestoreKeyValueBackend(KeyValueBackend):
    """Stores temp store entries as documents, one collection per temp store."""

    def __init__(self, client: Optional[firestore.Client] = None):
        self._client = client

    def _get_client(self) -> firestore.Client:
        """Lazy initialization of Firestore client."""
        if self._client is not None:
            return self._client

        cred_path = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")
        try:
            if cred_path and os.path.exists(_resolve_credentials_path(cred_path)):
                resolved = _resolve_credentials_path(cred_path)
                credentials = service_account.Credentials.from_service_account_file(resolved)
                self._client = firestore.Client(credentials=credentials, project=credentials.project_id)
                logger.info(f"Firestore client initialized with credentials from {resolved}")
            else:
                if cred_path:
                    logger.warning(
                        f"Service account file not found at {cred_path}. "
                        f"Falling back to Application Default Credentials (ADC)."
                    )
                self._client = firestore.Client()
                logger.info("Firestore client initialized with Application Default Credentials")
        except DefaultCredentialsError as exc:
            raise RuntimeError(
                "Firestore credentials not configured. "
                "Set GOOGLE_APPLICATION_CREDENTIALS or run 'gcloud auth application-default login'. "
                f"Error: {exc}"
            ) from exc
        return self._client

    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        try:
            doc = self._get_client().collection(collection).document(key).get()
        except RuntimeError:
            raise
        except Exception as exc:
            logger.error(
                "Failed to read temp store entry",
                extra={"collection": collection, "key": key, "error": str(exc)},
                exc_info=True,
            )
            raise TempStoreError(collection, str(exc)) from exc
        if not doc.exists:
            return None
        return doc.to_dict()

    def set(self, collection: str, key: str, entry: Dict[str, Any]) -> None:
        try:
            self._get_client().collection(collection).document(key).set(entry)
            logger.info("Recorded temp store entry", extra={"collection": collection, "key": key})
        except RuntimeError:
            raise
        except Exception as exc:
            logger.error(
                "Failed to write temp store entry",
                extra={"collection": collection, "key": key, "error": str(exc)},
                exc_info=True,
            )
            raise TempStoreError(collection, str(exc)) from exc

    def delete(self, collection: str, key: str) -> None:
        try:
            self._get_client().collection(collection).document(key).delete()
        except RuntimeError:
            raise
        except Exception as exc:
            logger.error(
                "Failed to delete temp store entry",
                extra={"collection": collection, "key": key, "error": str(exc)},
                exc_info=True,
            )
            raise TempStoreError(collection, str(exc)) from exc

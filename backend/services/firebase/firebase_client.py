"""Shared Firebase initialization helper."""
from __future__ import annotations

import os
import threading
from functools import lru_cache
from typing import Any, Optional

import firebase_admin
from firebase_admin import credentials, firestore
from backend.services.system.logger_service import get_logger, log_error

logger = get_logger(__name__)

# Thread-safe initialization lock
_firebase_init_lock = threading.Lock()


def _service_account_credentials() -> Optional[credentials.Certificate]:
    project_id = os.getenv("FIREBASE_PROJECT_ID")
    client_email = os.getenv("FIREBASE_CLIENT_EMAIL")
    private_key = os.getenv("FIREBASE_PRIVATE_KEY")

    if not (project_id and client_email and private_key):
        return None

    return credentials.Certificate({
        "type": "service_account",
        "project_id": project_id,
        "private_key_id": os.getenv("FIREBASE_PRIVATE_KEY_ID", ""),
        "private_key": private_key.replace("\\n", "\n"),
        "client_email": client_email,
        "client_id": os.getenv("FIREBASE_CLIENT_ID", ""),
        "auth_uri": "https://accounts.google.com/o/oauth2/auth",
        "token_uri": "https://oauth2.googleapis.com/token",
        "auth_provider_x509_cert_url": "https://www.googleapis.com/oauth2/v1/certs",
        "client_x509_cert_url": f"https://www.googleapis.com/robot/v1/metadata/x509/{client_email}"
    })


def ensure_firebase_app() -> firebase_admin.App:
    """Initialize the default Firebase Admin app once per process."""
    with _firebase_init_lock:
        if firebase_admin._apps:
            return firebase_admin.get_app()

        options = {}
        bucket = os.getenv("FIREBASE_STORAGE_BUCKET")
        if bucket:
            options["storageBucket"] = bucket

        cred = _service_account_credentials()
        try:
            if cred is not None:
                logger.info("Initializing Firebase with environment variables")
                return firebase_admin.initialize_app(cred, options or None)

            logger.info("Initializing Firebase with application default credentials")
            return firebase_admin.initialize_app(options=options or None)
        except Exception as exc:
            log_error(logger, exc, {"context": "Firebase initialization failed"})
            raise


@lru_cache(maxsize=1)
def initialize_firebase() -> Any:
    """Initialize Firebase Admin SDK and return the Firestore client.

    Thread-safe for multi-worker environments (Gunicorn).
    """
    ensure_firebase_app()
    return firestore.client()

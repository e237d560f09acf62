"""
Firebase Configuration

Builds the Firestore client used by the barbecue store. Configuration is
explicit: pass a FirebaseConfig, or let FirebaseConfig.from_env() read it
from the environment.

Environment:
    FIREBASE_CREDENTIALS: path to a service account JSON file
    FIREBASE_PROJECT_ID: optional project id override

Functions:
    get_db: Return a Firestore client, or None when not configured.
    set_db: Replace the client returned by get_db (tests, scripts).
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore

logger = logging.getLogger(__name__)


APP_NAME = "barbecue-splitter"

_db = None


@dataclass(frozen=True)
class FirebaseConfig:
    credentials_path: Optional[str] = None
    project_id: Optional[str] = None

    @classmethod
    def from_env(cls) -> "FirebaseConfig":
        return cls(
            credentials_path=os.environ.get("FIREBASE_CREDENTIALS") or None,
            project_id=os.environ.get("FIREBASE_PROJECT_ID") or None
        )


def _initialize_app(config: FirebaseConfig):
    try:
        return firebase_admin.get_app(APP_NAME)
    except ValueError:
        pass

    cred = credentials.Certificate(config.credentials_path)
    options = {"projectId": config.project_id} if config.project_id else None
    return firebase_admin.initialize_app(cred, options, name=APP_NAME)


def get_db(config: Optional[FirebaseConfig] = None):
    """
    Get the Firestore client.

    The client is created once and reused.

    Args:
        config: Explicit configuration; defaults to FirebaseConfig.from_env().

    Returns:
        Firestore client, or None if no credentials are configured or the
        client could not be created.
    """
    global _db
    if _db is not None:
        return _db

    config = config or FirebaseConfig.from_env()
    if not config.credentials_path:
        logger.warning("FIREBASE_CREDENTIALS is not set; Firestore is unavailable")
        return None

    try:
        app = _initialize_app(config)
        _db = firestore.client(app)
    except (OSError, ValueError) as e:
        logger.error("Could not initialise Firestore: %s", e)
        return None

    return _db


def set_db(db) -> None:
    global _db
    _db = db

import os, json, base64, pathlib
from functools import lru_cache

from google.cloud import firestore
from google.oauth2 import service_account

import firebase_admin
from firebase_admin import credentials, initialize_app
from syllabot.core.config import settings

# Don't override GOOGLE_APPLICATION_CREDENTIALS here; set it in the deploy env.


def _load_credentials():
    # 1) Prefer base64 secret if present
    key_b64 = os.getenv("FIREBASE_KEY_B64")
    if key_b64:
        return service_account.Credentials.from_service_account_info(
            json.loads(base64.b64decode(key_b64))
        )

    # 2) Otherwise use a file path from env or settings
    path = os.getenv("GOOGLE_APPLICATION_CREDENTIALS") or settings.GOOGLE_APPLICATION_CREDENTIALS
    if path and pathlib.Path(path).exists():
        return service_account.Credentials.from_service_account_file(path)

    # 3) ADC
    return None


def init_firebase():
    """Initialize the default firebase_admin app once (auth + storage)."""
    if firebase_admin._apps:
        return firebase_admin.get_app()
    options = {}
    if settings.FIREBASE_STORAGE_BUCKET:
        options["storageBucket"] = settings.FIREBASE_STORAGE_BUCKET
    key_b64 = os.getenv("FIREBASE_KEY_B64")
    path = os.getenv("GOOGLE_APPLICATION_CREDENTIALS") or settings.GOOGLE_APPLICATION_CREDENTIALS
    if key_b64:
        cred = credentials.Certificate(json.loads(base64.b64decode(key_b64)))
    elif path and pathlib.Path(path).exists():
        cred = credentials.Certificate(path)
    else:
        cred = None
    return initialize_app(cred, options or None)


@lru_cache(maxsize=1)
def get_db():
    """Create Firestore client once, safely in any env."""
    creds = _load_credentials()
    if creds is None:
        return firestore.Client()
    project = os.getenv("GOOGLE_CLOUD_PROJECT") or settings.GOOGLE_CLOUD_PROJECT or creds.project_id
    return firestore.Client(project=project, credentials=creds)

import json
import logging
import os

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


def initialize_firebase():
    """Initialize Firebase Admin SDK with production-ready credential handling"""

    # Method 1: Service Account Key from Environment Variable (Recommended for production)
    service_account_key_json = os.getenv('FIREBASE_SERVICE_ACCOUNT_KEY')

    if service_account_key_json:
        try:
            service_account_info = json.loads(service_account_key_json)
            cred = credentials.Certificate(service_account_info)
            app = firebase_admin.initialize_app(cred)
            logger.info("Firebase Admin SDK initialized with Service Account Key from environment variable.")
            return app
        except ValueError as e:
            logger.error(f"Error parsing FIREBASE_SERVICE_ACCOUNT_KEY: {e}")

    # Method 2: Service Account Key File (for local development only)
    service_account_key_path = os.getenv('FIREBASE_SERVICE_ACCOUNT_KEY_PATH')
    if service_account_key_path and os.path.exists(service_account_key_path):
        cred = credentials.Certificate(service_account_key_path)
        app = firebase_admin.initialize_app(cred)
        logger.info("Firebase Admin SDK initialized with Service Account Key from file path.")
        return app

    # Method 3: GOOGLE_APPLICATION_CREDENTIALS or Application Default Credentials
    app = firebase_admin.initialize_app()
    if os.getenv('GOOGLE_APPLICATION_CREDENTIALS'):
        logger.info("Firebase Admin SDK initialized with GOOGLE_APPLICATION_CREDENTIALS.")
    else:
        logger.info("Firebase Admin SDK initialized with default Application Default Credentials.")
    return app


def get_firebase_app():
    # Initialized on first use so importing the API does not need credentials
    try:
        return firebase_admin.get_app()
    except ValueError:
        return initialize_firebase()


def verify_id_token(token: str) -> dict:
    return firebase_auth.verify_id_token(token, app=get_firebase_app())

"""
Shared client constructors — Google Sheets/Drive and OpenAI.

Nothing is built at import time, so importing this module is always safe
(even when env vars are missing during tests). Callers get NotConfigured
when a required credential is absent.
"""
import logging
import os

from googleapiclient.discovery import build
from google.oauth2 import service_account
from openai import OpenAI

from leadcrm import config
from leadcrm.errors import NotConfigured

logger = logging.getLogger('leadcrm.extensions')


def load_credentials(key_path=None, subject=None):
    """Load service-account credentials scoped for Sheets + Drive."""
    key_path = key_path or config.GOOGLE_APPLICATION_CREDENTIALS
    if not key_path:
        raise NotConfigured("GOOGLE_APPLICATION_CREDENTIALS is not set")
    key_path = os.path.abspath(key_path)
    if not os.path.exists(key_path):
        raise NotConfigured(f"Credentials file not found: {key_path}")

    credentials = service_account.Credentials.from_service_account_file(
        key_path, scopes=config.GOOGLE_SCOPES,
    )
    subject = subject or config.GOOGLE_IMPERSONATE_USER
    if subject:
        credentials = credentials.with_subject(subject)
    return credentials


def get_google_services(key_path=None, subject=None):
    """Return (sheets_v4, drive_v3) API resources."""
    credentials = load_credentials(key_path, subject)
    sheets = build('sheets', 'v4', credentials=credentials, cache_discovery=False)
    drive = build('drive', 'v3', credentials=credentials, cache_discovery=False)
    logger.debug("Google Sheets/Drive clients built")
    return sheets, drive


def get_sheets_backend(key_path=None, subject=None):
    """Build the default GoogleSheetsBackend from ambient credentials."""
    from leadcrm.services.sheets import GoogleSheetsBackend
    sheets, drive = get_google_services(key_path, subject)
    return GoogleSheetsBackend(sheets, drive)


def get_openai_client():
    """OpenAI (or API-compatible) client; base URL from OPENAI_BASE_URL."""
    if not config.OPENAI_API_KEY:
        raise NotConfigured("OPENAI_API_KEY is not set")
    kwargs = {'api_key': config.OPENAI_API_KEY}
    if config.OPENAI_BASE_URL:
        kwargs['base_url'] = config.OPENAI_BASE_URL
    return OpenAI(**kwargs)

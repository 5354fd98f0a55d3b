"""
Centralized configuration — env vars, tab names, Google API constants.
"""
import os


# ── Logging ──────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_FORMAT = os.getenv('LOG_FORMAT', 'text')

# ── Google service account / Drive ───────────────────────────────────────────
GOOGLE_APPLICATION_CREDENTIALS = os.getenv('GOOGLE_APPLICATION_CREDENTIALS')
GOOGLE_DRIVE_FOLDER_ID = os.getenv('GOOGLE_DRIVE_FOLDER_ID')
GOOGLE_IMPERSONATE_USER = os.getenv('GOOGLE_IMPERSONATE_USER')

GOOGLE_SCOPES = [
    'https://www.googleapis.com/auth/spreadsheets',
    'https://www.googleapis.com/auth/drive',
]
SPREADSHEET_MIME_TYPE = 'application/vnd.google-apps.spreadsheet'

# ── OpenAI-compatible LLM ────────────────────────────────────────────────────
OPENAI_API_KEY = os.getenv('OPENAI_API_KEY')
OPENAI_BASE_URL = os.getenv('OPENAI_BASE_URL')
OPENAI_MODEL = os.getenv('OPENAI_MODEL', 'gpt-4o-mini')
OPENAI_MAX_TOKENS = 4096

# ── CRM document ─────────────────────────────────────────────────────────────
CRM_SHEET_NAME = os.getenv('CRM_SHEET_NAME', 'リード管理CRM')

TAB_LEADS = 'リスト'
TAB_CONTACTS = 'コンタクト'
TAB_ACTIVITIES = 'アクティビティ'
TAB_TASKS = 'タスク'
TAB_DASHBOARD = 'ダッシュボード'

AUXILIARY_TABS = [TAB_CONTACTS, TAB_ACTIVITIES, TAB_TASKS, TAB_DASHBOARD]

# Validation / formatting rules are applied down to this row (exclusive)
FORMAT_ROW_LIMIT = 10000

# ── Sheet write mode ─────────────────────────────────────────────────────────
VALUE_INPUT_OPTION = 'USER_ENTERED'
INSERT_DATA_OPTION = 'INSERT_ROWS'

"""
Logging setup for processes that embed leadcrm.

Call configure_logging() once at start-up; the library itself only creates
named loggers and never installs handlers. Output goes to stderr.
LOG_FORMAT selects "text" or "json", LOG_LEVEL defaults to INFO, and
explicit arguments override the environment.

CRM log calls pass the document coordinates they touched through `extra`
(see CONTEXT_FIELDS). The JSON formatter copies them into each entry so a
log shipper can filter by spreadsheet, tab or row; the text format leaves
them out.
"""
import json
import logging
import os
import sys
from datetime import datetime, timezone

# Record attributes copied into JSON entries when a log call sets them
CONTEXT_FIELDS = ('spreadsheet_id', 'tab', 'row_index', 'company_name', 'schema')


def crm_context(conn=None, **fields):
    """Build an `extra` dict for a log call: spreadsheet id plus any CONTEXT_FIELDS given."""
    context = {name: value for name, value in fields.items() if name in CONTEXT_FIELDS and value is not None}
    if conn is not None:
        context['spreadsheet_id'] = conn.spreadsheet_id
    return context


class JSONFormatter(logging.Formatter):
    """One JSON object per line, context fields included when present."""

    def format(self, record):
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value
        if record.exc_info and record.exc_info[0] is not None:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


# Google client libraries log every discovery fetch and token refresh at INFO
_NOISY_LOGGERS = [
    'googleapiclient',
    'googleapiclient.discovery_cache',
    'google.auth',
    'google_auth_httplib2',
    'urllib3',
    'openai',
    'httpcore',
    'httpx',
]

TEXT_FORMAT = '[%(asctime)s] %(levelname)s %(name)s — %(message)s'


def configure_logging(level=None, log_format=None):
    """
    Install a single stderr handler on the root logger.

    Args:
        level:      Log level name; falls back to $LOG_LEVEL, then INFO.
        log_format: "text" or "json"; falls back to $LOG_FORMAT, then text.
    """
    level_name = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()
    numeric_level = getattr(logging, level_name, None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    fmt = (log_format or os.getenv('LOG_FORMAT', 'text')).lower()

    root = logging.getLogger()
    root.setLevel(numeric_level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    if fmt == 'json':
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

"""
Google Sheets / Drive backend adapter.

Thin wrapper over the googleapiclient resources. Every remote call goes
through _execute() so HttpError surfaces as RemoteCallFailed and nothing is
retried. All value writes use USER_ENTERED so formulas and numbers are
interpreted the way a person typing them would be.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from googleapiclient.errors import HttpError

from leadcrm.config import (
    INSERT_DATA_OPTION,
    SPREADSHEET_MIME_TYPE,
    VALUE_INPUT_OPTION,
)
from leadcrm.errors import RemoteCallFailed

logger = logging.getLogger('services.sheets')

Rows = List[List[Any]]


@dataclass(frozen=True)
class TabInfo:
    """A named tab inside a spreadsheet and its numeric grid id."""
    sheet_id: int
    title: str


def _execute(request, operation: str):
    try:
        return request.execute()
    except HttpError as e:
        status = getattr(e.resp, 'status', None)
        logger.error("%s failed: HTTP %s", operation, status)
        raise RemoteCallFailed(operation, getattr(e, 'reason', None) or str(e), status=status) from e


def _tabs_from_sheets(sheets: List[Dict]) -> List[TabInfo]:
    tabs = []
    for s in sheets or []:
        props = s.get('properties', {})
        tabs.append(TabInfo(sheet_id=props.get('sheetId', 0), title=props.get('title', '')))
    return tabs


class GoogleSheetsBackend:
    """
    Remote key-range store over one Google account.

    Methods take the spreadsheet id explicitly; CRMConnection scopes them to
    the CRM document.
    """

    def __init__(self, sheets, drive):
        self.sheets = sheets
        self.drive = drive

    # ── Drive ─────────────────────────────────────────────────────────

    def find_spreadsheet(self, name: str, folder_id: str) -> Optional[str]:
        """Id of the first non-trashed spreadsheet called `name` in the folder."""
        escaped = name.replace("\\", "\\\\").replace("'", "\\'")
        query = (
            f"name='{escaped}' and '{folder_id}' in parents "
            f"and mimeType='{SPREADSHEET_MIME_TYPE}' and trashed=false"
        )
        result = _execute(
            self.drive.files().list(q=query, fields='files(id)', pageSize=1),
            'drive.files.list',
        )
        files = result.get('files', [])
        return files[0]['id'] if files and files[0].get('id') else None

    def move_to_folder(self, spreadsheet_id: str, folder_id: str) -> None:
        current = _execute(
            self.drive.files().get(fileId=spreadsheet_id, fields='parents'),
            'drive.files.get',
        )
        _execute(
            self.drive.files().update(
                fileId=spreadsheet_id,
                addParents=folder_id,
                removeParents=','.join(current.get('parents', [])),
                body={},
            ),
            'drive.files.update',
        )

    # ── Spreadsheet metadata ──────────────────────────────────────────

    def get_tabs(self, spreadsheet_id: str) -> List[TabInfo]:
        """Tabs in display order."""
        meta = _execute(
            self.sheets.spreadsheets().get(spreadsheetId=spreadsheet_id, fields='sheets.properties'),
            'spreadsheets.get',
        )
        return _tabs_from_sheets(meta.get('sheets', []))

    def create_spreadsheet(self, title: str, tab_titles: Sequence[str]) -> Tuple[str, List[TabInfo]]:
        body = {
            'properties': {'title': title},
            'sheets': [{'properties': {'title': t}} for t in tab_titles],
        }
        created = _execute(self.sheets.spreadsheets().create(body=body), 'spreadsheets.create')
        spreadsheet_id = created.get('spreadsheetId')
        if not spreadsheet_id:
            raise RemoteCallFailed('spreadsheets.create', 'response carried no spreadsheetId')
        return spreadsheet_id, _tabs_from_sheets(created.get('sheets', []))

    # ── Values ────────────────────────────────────────────────────────

    def get_values(self, spreadsheet_id: str, a1_range: str) -> Rows:
        result = _execute(
            self.sheets.spreadsheets().values().get(spreadsheetId=spreadsheet_id, range=a1_range),
            'values.get',
        )
        return result.get('values', [])

    def update_values(self, spreadsheet_id: str, a1_range: str, rows: Rows) -> None:
        _execute(
            self.sheets.spreadsheets().values().update(
                spreadsheetId=spreadsheet_id,
                range=a1_range,
                valueInputOption=VALUE_INPUT_OPTION,
                body={'values': rows},
            ),
            'values.update',
        )

    def append_values(self, spreadsheet_id: str, a1_range: str, rows: Rows) -> str:
        """Append after the last data row; returns the range actually written."""
        result = _execute(
            self.sheets.spreadsheets().values().append(
                spreadsheetId=spreadsheet_id,
                range=a1_range,
                valueInputOption=VALUE_INPUT_OPTION,
                insertDataOption=INSERT_DATA_OPTION,
                body={'values': rows},
            ),
            'values.append',
        )
        return result.get('updates', {}).get('updatedRange', '')

    def batch_update_values(self, spreadsheet_id: str, data: List[Tuple[str, Rows]]) -> None:
        """Write several ranges in one request."""
        _execute(
            self.sheets.spreadsheets().values().batchUpdate(
                spreadsheetId=spreadsheet_id,
                body={
                    'valueInputOption': VALUE_INPUT_OPTION,
                    'data': [{'range': rng, 'values': rows} for rng, rows in data],
                },
            ),
            'values.batchUpdate',
        )

    # ── Structure ─────────────────────────────────────────────────────

    def batch_update(self, spreadsheet_id: str, requests: List[Dict]) -> List[Dict]:
        """Structural batchUpdate (insert column, addSheet, formatting, ...)."""
        if not requests:
            return []
        result = _execute(
            self.sheets.spreadsheets().batchUpdate(
                spreadsheetId=spreadsheet_id, body={'requests': requests},
            ),
            'spreadsheets.batchUpdate',
        )
        return result.get('replies', [])

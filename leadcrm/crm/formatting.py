"""
Structural request payloads for spreadsheets.batchUpdate.

Pure builders; nothing here talks to the API. Ranges below the header start
at row index 1 and stop at FORMAT_ROW_LIMIT.
"""
from typing import Dict, List, Sequence

from leadcrm.config import FORMAT_ROW_LIMIT
from leadcrm.models.schema import (
    LEAD_COLUMN,
    STAGE_LOST,
    STAGE_MEETING,
    STAGE_NEGOTIATION,
    STAGE_PROPOSAL,
    STAGE_WON,
    STATUS_APPROACHED,
    STATUS_FORM_OUTREACH_DONE,
    STATUS_NURTURING,
    STATUS_RANK_A_IN_PROGRESS,
    STATUS_UNAPPROACHED,
    PRIORITY_HIGH,
    TASK_DONE,
    Dropdown,
)

# ── Colours ───────────────────────────────────────────────────────────────────
HEADER_BG = {'red': 0.118, 'green': 0.227, 'blue': 0.376}
CHIP_BG = {'red': 0.788, 'green': 0.855, 'blue': 0.973}
CHIP_TEXT = {'red': 0.118, 'green': 0.227, 'blue': 0.376}
WHITE = {'red': 1, 'green': 1, 'blue': 1}
BLACK = {'red': 0, 'green': 0, 'blue': 0}

GREEN = {'red': 0.718, 'green': 0.882, 'blue': 0.804}   # #B7E1CD
YELLOW = {'red': 1.0, 'green': 0.949, 'blue': 0.800}    # #FFF2CC
RED = {'red': 0.957, 'green': 0.780, 'blue': 0.765}     # #F4C7C3
BLUE = {'red': 0.792, 'green': 0.855, 'blue': 0.969}    # #CADAF7
GREY = {'red': 0.816, 'green': 0.816, 'blue': 0.816}    # #D0D0D0
ORANGE = {'red': 1.0, 'green': 0.890, 'blue': 0.710}    # #FFE3B5

HEADER_ROW_HEIGHT = 40
CURRENCY_PATTERN = '#,##0'

# (column, cell value, background) for the 22-column lead tab
LEAD_COLOR_RULES = [
    (LEAD_COLUMN['rank'], 'A', GREEN),
    (LEAD_COLUMN['rank'], 'B', YELLOW),
    (LEAD_COLUMN['rank'], 'C', RED),
    (LEAD_COLUMN['status'], STATUS_RANK_A_IN_PROGRESS, GREEN),
    (LEAD_COLUMN['status'], STATUS_UNAPPROACHED, RED),
    (LEAD_COLUMN['status'], STATUS_NURTURING, YELLOW),
    (LEAD_COLUMN['status'], STATUS_APPROACHED, ORANGE),
    (LEAD_COLUMN['status'], STATUS_FORM_OUTREACH_DONE, BLUE),
    (LEAD_COLUMN['pipeline'], STAGE_WON, GREEN),
    (LEAD_COLUMN['pipeline'], STAGE_LOST, GREY),
    (LEAD_COLUMN['pipeline'], STAGE_MEETING, BLUE),
    (LEAD_COLUMN['pipeline'], STAGE_PROPOSAL, BLUE),
    (LEAD_COLUMN['pipeline'], STAGE_NEGOTIATION, ORANGE),
]


def _data_range(sheet_id: int, start_col: int, end_col: int) -> Dict:
    return {
        'sheetId': sheet_id,
        'startRowIndex': 1,
        'endRowIndex': FORMAT_ROW_LIMIT,
        'startColumnIndex': start_col,
        'endColumnIndex': end_col,
    }


def header_style(sheet_id: int, start_col: int, end_col: int) -> Dict:
    return {
        'repeatCell': {
            'range': {
                'sheetId': sheet_id,
                'startRowIndex': 0, 'endRowIndex': 1,
                'startColumnIndex': start_col, 'endColumnIndex': end_col,
            },
            'cell': {
                'userEnteredFormat': {
                    'backgroundColor': HEADER_BG,
                    'textFormat': {'foregroundColor': WHITE, 'bold': True},
                    'horizontalAlignment': 'CENTER',
                },
            },
            'fields': 'userEnteredFormat(backgroundColor,textFormat,horizontalAlignment)',
        },
    }


def column_widths(sheet_id: int, widths: Sequence[int], start_col: int = 0) -> List[Dict]:
    return [
        {
            'updateDimensionProperties': {
                'range': {
                    'sheetId': sheet_id, 'dimension': 'COLUMNS',
                    'startIndex': start_col + i, 'endIndex': start_col + i + 1,
                },
                'properties': {'pixelSize': pixels},
                'fields': 'pixelSize',
            },
        }
        for i, pixels in enumerate(widths)
    ]


def header_block(sheet_id: int, start_col: int, end_col: int, widths: Sequence[int]) -> List[Dict]:
    """Header style plus widths for columns [start_col, end_col)."""
    return [header_style(sheet_id, start_col, end_col)] + column_widths(
        sheet_id, list(widths)[start_col:end_col], start_col,
    )


def header_row_height(sheet_id: int, pixels: int = HEADER_ROW_HEIGHT) -> Dict:
    return {
        'updateDimensionProperties': {
            'range': {'sheetId': sheet_id, 'dimension': 'ROWS', 'startIndex': 0, 'endIndex': 1},
            'properties': {'pixelSize': pixels},
            'fields': 'pixelSize',
        },
    }


def header_wrap(sheet_id: int) -> Dict:
    return {
        'repeatCell': {
            'range': {'sheetId': sheet_id, 'startRowIndex': 0, 'endRowIndex': 1},
            'cell': {'userEnteredFormat': {'wrapStrategy': 'WRAP'}},
            'fields': 'userEnteredFormat.wrapStrategy',
        },
    }


def freeze_header(sheet_id: int) -> Dict:
    return {
        'updateSheetProperties': {
            'properties': {'sheetId': sheet_id, 'gridProperties': {'frozenRowCount': 1}},
            'fields': 'gridProperties.frozenRowCount',
        },
    }


def dropdown(sheet_id: int, spec: Dropdown) -> Dict:
    """One-of-list validation on a single column, non-strict."""
    return {
        'setDataValidation': {
            'range': _data_range(sheet_id, spec.column, spec.column + 1),
            'rule': {
                'condition': {
                    'type': 'ONE_OF_LIST',
                    'values': [{'userEnteredValue': v} for v in spec.options],
                },
                'showCustomUi': True,
                'strict': False,
            },
        },
    }


def text_equals_rule(sheet_id: int, column: int, value: str, background: Dict) -> Dict:
    return {
        'addConditionalFormatRule': {
            'rule': {
                'ranges': [_data_range(sheet_id, column, column + 1)],
                'booleanRule': {
                    'condition': {'type': 'TEXT_EQ', 'values': [{'userEnteredValue': value}]},
                    'format': {'backgroundColor': background},
                },
            },
            'index': 0,
        },
    }


def lead_color_rules(sheet_id: int) -> List[Dict]:
    return [text_equals_rule(sheet_id, col, value, color) for col, value, color in LEAD_COLOR_RULES]


def task_rules(sheet_id: int, width: int) -> List[Dict]:
    """High priority in red; whole row greyed out once the task is done."""
    return [
        text_equals_rule(sheet_id, 4, PRIORITY_HIGH, RED),
        {
            'addConditionalFormatRule': {
                'rule': {
                    'ranges': [_data_range(sheet_id, 0, width)],
                    'booleanRule': {
                        'condition': {
                            'type': 'CUSTOM_FORMULA',
                            'values': [{'userEnteredValue': f'=$F2="{TASK_DONE}"'}],
                        },
                        'format': {
                            'backgroundColor': GREY,
                            'textFormat': {'foregroundColor': {'red': 0.5, 'green': 0.5, 'blue': 0.5}},
                        },
                    },
                },
                'index': 0,
            },
        },
    ]


def currency_format(sheet_id: int, column: int) -> Dict:
    return {
        'repeatCell': {
            'range': _data_range(sheet_id, column, column + 1),
            'cell': {'userEnteredFormat': {'numberFormat': {'type': 'NUMBER', 'pattern': CURRENCY_PATTERN}}},
            'fields': 'userEnteredFormat.numberFormat',
        },
    }


def insert_column(sheet_id: int, index: int) -> Dict:
    return {
        'insertDimension': {
            'range': {'sheetId': sheet_id, 'dimension': 'COLUMNS', 'startIndex': index, 'endIndex': index + 1},
            'inheritFromBefore': False,
        },
    }


def delete_row(sheet_id: int, row_number: int) -> Dict:
    """Delete one 1-based sheet row."""
    return {
        'deleteDimension': {
            'range': {'sheetId': sheet_id, 'dimension': 'ROWS', 'startIndex': row_number - 1, 'endIndex': row_number},
        },
    }


def add_sheet(title: str) -> Dict:
    return {'addSheet': {'properties': {'title': title}}}


def new_lead_row(sheet_id: int, row_number: int, width: int) -> List[Dict]:
    """Reset an appended row to plain black-on-white, report URL as a chip."""
    start = row_number - 1
    report_col = LEAD_COLUMN['report_url']
    return [
        {
            'repeatCell': {
                'range': {
                    'sheetId': sheet_id, 'startRowIndex': start, 'endRowIndex': start + 1,
                    'startColumnIndex': 0, 'endColumnIndex': width,
                },
                'cell': {
                    'userEnteredFormat': {
                        'backgroundColor': WHITE,
                        'textFormat': {'foregroundColor': BLACK, 'bold': False},
                    },
                },
                'fields': 'userEnteredFormat(backgroundColor,textFormat)',
            },
        },
        {
            'repeatCell': {
                'range': {
                    'sheetId': sheet_id, 'startRowIndex': start, 'endRowIndex': start + 1,
                    'startColumnIndex': report_col, 'endColumnIndex': report_col + 1,
                },
                'cell': {
                    'userEnteredFormat': {
                        'backgroundColor': CHIP_BG,
                        'textFormat': {'bold': True, 'foregroundColor': CHIP_TEXT},
                        'horizontalAlignment': 'CENTER',
                        'verticalAlignment': 'MIDDLE',
                    },
                },
                'fields': 'userEnteredFormat(backgroundColor,textFormat,horizontalAlignment,verticalAlignment)',
            },
        },
    ]

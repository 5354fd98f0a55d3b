"""
Schema registry for the CRM spreadsheet.

Holds the header layouts the lead tab has gone through (7 → 8 → 14 → 22
columns), the fixed layouts of the auxiliary tabs, and every enumeration
written into cells. Labels are the literal strings stored in the document;
existing documents are matched against them, so they must not change.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence

from leadcrm.config import TAB_ACTIVITIES, TAB_CONTACTS, TAB_DASHBOARD, TAB_TASKS


# ── Lead status ───────────────────────────────────────────────────────────────
STATUS_UNAPPROACHED = '未アプローチ'
STATUS_APPROACHED = 'アプローチ済み'
STATUS_FORM_OUTREACH_DONE = 'フォーム営業完了'
STATUS_RANK_A_IN_PROGRESS = 'Aランク対応中'
STATUS_NURTURING = 'ナーチャリング中'
STATUS_FOLLOW_UP_3_MONTHS = '3ヶ月後フォロー'

STATUS_OPTIONS = [
    STATUS_UNAPPROACHED,
    STATUS_APPROACHED,
    STATUS_FORM_OUTREACH_DONE,
    STATUS_RANK_A_IN_PROGRESS,
    STATUS_NURTURING,
    STATUS_FOLLOW_UP_3_MONTHS,
]

# ── Rank / contact path ───────────────────────────────────────────────────────
RANK_OPTIONS = ['A', 'B', 'C']

CONTACT_PATH_OPTIONS = ['フォーム', 'テレアポ', '訪問', 'メール返信', 'その他']

# ── Pipeline ──────────────────────────────────────────────────────────────────
STAGE_LEAD = 'リード'
STAGE_APPROACHING = 'アプローチ中'
STAGE_MEETING = '商談'
STAGE_PROPOSAL = '提案'
STAGE_NEGOTIATION = '交渉'
STAGE_WON = '受注'
STAGE_LOST = '失注'

PIPELINE_STAGES = [
    STAGE_LEAD,
    STAGE_APPROACHING,
    STAGE_MEETING,
    STAGE_PROPOSAL,
    STAGE_NEGOTIATION,
    STAGE_WON,
    STAGE_LOST,
]

# ── Derived state: rank → status / pipeline stage ────────────────────────────
RANK_STATUS = {
    'A': STATUS_RANK_A_IN_PROGRESS,
    'B': STATUS_NURTURING,
    'C': STATUS_FOLLOW_UP_3_MONTHS,
}

RANK_PIPELINE = {
    'A': STAGE_MEETING,
    'B': STAGE_APPROACHING,
    'C': STAGE_LEAD,
}

# ── Activities ────────────────────────────────────────────────────────────────
ACTIVITY_EMAIL_SENT = 'メール送信'
ACTIVITY_EMAIL_REPLY = 'メール返信受信'
ACTIVITY_CALL = '電話'
ACTIVITY_VISIT = '訪問'
ACTIVITY_SCORING_UPDATE = 'スコアリング更新'
ACTIVITY_STATUS_CHANGE = 'ステータス変更'
ACTIVITY_FORM_OUTREACH = 'フォーム営業'
ACTIVITY_OTHER = 'その他'

ACTIVITY_TYPES = [
    ACTIVITY_EMAIL_SENT,
    ACTIVITY_EMAIL_REPLY,
    ACTIVITY_CALL,
    ACTIVITY_VISIT,
    ACTIVITY_SCORING_UPDATE,
    ACTIVITY_STATUS_CHANGE,
    ACTIVITY_FORM_OUTREACH,
    ACTIVITY_OTHER,
]

RECORDER_MANUAL = '手動'
RECORDER_AUTO = '自動'

# ── Tasks ─────────────────────────────────────────────────────────────────────
PRIORITY_HIGH = '高'
PRIORITY_MEDIUM = '中'
PRIORITY_LOW = '低'
TASK_PRIORITIES = [PRIORITY_HIGH, PRIORITY_MEDIUM, PRIORITY_LOW]

TASK_NOT_STARTED = '未着手'
TASK_IN_PROGRESS = '進行中'
TASK_DONE = '完了'
TASK_STATUSES = [TASK_NOT_STARTED, TASK_IN_PROGRESS, TASK_DONE]

KEYMAN_OPTIONS = ['決裁者', '窓口', '技術担当', 'その他']


# ── Lead tab layout (newest) ─────────────────────────────────────────────────
# (field name, header label, column width px)
_LEAD_COLUMNS = [
    ('date',                '作成日',         120),
    ('company_name',        '会社名',         180),
    ('site_url',            'ホームページURL', 220),
    ('address',             '住所',           200),
    ('phone',               '電話番号',        130),
    ('report_url',          'レポートURL',     120),
    ('outreach_message',    'フォーム営業文',   300),
    ('status',              'ステータス',       120),
    ('score',               'スコア',          80),
    ('rank',                'ランク',          60),
    ('scoring_date',        'スコアリング日',   120),
    ('contact_path',        '接触経路',        120),
    ('response_notes',      '反応メモ',        300),
    ('recommended_action',  '推奨アクション',   300),
    ('pipeline',            'パイプライン',     120),
    ('deal_amount',         'ディール金額',     100),
    ('win_probability',     '受注確度(%)',     80),
    ('expected_close_date', '予想受注日',      120),
    ('contact_name',        '担当者名',        120),
    ('contact_email',       '担当者メール',     180),
    ('contact_department',  '担当者部署',       120),
    ('last_contact_date',   '最終接触日',       120),
]

LEAD_FIELDS = [c[0] for c in _LEAD_COLUMNS]
LEAD_HEADERS = [c[1] for c in _LEAD_COLUMNS]
LEAD_COL_WIDTHS = [c[2] for c in _LEAD_COLUMNS]
LEAD_COL_COUNT = len(LEAD_HEADERS)

# field name → 0-based column index in the newest layout
LEAD_COLUMN = {name: i for i, name in enumerate(LEAD_FIELDS)}

HEADER_STATUS = LEAD_HEADERS[LEAD_COLUMN['status']]
HEADER_OUTREACH = LEAD_HEADERS[LEAD_COLUMN['outreach_message']]
HEADER_RECOMMENDED_ACTION = LEAD_HEADERS[LEAD_COLUMN['recommended_action']]
HEADER_LAST_CONTACT = LEAD_HEADERS[LEAD_COLUMN['last_contact_date']]


class SchemaVersion(Enum):
    """Observed shape of the lead tab header row."""
    EMPTY = 0
    S7 = 7
    S8 = 8
    S14 = 14
    S22 = 22
    UNRECOGNIZED = -1

    @property
    def width(self) -> int:
        return max(self.value, 0)

    @property
    def is_known(self) -> bool:
        return self in SCHEMA_ORDER

    def newer_than(self, other: 'SchemaVersion') -> bool:
        if not (self.is_known and other.is_known):
            return False
        return SCHEMA_ORDER.index(self) > SCHEMA_ORDER.index(other)


SCHEMA_ORDER = [SchemaVersion.S7, SchemaVersion.S8, SchemaVersion.S14, SchemaVersion.S22]
LATEST_SCHEMA = SchemaVersion.S22

# Field order for each historical layout. S7 predates the outreach column.
SCHEMA_FIELDS: Dict[SchemaVersion, List[str]] = {
    SchemaVersion.S7: LEAD_FIELDS[:6] + ['status'],
    SchemaVersion.S8: LEAD_FIELDS[:8],
    SchemaVersion.S14: LEAD_FIELDS[:14],
    SchemaVersion.S22: list(LEAD_FIELDS),
}

SCHEMA_HEADERS: Dict[SchemaVersion, List[str]] = {
    version: [LEAD_HEADERS[LEAD_COLUMN[f]] for f in fields]
    for version, fields in SCHEMA_FIELDS.items()
}


def classify_header(header: Optional[Sequence]) -> SchemaVersion:
    """
    Map a live header row to a SchemaVersion.

    Total: anything that is neither blank nor one of the four known
    signatures is UNRECOGNIZED. Trailing blank cells are ignored.
    """
    cells = [str(c) if c is not None else '' for c in (header or [])]
    while cells and not cells[-1].strip():
        cells.pop()
    if not cells:
        return SchemaVersion.EMPTY

    n = len(cells)
    if n == 7 and cells[6] == HEADER_STATUS:
        return SchemaVersion.S7
    if n == 8 and cells[7] == HEADER_STATUS:
        return SchemaVersion.S8
    if n == 14 and cells[13] == HEADER_RECOMMENDED_ACTION:
        return SchemaVersion.S14
    if n == 22 and cells[7] == HEADER_STATUS and cells[21] == HEADER_LAST_CONTACT:
        return SchemaVersion.S22
    return SchemaVersion.UNRECOGNIZED


# ── Auxiliary tabs ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Dropdown:
    column: int
    options: Sequence[str]


@dataclass(frozen=True)
class TabSpec:
    """Fixed layout of an auxiliary tab created on demand."""
    name: str
    headers: Sequence[str] = ()
    col_widths: Sequence[int] = ()
    dropdowns: Sequence[Dropdown] = field(default_factory=tuple)
    task_rules: bool = False


CONTACT_HEADERS = ['コンタクトID', '会社名', '担当者名', '部署・役職', 'メールアドレス', '電話番号', 'キーマン', 'メモ']
ACTIVITY_HEADERS = ['日時', '会社名', '種別', '担当者名', '内容', '結果', '記録者']
TASK_HEADERS = ['タスクID', '会社名', 'タスク内容', '期限', '優先度', 'ステータス', '作成日', '完了日']

AUXILIARY_TAB_SPECS = [
    TabSpec(
        name=TAB_CONTACTS,
        headers=CONTACT_HEADERS,
        col_widths=[100, 180, 120, 150, 200, 140, 100, 300],
        dropdowns=(Dropdown(6, KEYMAN_OPTIONS),),
    ),
    TabSpec(
        name=TAB_ACTIVITIES,
        headers=ACTIVITY_HEADERS,
        col_widths=[140, 180, 130, 120, 400, 300, 80],
        dropdowns=(Dropdown(2, ACTIVITY_TYPES),),
    ),
    TabSpec(
        name=TAB_TASKS,
        headers=TASK_HEADERS,
        col_widths=[100, 180, 300, 120, 80, 100, 120, 120],
        dropdowns=(Dropdown(4, TASK_PRIORITIES), Dropdown(5, TASK_STATUSES)),
        task_rules=True,
    ),
    # Dashboard content is written separately; the tab starts blank
    TabSpec(name=TAB_DASHBOARD),
]

# Lead tab dropdowns, split by the migration that introduced them
LEAD_BASE_DROPDOWNS = [
    Dropdown(LEAD_COLUMN['status'], STATUS_OPTIONS),
    Dropdown(LEAD_COLUMN['rank'], RANK_OPTIONS),
    Dropdown(LEAD_COLUMN['contact_path'], CONTACT_PATH_OPTIONS),
]
LEAD_EXTENDED_DROPDOWNS = [
    Dropdown(LEAD_COLUMN['pipeline'], PIPELINE_STAGES),
]

"""Tests for leadcrm.models.schema — header classification and layouts."""
import pytest

from leadcrm.models.schema import (
    LEAD_COL_COUNT,
    LEAD_COLUMN,
    LEAD_HEADERS,
    RANK_PIPELINE,
    RANK_STATUS,
    SCHEMA_FIELDS,
    SCHEMA_HEADERS,
    SchemaVersion,
    classify_header,
)


class TestClassifyHeader:

    @pytest.mark.parametrize('version', [SchemaVersion.S7, SchemaVersion.S8, SchemaVersion.S14, SchemaVersion.S22])
    def test_known_layouts(self, version):
        assert classify_header(SCHEMA_HEADERS[version]) is version

    @pytest.mark.parametrize('header', [None, [], ['', '  ', '']])
    def test_blank_header_is_empty(self, header):
        assert classify_header(header) is SchemaVersion.EMPTY

    def test_trailing_blanks_ignored(self):
        assert classify_header(list(SCHEMA_HEADERS[SchemaVersion.S14]) + ['', '']) is SchemaVersion.S14

    def test_right_width_wrong_label(self):
        header = list(SCHEMA_HEADERS[SchemaVersion.S7])
        header[6] = 'Status'
        assert classify_header(header) is SchemaVersion.UNRECOGNIZED

    def test_s22_needs_both_labels(self):
        header = list(SCHEMA_HEADERS[SchemaVersion.S22])
        header[21] = '最終連絡'
        assert classify_header(header) is SchemaVersion.UNRECOGNIZED

    def test_unknown_width(self):
        assert classify_header(LEAD_HEADERS[:10]) is SchemaVersion.UNRECOGNIZED


class TestSchemaVersion:

    def test_widths(self):
        assert [v.width for v in (SchemaVersion.S7, SchemaVersion.S8, SchemaVersion.S14, SchemaVersion.S22)] == [7, 8, 14, 22]
        assert SchemaVersion.EMPTY.width == 0

    def test_ordering(self):
        assert SchemaVersion.S22.newer_than(SchemaVersion.S7)
        assert not SchemaVersion.S8.newer_than(SchemaVersion.S14)
        assert not SchemaVersion.UNRECOGNIZED.newer_than(SchemaVersion.S7)
        assert SchemaVersion.S22.is_known
        assert not SchemaVersion.EMPTY.is_known


class TestLayouts:

    def test_lead_tab_is_twenty_two_columns(self):
        assert LEAD_COL_COUNT == 22
        assert LEAD_COLUMN['company_name'] == 1
        assert LEAD_COLUMN['status'] == 7
        assert LEAD_COLUMN['pipeline'] == 14
        assert LEAD_COLUMN['last_contact_date'] == 21

    def test_s7_predates_outreach_column(self):
        fields = SCHEMA_FIELDS[SchemaVersion.S7]
        assert 'outreach_message' not in fields
        assert fields[6] == 'status'

    def test_each_layout_extends_the_previous_one_after_s8(self):
        assert SCHEMA_FIELDS[SchemaVersion.S14][:8] == SCHEMA_FIELDS[SchemaVersion.S8]
        assert SCHEMA_FIELDS[SchemaVersion.S22][:14] == SCHEMA_FIELDS[SchemaVersion.S14]


class TestRankMaps:

    def test_rank_a(self):
        assert RANK_STATUS['A'] == 'Aランク対応中'
        assert RANK_PIPELINE['A'] == '商談'

    def test_rank_b(self):
        assert RANK_STATUS['B'] == 'ナーチャリング中'
        assert RANK_PIPELINE['B'] == 'アプローチ中'

    def test_rank_c(self):
        assert RANK_STATUS['C'] == '3ヶ月後フォロー'
        assert RANK_PIPELINE['C'] == 'リード'

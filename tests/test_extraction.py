"""Tests for the session log pattern rules."""

import re

from gtfo_log_tracker.catalog import Catalog
from gtfo_log_tracker.extraction import (
    DEFAULT_RULES,
    ExtractionRules,
    latest_data,
    parse_id_list,
    parse_read_ids,
)


class TestHistoricalSummary:

    def test_summary_ids(self) -> None:
        line = "Logs Read: 2 / 50 | IDs: [10, 20]"
        assert DEFAULT_RULES.summary_ids(line) == [10, 20]

    def test_summary_without_spaces(self) -> None:
        line = "12:00:01.123 - <color=#C84800>Logs Read: 3 / 50 | IDs: [1,2,3]</color>"
        # Trailing markup after the list is not a summary line
        assert DEFAULT_RULES.summary_ids(line) == []
        assert DEFAULT_RULES.summary_ids("Logs Read: 3 / 50 | IDs: [1,2,3]  ") == [1, 2, 3]

    def test_non_numeric_tokens_skipped(self, catalog: Catalog) -> None:
        ids = parse_read_ids(["Logs Read: 1 / 50 | IDs: [10, abc]"], catalog)
        assert set(ids) == {10}

    def test_empty_summary(self) -> None:
        assert DEFAULT_RULES.summary_ids("Logs Read: 0 / 50 | IDs: []") == []

    def test_unrelated_line(self) -> None:
        assert DEFAULT_RULES.summary_ids("Loading level R1A1") == []


class TestParseIdList:

    def test_whitespace_tolerated(self) -> None:
        assert parse_id_list(" 1,\n 2 ,3 ") == [1, 2, 3]

    def test_signed_and_unicode_digits_rejected(self) -> None:
        assert parse_id_list("-1, +2, ²") == []


class TestParseReadIds:

    def test_summary_and_ingame_reads(self, catalog: Catalog) -> None:
        lines = [
            "Starting session",
            "Logs Read: 2 / 50 | IDs: [5, 9]",
            "Player opened DEC-8B9-LSI on terminal TERMINAL_221",
        ]
        assert set(parse_read_ids(lines, catalog)) == {5, 9, 12}

    def test_unknown_display_name_ignored(self, catalog: Catalog) -> None:
        assert parse_read_ids(["Opened XYZ-0000"], catalog) == []

    def test_duplicates_are_kept_in_order(self, catalog: Catalog) -> None:
        lines = [
            "Logs Read: 1 / 50 | IDs: [12]",
            "Opened DEC-8B9-LSI",
            "Opened KDS-DEEP",
        ]
        assert parse_read_ids(lines, catalog) == [12, 12, 42]

    def test_optional_third_segment(self, catalog: Catalog) -> None:
        assert parse_read_ids(["read ABC-5X2-7QF"], catalog) == [5]


class TestLatestData:

    def test_last_match_wins(self, catalog: Catalog) -> None:
        lines = [
            "Opened DEC-8B9-LSI",
            "SelectActiveExpedition Local_32,1,0",
            "Opened KDS-DEEP",
            "SelectActiveExpedition : expedition Local_34,2,3",
        ]
        assert latest_data(lines, catalog) == (42, "R3B4")

    def test_unresolved_matches_do_not_clear_earlier_ones(self, catalog: Catalog) -> None:
        lines = [
            "Opened KDS-DEEP",
            "SelectActiveExpedition Local_33,1,0",
            "Debug token ZZZ-99999",
            "SelectActiveExpedition Local_99,1,0",
        ]
        assert latest_data(lines, catalog) == (42, "R2A1")

    def test_level_requires_marker(self, catalog: Catalog) -> None:
        assert latest_data(["Loaded Local_32,1,0"], catalog) == (None, None)

    def test_nothing_found(self, catalog: Catalog) -> None:
        assert latest_data([], catalog) == (None, None)


class TestCustomRules:

    def test_rules_are_constructible(self, catalog: Catalog) -> None:
        rules = ExtractionRules(ingame_read=re.compile(r"log=(\S+)"))
        assert parse_read_ids(["log=KDS-DEEP"], catalog, rules) == [42]

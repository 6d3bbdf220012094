"""Tests for the polars pipeline stages."""

from datetime import datetime
from pathlib import Path

import pytest

from reflex_data_view import SortConfig
from reflex_data_view.polars_utils import (
    _humanize_field_name,
    build_column_defs,
    build_frame,
    compute_view,
    load_rows,
    scan_file,
    stringify_value,
    unique_values,
)


def tickers(rows):
    return [r["ticker"] for r in rows]


class TestSearch:
    def test_empty_term_keeps_everything(self, trade_rows):
        assert compute_view(trade_rows, search_term="") == trade_rows

    @pytest.mark.parametrize("term", ["MRF", "mrf", "Mrf"])
    def test_search_is_case_insensitive(self, trade_rows, term):
        assert tickers(compute_view(trade_rows, search_term=term)) == ["MRF"]

    def test_substring_match_on_any_field(self, trade_rows):
        assert tickers(compute_view(trade_rows, search_term="aaa002")) == [
            "ASIANPAINT",
            "TATAINVEST",
        ]

    def test_fields_outside_columns_are_searched(self, trade_rows):
        rows = compute_view(trade_rows, search_term="true")
        assert tickers(rows) == ["RELIANCE", "ASIANPAINT"]

    def test_no_match_gives_empty_view(self, trade_rows):
        assert compute_view(trade_rows, search_term="zzz") == []

    def test_returns_the_callers_row_objects(self, trade_rows):
        rows = compute_view(trade_rows, search_term="mrf")
        assert rows[0] is trade_rows[1]


class TestFilter:
    def test_membership(self, trade_rows):
        rows = compute_view(trade_rows, filters={"side": {"Sell"}})
        assert tickers(rows) == ["TATAINVEST"]

    def test_values_of_one_field_are_alternatives(self, trade_rows):
        rows = compute_view(trade_rows, filters={"product": {"CNC", "INTRADAY"}})
        assert tickers(rows) == ["RELIANCE", "TATAINVEST"]

    def test_fields_are_combined(self, trade_rows):
        rows = compute_view(
            trade_rows,
            filters={"side": {"Buy"}, "product": {"NRML"}},
        )
        assert tickers(rows) == ["MRF", "ASIANPAINT"]

    def test_empty_set_is_unconstrained(self, trade_rows):
        assert compute_view(trade_rows, filters={"side": set()}) == trade_rows

    def test_unknown_field_is_unconstrained(self, trade_rows):
        assert compute_view(trade_rows, filters={"venue": {"NSE"}}) == trade_rows

    def test_boolean_values_match_by_string(self, trade_rows):
        rows = compute_view(trade_rows, filters={"hasSignal": {"false"}})
        assert tickers(rows) == ["MRF", "TATAINVEST"]

    def test_missing_values_never_match(self):
        rows = [{"a": "x"}, {"a": "y", "b": "z"}]
        assert compute_view(rows, filters={"b": {"z"}}) == [rows[1]]


class TestSort:
    def test_no_sort_keeps_order(self, trade_rows):
        view = compute_view(trade_rows, sort=SortConfig(key="price", direction="none"))
        assert view == trade_rows

    def test_strings_sort_lexicographically(self, trade_rows):
        rows = compute_view(trade_rows, sort=SortConfig(key="price", direction="asc"))
        assert tickers(rows) == ["ASIANPAINT", "TATAINVEST", "MRF", "RELIANCE"]

    def test_descending_reverses(self, trade_rows):
        rows = compute_view(trade_rows, sort=SortConfig(key="price", direction="desc"))
        assert tickers(rows) == ["RELIANCE", "MRF", "TATAINVEST", "ASIANPAINT"]

    @pytest.mark.parametrize("direction", ["asc", "desc"])
    def test_ties_keep_prior_order(self, trade_rows, direction):
        rows = compute_view(trade_rows, sort=SortConfig(key="time", direction=direction))
        assert rows == trade_rows

    def test_numbers_sort_numerically(self):
        rows = [{"n": 10}, {"n": 9}, {"n": 100}]
        view = compute_view(rows, sort=SortConfig(key="n", direction="asc"))
        assert [r["n"] for r in view] == [9, 10, 100]

    def test_mixed_types_do_not_raise(self):
        rows = [{"v": 2}, {"v": "a"}, {"v": 1}]
        view = compute_view(rows, sort=SortConfig(key="v", direction="asc"))
        assert len(view) == 3

    def test_unknown_key_is_ignored(self, trade_rows):
        view = compute_view(trade_rows, sort=SortConfig(key="venue", direction="asc"))
        assert view == trade_rows

    def test_sort_after_search_and_filter(self, trade_rows):
        rows = compute_view(
            trade_rows,
            search_term="nrml",
            filters={"side": {"Buy"}},
            sort=SortConfig(key="ticker", direction="asc"),
        )
        assert tickers(rows) == ["ASIANPAINT", "MRF"]


class TestEdgeCases:
    def test_empty_rows(self):
        assert compute_view([], search_term="x", filters={"a": {"b"}}) == []

    def test_empty_frame_has_no_rows(self):
        assert build_frame([]).height == 0

    def test_stringify_value(self):
        assert stringify_value(None) == ""
        assert stringify_value(True) == "true"
        assert stringify_value(False) == "false"
        assert stringify_value("2,700.00") == "2,700.00"


class TestTextForm:
    def test_datetime_options_match_displayed_text(self):
        rows = [
            {"id": "a", "at": datetime(2024, 1, 1, 8, 14, 31)},
            {"id": "b", "at": datetime(2024, 1, 2)},
        ]
        assert unique_values(build_frame(rows), "at") == [
            "2024-01-01 08:14:31",
            "2024-01-02 00:00:00",
        ]
        assert compute_view(rows, filters={"at": {"2024-01-01 08:14:31"}}) == [rows[0]]

    def test_mixed_int_and_float(self):
        rows = [{"price": 2}, {"price": 2.5}, {"price": 10}]
        assert unique_values(build_frame(rows), "price") == ["2", "2.5", "10"]
        assert compute_view(rows, filters={"price": {"2"}}) == [rows[0]]
        assert compute_view(rows, search_term="2.5") == [rows[1]]

    def test_mixed_int_and_float_sort_numerically(self):
        rows = [{"price": 10}, {"price": 2.5}, {"price": 2}]
        view = compute_view(rows, sort=SortConfig(key="price", direction="asc"))
        assert [r["price"] for r in view] == [2, 2.5, 10]

    def test_rows_without_fields(self):
        rows = [{}, {}]
        assert compute_view(rows) == rows


class TestUniqueValues:
    def test_first_appearance_order(self, trade_rows):
        frame = build_frame(trade_rows)
        assert unique_values(frame, "product") == ["CNC", "NRML", "INTRADAY"]

    def test_unknown_field(self, trade_rows):
        assert unique_values(build_frame(trade_rows), "venue") == []

    def test_nulls_are_skipped(self):
        frame = build_frame([{"a": "x"}, {"a": None}, {"a": "x"}])
        assert unique_values(frame, "a") == ["x"]


class TestColumnDefs:
    def test_humanize(self):
        assert _humanize_field_name("first_name") == "First Name"
        assert _humanize_field_name("qty") == "Qty"

    def test_build_column_defs(self):
        columns = build_column_defs(
            ["time", "side"],
            filterable_fields=["side"],
            labels={"time": "Order Time"},
            with_actions=True,
        )
        assert [c.key for c in columns] == ["time", "side", None]
        assert [c.label for c in columns] == ["Order Time", "Side", "Actions"]
        assert [c.filterable for c in columns] == [False, True, False]
        assert columns[-1].sortable is False


class TestFileLoading:
    def test_csv_columns_stay_text(self, tmp_path: Path):
        path = tmp_path / "orders.csv"
        path.write_text('ticker,qty,price\nMRF,10/20,"2,700.00"\n')
        rows = load_rows(path)
        assert rows == [{"ticker": "MRF", "qty": "10/20", "price": "2,700.00"}]

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            scan_file(tmp_path / "nope.csv")

    def test_unsupported_extension(self, tmp_path: Path):
        path = tmp_path / "orders.xlsx"
        path.write_text("")
        with pytest.raises(ValueError, match="Unsupported file extension"):
            scan_file(path)

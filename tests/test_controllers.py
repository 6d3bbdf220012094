"""Tests for the filter, sort, tag and page state machines."""

import pytest

from reflex_data_view import FilterStaging, Paginator, SortConfig, SortController, TagSelection


@pytest.fixture
def staging():
    return FilterStaging(["time", "side", "product"])


class TestFilterStaging:
    def test_starts_unrestricted(self, staging):
        assert staging.committed == {
            "time": frozenset(),
            "side": frozenset(),
            "product": frozenset(),
        }
        assert staging.draft == staging.committed
        assert staging.open_dropdown is None

    def test_toggle_edits_draft_only(self, staging):
        staging.open("side")
        staging.toggle_value("side", "Buy")
        assert staging.draft_values("side") == {"Buy"}
        assert staging.committed_values("side") == frozenset()
        staging.toggle_value("side", "Buy")
        assert staging.draft_values("side") == frozenset()

    def test_commit_copies_draft_and_closes(self, staging):
        staging.open("side")
        staging.toggle_value("side", "Buy")
        assert staging.commit("side")
        assert staging.committed_values("side") == {"Buy"}
        assert staging.is_active("side")
        assert staging.open_dropdown is None

    def test_commit_is_by_value(self, staging):
        staging.open("side")
        staging.toggle_value("side", "Buy")
        staging.commit("side")
        staging.toggle_value("side", "Sell")
        assert staging.committed_values("side") == {"Buy"}

    def test_commit_is_idempotent(self, staging):
        staging.open("product")
        staging.toggle_value("product", "CNC")
        staging.commit("product")
        once = staging.committed
        staging.commit("product")
        assert staging.committed == once

    def test_dismiss_leaves_committed_untouched(self, staging):
        staging.open("side")
        staging.toggle_value("side", "Buy")
        staging.commit("side")
        before = staging.committed

        staging.open("side")
        staging.toggle_value("side", "Sell")
        staging.toggle_value("side", "Buy")
        assert staging.dismiss()

        assert staging.committed == before
        assert staging.open_dropdown is None

    def test_reopen_reseeds_stale_draft(self, staging):
        staging.open("side")
        staging.toggle_value("side", "Sell")
        staging.dismiss()
        assert staging.draft_values("side") == {"Sell"}

        staging.open("side")
        assert staging.draft_values("side") == frozenset()

    def test_open_same_column_toggles_closed(self, staging):
        staging.open("side")
        staging.open("side")
        assert staging.open_dropdown is None

    def test_only_one_dropdown_open(self, staging):
        staging.open("side")
        staging.open("product")
        assert staging.open_dropdown == "product"

    def test_clear_empties_both_states(self, staging):
        staging.open("side")
        staging.toggle_value("side", "Buy")
        staging.commit("side")
        staging.open("side")
        staging.toggle_value("side", "Sell")
        assert staging.clear("side")
        assert staging.committed_values("side") == frozenset()
        assert staging.draft_values("side") == frozenset()
        assert staging.open_dropdown is None

    def test_non_filterable_field_is_a_noop(self, staging):
        before = staging.committed
        assert not staging.open("ticker")
        assert not staging.toggle_value("ticker", "MRF")
        assert not staging.commit("ticker")
        assert not staging.clear("ticker")
        assert not staging.toggle_immediate("ticker", "MRF")
        assert staging.committed == before
        assert staging.open_dropdown is None

    def test_dismiss_without_open_dropdown(self, staging):
        assert not staging.dismiss()

    def test_toggle_immediate_commits_right_away(self, staging):
        staging.toggle_immediate("side", "Buy")
        assert staging.committed_values("side") == {"Buy"}
        assert staging.draft_values("side") == {"Buy"}
        staging.toggle_immediate("side", "Buy")
        assert staging.committed_values("side") == frozenset()

    def test_reconfigure_resets_everything(self, staging):
        staging.toggle_immediate("side", "Buy")
        staging.open("time")
        staging.reconfigure(["client"])
        assert staging.fields == ["client"]
        assert staging.committed == {"client": frozenset()}
        assert staging.open_dropdown is None


class TestSortController:
    def test_new_column_starts_ascending(self):
        sort = SortController()
        assert sort.cycle("price") == SortConfig(key="price", direction="asc")

    def test_cycle_keeps_key(self):
        sort = SortController()
        directions = [sort.cycle("price").direction for _ in range(3)]
        assert directions == ["asc", "desc", "none"]
        assert sort.config.key == "price"
        assert not sort.config.is_active

    def test_cycle_has_period_three(self):
        sort = SortController()
        first = sort.cycle("price")
        for _ in range(3):
            last = sort.cycle("price")
        assert last == first

    def test_switching_column_restarts(self):
        sort = SortController()
        sort.cycle("price")
        sort.cycle("price")
        assert sort.cycle("ticker") == SortConfig(key="ticker", direction="asc")

    def test_indicator(self):
        sort = SortController()
        sort.cycle("price")
        sort.cycle("price")
        assert sort.indicator("price") == "desc"
        assert sort.indicator("ticker") == "none"
        assert sort.indicator(None) == "none"

    def test_reset(self):
        sort = SortController()
        sort.cycle("price")
        sort.reset()
        assert sort.config == SortConfig(key=None, direction="none")


class TestTagSelection:
    def test_toggle_adds_and_removes(self):
        tags = TagSelection("ticker")
        tags.toggle("MRF")
        assert tags.is_selected("MRF")
        assert "MRF" in tags
        tags.toggle("MRF")
        assert not tags.is_selected("MRF")

    def test_insertion_order(self):
        tags = TagSelection("ticker")
        for value in ("MRF", "RELIANCE", "ASIANPAINT"):
            tags.toggle(value)
        assert tags.values == ("MRF", "RELIANCE", "ASIANPAINT")

    def test_toggle_row(self):
        tags = TagSelection("ticker")
        tags.toggle_row({"ticker": "MRF", "side": "Buy"})
        assert tags.values == ("MRF",)

    def test_clear(self):
        tags = TagSelection("ticker")
        tags.toggle("MRF")
        tags.clear()
        assert len(tags) == 0

    def test_without_field_nothing_is_tagged(self):
        tags = TagSelection()
        assert not tags.toggle("MRF")
        assert tags.values == ()


class TestPaginator:
    def test_twenty_five_rows(self):
        pages = Paginator(10)
        pages.update(25)
        assert pages.total_pages == 3
        assert pages.slice(list(range(25))) == list(range(10))

    def test_next_stops_at_last_page(self):
        pages = Paginator(10)
        pages.update(25)
        pages.next()
        pages.next()
        assert pages.current_page == 3
        assert not pages.next()
        assert pages.current_page == 3
        assert pages.slice(list(range(25))) == list(range(20, 25))

    def test_previous_stops_at_first_page(self):
        pages = Paginator(10)
        pages.update(25)
        assert not pages.previous()
        assert pages.current_page == 1

    def test_empty_view_has_one_page(self):
        pages = Paginator(10)
        pages.update(0)
        assert pages.total_pages == 1
        assert pages.current_page == 1
        assert pages.slice([]) == []

    def test_shrinking_view_clamps_page(self):
        pages = Paginator(10)
        pages.update(25)
        pages.next()
        pages.next()
        pages.update(12)
        assert pages.current_page == 2

    def test_reset(self):
        pages = Paginator(10)
        pages.update(25)
        pages.next()
        pages.reset()
        assert pages.current_page == 1

    @pytest.mark.parametrize("size", [0, -1])
    def test_invalid_page_size(self, size):
        with pytest.raises(ValueError):
            Paginator(size)

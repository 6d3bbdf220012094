"""The data-view coordinator.

:class:`DataView` owns every piece of state of one tabular view (committed
and draft filters, sort, tag selection, search term and page) and
recomputes the ordered view synchronously after each mutation.

Page reset policy: the current page goes back to 1 whenever the search
term, the committed filters or the row collection change.  A sort change
only re-clamps the page, so the user keeps their position while
reordering the same filtered set.
"""

import time
from collections.abc import Callable, Collection, Iterable, Mapping, Sequence
from typing import Any

from reflex_data_view.controllers import (
    _DEFAULT_PAGE_SIZE,
    FilterStaging,
    Paginator,
    SortController,
    TagSelection,
)
from reflex_data_view.csv_export import (
    _DEFAULT_FILENAME,
    _DEFAULT_QUOTED_FIELDS,
    encode_csv,
    export_csv,
)
from reflex_data_view.models import ColumnDef, CsvExport, SortConfig, SortDirection
from reflex_data_view.polars_utils import build_frame, evaluate_view, stringify_value, unique_values

Row = Mapping[str, Any]


class DataView:
    """Search, filter, sort and paginate an in-memory row collection.

    Args:
        rows: The full row collection.  Rows are never mutated; the view
            hands back the same objects.
        columns: Column registry, in display order.
        unique_identifier: Field that identifies a row.
        filterable_fields: Fields with a filter dropdown.  Defaults to the
            keys of columns marked ``filterable``.
        taggable_field: Field whose values can be tagged, if any.
        page_size: Rows per page.
        show_search: When ``False`` the search term is ignored.
        profile: Opaque display data passed through for the host.
        on_row_action: ``(row, action)`` callback for the actions column.
        on_download: Called with the :class:`CsvExport` on every download.
        csv_quoted_fields: Fields always quoted as text in the export.
        csv_filename: File name offered for the export.
        debug_log: Print pipeline timings.

    Raises:
        ValueError: If *page_size* is smaller than 1.
    """

    def __init__(
        self,
        rows: Iterable[Row],
        columns: Sequence[ColumnDef],
        *,
        unique_identifier: str,
        filterable_fields: Iterable[str] | None = None,
        taggable_field: str | None = None,
        page_size: int = _DEFAULT_PAGE_SIZE,
        show_search: bool = True,
        profile: Mapping[str, Any] | None = None,
        on_row_action: Callable[[Row, str], Any] | None = None,
        on_download: Callable[[CsvExport], Any] | None = None,
        csv_quoted_fields: Collection[str] = _DEFAULT_QUOTED_FIELDS,
        csv_filename: str = _DEFAULT_FILENAME,
        debug_log: bool = False,
    ) -> None:
        self.unique_identifier = unique_identifier
        self.show_search = show_search
        self.profile: dict[str, Any] = dict(profile or {})
        self.csv_quoted_fields = tuple(csv_quoted_fields)
        self.csv_filename = csv_filename
        self.debug_log = debug_log
        self._on_row_action = on_row_action
        self._on_download = on_download

        self.paginator = Paginator(page_size)
        self.filters = FilterStaging()
        self.sort = SortController()
        self.selection = TagSelection(taggable_field)
        self.search_term: str = ""

        self._rows: list[Row] = list(rows)
        self._frame = build_frame(self._rows)
        self._processed: list[Row] = []
        self.columns: list[ColumnDef] = []
        self.set_columns(columns, filterable_fields)

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    @property
    def rows(self) -> list[Row]:
        return list(self._rows)

    def set_rows(self, rows: Iterable[Row]) -> None:
        """Replace the row collection; filters, sort and tags are kept."""
        self._rows = list(rows)
        self._frame = build_frame(self._rows)
        self._refresh(reset_page=True)

    def set_columns(
        self,
        columns: Sequence[ColumnDef],
        filterable_fields: Iterable[str] | None = None,
    ) -> None:
        """Replace the column registry.

        Committed and draft filters start over with no restriction on any
        filterable field.
        """
        self.columns = list(columns)
        if filterable_fields is None:
            filterable_fields = [
                c.key for c in self.columns if c.key is not None and c.filterable
            ]
        self.filters.reconfigure(filterable_fields)
        self._refresh(reset_page=True)

    def column(self, key: str | None) -> ColumnDef | None:
        if key is None:
            return None
        for column in self.columns:
            if column.key == key:
                return column
        return None

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def set_search(self, term: str) -> None:
        if not self.show_search:
            return
        self.search_term = term
        self._refresh(reset_page=True)

    # ------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------

    @property
    def filterable_fields(self) -> list[str]:
        return self.filters.fields

    @property
    def open_dropdown(self) -> str | None:
        return self.filters.open_dropdown

    def open_filter(self, field: str) -> None:
        """Toggle the filter dropdown of *field*, reseeding its draft."""
        self.filters.open(field)

    def toggle_filter_value(self, field: str, value: str) -> None:
        """Flip *value* in the draft of *field*; the view is unchanged."""
        self.filters.toggle_value(field, value)

    def apply_filter(self, field: str) -> None:
        """Commit the draft of *field* and close its dropdown."""
        if self.filters.commit(field):
            self._refresh(reset_page=True)

    def clear_filter(self, field: str) -> None:
        if self.filters.clear(field):
            self._refresh(reset_page=True)

    def dismiss_filter(self) -> None:
        """Close the open dropdown after an interaction outside it.

        The draft is not committed.
        """
        self.filters.dismiss()

    def set_dropdown_open(self, field: str, is_open: bool) -> None:
        """Follow an open/close request coming from the dropdown itself.

        Opening a column that is not already open opens it (closing any
        other).  Closing the open column is a dismissal; a close request
        for any other column is ignored.
        """
        if is_open:
            if self.open_dropdown != field:
                self.open_filter(field)
        elif self.open_dropdown == field:
            self.dismiss_filter()

    def toggle_filter_immediate(self, field: str, value: str) -> None:
        """Flip *value* directly in the committed filter of *field*."""
        if self.filters.toggle_immediate(field, value):
            self._refresh(reset_page=True)

    def is_filter_active(self, field: str | None) -> bool:
        return field is not None and self.filters.is_active(field)

    def draft_values(self, field: str) -> frozenset[str]:
        return self.filters.draft_values(field)

    def committed_values(self, field: str) -> frozenset[str]:
        return self.filters.committed_values(field)

    def filter_options(self, field: str) -> list[str]:
        """Values offered in the dropdown of *field*, from the full rows."""
        return unique_values(self._frame, field)

    # ------------------------------------------------------------------
    # Sorting
    # ------------------------------------------------------------------

    @property
    def sort_config(self) -> SortConfig:
        return self.sort.config

    def cycle_sort(self, field: str) -> None:
        """Advance the tri-state sort on *field*.

        The actions column and columns marked ``sortable=False`` are
        ignored.
        """
        column = self.column(field)
        if column is None or not column.sortable:
            return
        self.sort.cycle(field)
        self._refresh(reset_page=False)

    def sort_indicator(self, field: str | None) -> SortDirection:
        return self.sort.indicator(field)

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    @property
    def taggable_field(self) -> str | None:
        return self.selection.field

    @property
    def selected_tags(self) -> tuple[str, ...]:
        return self.selection.values

    def toggle_tag(self, value: Any) -> None:
        self.selection.toggle(value)

    def toggle_row_tag(self, row: Row) -> None:
        self.selection.toggle_row(row)

    def toggle_cell_tag(self, field: str | None, row_id: str) -> bool:
        """Double-click on a cell: toggle the row's tag.

        Only cells of the taggable field react.  *row_id* is the
        stringified identifier of a row in the current view.
        """
        if field is None or field != self.taggable_field:
            return False
        row = self.find_row_by_text(row_id)
        if row is None:
            return False
        return self.selection.toggle_row(row)

    def is_tagged(self, value: Any) -> bool:
        return self.selection.is_selected(value)

    def is_row_tagged(self, row: Row) -> bool:
        if self.taggable_field is None:
            return False
        return self.selection.is_selected(row.get(self.taggable_field))

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------

    @property
    def page_size(self) -> int:
        return self.paginator.page_size

    @property
    def current_page(self) -> int:
        return self.paginator.current_page

    @property
    def total_pages(self) -> int:
        return self.paginator.total_pages

    @property
    def page_rows(self) -> list[Row]:
        return self.paginator.slice(self._processed)

    def next_page(self) -> None:
        self.paginator.next()

    def previous_page(self) -> None:
        self.paginator.previous()

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    @property
    def processed_rows(self) -> list[Row]:
        """The full searched, filtered and sorted view."""
        return list(self._processed)

    @property
    def row_count(self) -> int:
        return len(self._processed)

    def row_id(self, row: Row) -> Any:
        return row.get(self.unique_identifier)

    def find_row(self, row_id: Any) -> Row | None:
        """Look up a row of the current view by its identifier."""
        for row in self._processed:
            if row.get(self.unique_identifier) == row_id:
                return row
        return None

    def find_row_by_text(self, row_id: str) -> Row | None:
        """Like :meth:`find_row`, for an identifier already turned into text."""
        for row in self._processed:
            if stringify_value(self.row_id(row)) == row_id:
                return row
        return None

    def cell_value(self, column: ColumnDef, row: Row) -> Any:
        value = row.get(column.key) if column.key is not None else None
        if column.render_cell is not None:
            return column.render_cell(value, row)
        return value

    def row_action(self, row: Row, action: str = "more") -> Any:
        """Forward an actions-column event to the external handler."""
        if self._on_row_action is None:
            return None
        return self._on_row_action(row, action)

    def to_csv(self) -> str:
        return encode_csv(
            self._processed,
            self.columns,
            quoted_fields=self.csv_quoted_fields,
        )

    def download(self) -> CsvExport:
        """Export the full view as a CSV blob and hand it to ``on_download``."""
        export = export_csv(
            self._processed,
            self.columns,
            quoted_fields=self.csv_quoted_fields,
            filename=self.csv_filename,
        )
        if self.debug_log:
            print(
                f"[DataView] csv export: {self.row_count} rows, "
                f"{len(export.data):,} bytes -> {export.filename}"
            )
        if self._on_download is not None:
            self._on_download(export)
        return export

    # ------------------------------------------------------------------
    # Global reset
    # ------------------------------------------------------------------

    def reset_all(self) -> None:
        """Clear filters, drafts, sort, tags, search and page in one step."""
        self.filters.reset()
        self.sort.reset()
        self.selection.clear()
        self.search_term = ""
        self._refresh(reset_page=True)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _refresh(self, *, reset_page: bool) -> None:
        t0 = time.perf_counter()
        indexes = evaluate_view(
            self._frame,
            search_term=self.search_term if self.show_search else "",
            filters=self.filters.committed,
            sort=self.sort.config,
        )
        self._processed = [self._rows[i] for i in indexes]
        if reset_page:
            self.paginator.reset()
        self.paginator.update(len(self._processed))

        if self.debug_log:
            elapsed_ms = (time.perf_counter() - t0) * 1000
            print(
                f"[DataView] pipeline: {len(self._rows)} -> "
                f"{len(self._processed)} rows, page "
                f"{self.current_page}/{self.total_pages} ({elapsed_ms:.1f}ms)"
            )

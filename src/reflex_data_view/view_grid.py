"""Reactive Reflex host for a :class:`~reflex_data_view.view.DataView`.

Users inherit from :class:`DataViewMixin` **and** ``rx.State``, call
:meth:`set_data_view` with their rows and column registry, and render
with :func:`data_view_grid`.

``DataViewMixin`` is a Reflex **state mixin** (``mixin=True``).  Each
subclass gets its own independent set of ``view_grid_*`` reactive
variables, so several views on the same page do not interfere with
each other.

Typical usage::

    from reflex_data_view import ColumnDef, DataViewMixin, data_view_grid

    class OrdersState(DataViewMixin, rx.State):
        def load_data(self):
            self.set_data_view(
                rows,
                columns,
                unique_identifier="ticker",
                taggable_field="ticker",
            )

    def index():
        return rx.cond(OrdersState.view_grid_loaded, data_view_grid(OrdersState))
"""

import time
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import reflex as rx

from reflex_data_view.models import ColumnDef
from reflex_data_view.polars_utils import stringify_value
from reflex_data_view.view import DataView, Row


# ---------------------------------------------------------------------------
# Module-level DataView registry
# ---------------------------------------------------------------------------

# DataView instances hold callables and polars frames, so they cannot live
# inside ``rx.State``.  They are kept here, keyed by state class name and
# client token.
_view_registry: dict[str, DataView] = {}

ROW_ID_KEY: str = "__row_id__"
TAG_KEY: str = "__tag__"


def _registry_key(state: rx.State) -> str:
    return f"{type(state).__name__}:{state.router.session.client_token}"


def _rows_to_json_safe(view: DataView, rows: Iterable[Row]) -> list[dict[str, str]]:
    """Stringify every value so the page rows serialise cleanly.

    Columns with a ``render_cell`` override carry the rendered text.  The
    stringified row identifier and taggable value are added under
    :data:`ROW_ID_KEY` and :data:`TAG_KEY`, so row actions and tags keep
    working whatever a column displays.
    """
    rendered = [c for c in view.columns if c.key is not None and c.render_cell is not None]
    tag_field = view.taggable_field
    json_rows: list[dict[str, str]] = []
    for row in rows:
        item = {str(k): stringify_value(v) for k, v in row.items()}
        for column in rendered:
            item[column.key] = stringify_value(view.cell_value(column, row))
        item[ROW_ID_KEY] = stringify_value(view.row_id(row))
        item[TAG_KEY] = stringify_value(row.get(tag_field)) if tag_field else ""
        json_rows.append(item)
    return json_rows


def _column_descriptors(view: DataView) -> list[dict[str, Any]]:
    """Column registry plus live sort/filter flags, as plain dicts."""
    descriptors: list[dict[str, Any]] = []
    for column in view.columns:
        key = column.key or ""
        descriptors.append({
            "key": key,
            "label": column.label,
            "full_label": column.header_label,
            "filterable": view.filters.is_filterable(column.key),
            "sortable": column.is_data_column and column.sortable,
            "sort": view.sort_indicator(column.key),
            "filter_active": view.is_filter_active(column.key),
        })
    return descriptors


def _view_grid_setup_vars(view: DataView) -> dict[str, Any]:
    """Vars that stay fixed for the lifetime of a view."""
    return {
        "view_grid_show_search": view.show_search,
        "view_grid_taggable_field": view.taggable_field or "",
        "view_grid_id_field": view.unique_identifier,
        "view_grid_profile": {
            str(k): stringify_value(v) for k, v in view.profile.items()
        },
        "view_grid_filter_options": {
            field: view.filter_options(field) for field in view.filterable_fields
        },
    }


def _view_grid_vars(view: DataView) -> dict[str, Any]:
    """The view's output contract, keyed by ``view_grid_*`` var name."""
    return {
        "view_grid_rows": _rows_to_json_safe(view, view.page_rows),
        "view_grid_columns": _column_descriptors(view),
        "view_grid_row_count": view.row_count,
        "view_grid_page": view.current_page,
        "view_grid_total_pages": view.total_pages,
        "view_grid_search": view.search_term,
        "view_grid_open_dropdown": view.open_dropdown or "",
        "view_grid_draft": {
            field: sorted(view.draft_values(field)) for field in view.filterable_fields
        },
        "view_grid_committed": {
            field: sorted(view.committed_values(field)) for field in view.filterable_fields
        },
        "view_grid_selection": list(view.selected_tags),
        "view_grid_stats": (
            f"{view.row_count:,} of {len(view.rows):,} rows  "
            f"page {view.current_page}/{view.total_pages}"
        ),
    }


# ---------------------------------------------------------------------------
# DataViewMixin
# ---------------------------------------------------------------------------

class DataViewMixin(rx.State, mixin=True):
    """Reflex State mixin exposing a :class:`DataView` to the frontend.

    The vars mirror the view's output contract after every event.  All
    state variable names are prefixed with ``view_grid_`` to avoid
    collisions when composed with other state.

    .. important::

       Subclasses **must** also inherit from ``rx.State`` so that Reflex's
       metaclass registers the vars on the child::

           class MyGrid(DataViewMixin, rx.State):
               ...
    """

    # -- Frontend state vars --
    view_grid_rows: list[dict[str, str]] = []
    view_grid_columns: list[dict[str, Any]] = []
    view_grid_row_count: int = 0
    view_grid_page: int = 1
    view_grid_total_pages: int = 1
    view_grid_search: str = ""
    view_grid_show_search: bool = True
    view_grid_open_dropdown: str = ""
    view_grid_draft: dict[str, list[str]] = {}
    view_grid_committed: dict[str, list[str]] = {}
    view_grid_filter_options: dict[str, list[str]] = {}
    view_grid_selection: list[str] = []
    view_grid_taggable_field: str = ""
    view_grid_id_field: str = ""
    view_grid_profile: dict[str, str] = {}
    view_grid_loaded: bool = False
    view_grid_stats: str = ""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def set_data_view(
        self,
        rows: Iterable[Row],
        columns: Sequence[ColumnDef],
        **options: Any,
    ) -> None:
        """Create the view for this client and push its first page.

        Args:
            rows: The full row collection.
            columns: Column registry, in display order.
            **options: Keyword arguments forwarded to :class:`DataView`
                (``unique_identifier`` is required).
        """
        t0 = time.perf_counter()
        view = DataView(rows, columns, **options)
        _view_registry[_registry_key(self)] = view

        for name, value in _view_grid_setup_vars(view).items():
            setattr(self, name, value)
        self._sync_view_grid(view)
        self.view_grid_loaded = True  # type: ignore[assignment]

        elapsed_ms = (time.perf_counter() - t0) * 1000
        print(
            f"[DataViewGrid] loaded {len(view.rows):,} rows, "
            f"{len(view.columns)} columns ({elapsed_ms:.1f}ms)"
        )

    def on_view_grid_row_action(self, row: Mapping[str, Any], action: str) -> Any:
        """Hook for the actions column.  Override in the subclass."""
        return None

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def handle_view_grid_search(self, term: str) -> None:
        view = self._get_view()
        if view is None:
            return
        view.set_search(term)
        self._sync_view_grid(view)

    def handle_view_grid_filter_open(self, field: str) -> None:
        """Toggle the dropdown of *field*, reseeding its draft."""
        view = self._get_view()
        if view is None:
            return
        view.open_filter(field)
        self._sync_view_grid(view)

    def handle_view_grid_dropdown_change(self, field: str, is_open: bool) -> None:
        """Follow the popover's own open/close requests.

        Closing by clicking outside the dropdown (or on its trigger) is a
        dismissal: the draft is not committed.
        """
        view = self._get_view()
        if view is None:
            return
        view.set_dropdown_open(field, is_open)
        self._sync_view_grid(view)

    def handle_view_grid_filter_toggle(self, field: str, value: str) -> None:
        view = self._get_view()
        if view is None:
            return
        view.toggle_filter_value(field, value)
        self._sync_view_grid(view)

    def handle_view_grid_filter_apply(self, field: str) -> None:
        view = self._get_view()
        if view is None:
            return
        view.apply_filter(field)
        self._sync_view_grid(view)

    def handle_view_grid_filter_clear(self, field: str) -> None:
        view = self._get_view()
        if view is None:
            return
        view.clear_filter(field)
        self._sync_view_grid(view)

    def handle_view_grid_filter_dismiss(self) -> None:
        view = self._get_view()
        if view is None:
            return
        view.dismiss_filter()
        self._sync_view_grid(view)

    def handle_view_grid_filter_immediate(self, field: str, value: str) -> None:
        """Compact-layout checkbox: commit the toggle right away."""
        view = self._get_view()
        if view is None:
            return
        view.toggle_filter_immediate(field, value)
        self._sync_view_grid(view)

    def handle_view_grid_sort(self, field: str) -> None:
        view = self._get_view()
        if view is None:
            return
        view.cycle_sort(field)
        self._sync_view_grid(view)

    def handle_view_grid_tag(self, value: str) -> None:
        view = self._get_view()
        if view is None:
            return
        view.toggle_tag(value)
        self._sync_view_grid(view)

    def handle_view_grid_cell_double_click(self, field: str, row_id: str) -> None:
        """Double-click on a taggable cell toggles its row's tag."""
        view = self._get_view()
        if view is None or not view.toggle_cell_tag(field, row_id):
            return
        self._sync_view_grid(view)

    def handle_view_grid_next_page(self) -> None:
        view = self._get_view()
        if view is None:
            return
        view.next_page()
        self._sync_view_grid(view)

    def handle_view_grid_previous_page(self) -> None:
        view = self._get_view()
        if view is None:
            return
        view.previous_page()
        self._sync_view_grid(view)

    def handle_view_grid_row_action(self, row_id: str, action: str) -> None:
        view = self._get_view()
        if view is None:
            return
        row = view.find_row_by_text(row_id)
        if row is None:
            return
        view.row_action(row, action)
        self.on_view_grid_row_action(row, action)

    def reset_view_grid(self) -> None:
        """Clear filters, sort, tags, search and page in one event."""
        view = self._get_view()
        if view is None:
            return
        view.reset_all()
        self._sync_view_grid(view)

    def download_view_grid_csv(self) -> rx.event.EventSpec | None:
        """Download the full filtered and sorted view as CSV.

        Returns an ``rx.download`` event; the browser-side object URL is
        created and released by Reflex.
        """
        view = self._get_view()
        if view is None:
            return None
        export = view.download()
        print(
            f"[DataViewGrid] csv export: {view.row_count:,} rows -> {export.filename}"
        )
        return rx.download(data=export.data, filename=export.filename)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _get_view(self) -> DataView | None:
        return _view_registry.get(_registry_key(self))

    def _sync_view_grid(self, view: DataView) -> None:
        """Copy the view's output contract into the reactive vars."""
        for name, value in _view_grid_vars(view).items():
            setattr(self, name, value)


# ---------------------------------------------------------------------------
# UI helper
# ---------------------------------------------------------------------------

def _filter_popover(state_cls: type, column: rx.Var) -> rx.Component:
    key = column["key"].to(str)
    return rx.popover.root(
        rx.popover.trigger(
            rx.icon_button(
                rx.icon("filter", size=14),
                size="1",
                variant=rx.cond(column["filter_active"], "solid", "ghost"),
            ),
        ),
        rx.popover.content(
            rx.vstack(
                rx.scroll_area(
                    rx.vstack(
                        rx.foreach(
                            state_cls.view_grid_filter_options[key],
                            lambda value: rx.checkbox(
                                value,
                                checked=state_cls.view_grid_draft[key].contains(value),
                                on_change=lambda _checked: state_cls.handle_view_grid_filter_toggle(
                                    key, value
                                ),
                                size="1",
                            ),
                        ),
                        spacing="1",
                    ),
                    max_height="12em",
                ),
                rx.hstack(
                    rx.button(
                        "Apply",
                        size="1",
                        variant="ghost",
                        on_click=state_cls.handle_view_grid_filter_apply(key),
                    ),
                    rx.button(
                        "Clear",
                        size="1",
                        variant="ghost",
                        color_scheme="red",
                        on_click=state_cls.handle_view_grid_filter_clear(key),
                    ),
                    justify="between",
                    width="100%",
                ),
                spacing="2",
            ),
            width="12em",
        ),
        open=state_cls.view_grid_open_dropdown == key,
        on_open_change=lambda is_open: state_cls.handle_view_grid_dropdown_change(
            key, is_open
        ),
    )


def _sort_button(state_cls: type, column: rx.Var) -> rx.Component:
    key = column["key"].to(str)
    return rx.icon_button(
        rx.match(
            column["sort"],
            ("asc", rx.icon("arrow_up", size=12)),
            ("desc", rx.icon("arrow_down", size=12)),
            rx.icon("arrow_up_down", size=12),
        ),
        size="1",
        variant="ghost",
        color_scheme=rx.cond(column["sort"] == "none", "gray", "blue"),
        on_click=state_cls.handle_view_grid_sort(key),
    )


def _header_cell(state_cls: type, column: rx.Var) -> rx.Component:
    return rx.table.column_header_cell(
        rx.hstack(
            rx.text(column["full_label"].to(str)),
            rx.cond(column["filterable"], _filter_popover(state_cls, column)),
            rx.cond(column["sortable"], _sort_button(state_cls, column)),
            align="center",
            spacing="1",
        ),
    )


def _body_cell(state_cls: type, row: rx.Var, column: rx.Var) -> rx.Component:
    key = column["key"].to(str)
    value = row[key].to(str)
    row_id = row[ROW_ID_KEY].to(str)
    is_tag_column = key == state_cls.view_grid_taggable_field
    return rx.cond(
        key == "",
        rx.table.cell(
            rx.icon_button(
                rx.icon("ellipsis_vertical", size=16),
                size="1",
                variant="ghost",
                color_scheme="gray",
                on_click=state_cls.handle_view_grid_row_action(row_id, "more"),
            ),
        ),
        rx.table.cell(
            rx.hstack(
                rx.text(value),
                rx.cond(
                    is_tag_column
                    & state_cls.view_grid_selection.contains(row[TAG_KEY].to(str)),
                    rx.icon("wifi", size=14, color="var(--blue-9)"),
                ),
                align="center",
                spacing="1",
            ),
            on_double_click=state_cls.handle_view_grid_cell_double_click(key, row_id),
        ),
    )


def data_view_grid(
    state_cls: type,
    *,
    search_placeholder: str = "Search...",
    show_download: bool = True,
) -> rx.Component:
    """Return a plain table bound to a :class:`DataViewMixin` state.

    Renders the search box, tag chips, Download / Cancel all buttons, the
    table with per-column filter dropdowns and sort toggles, and the
    pager.  Cell styling beyond that is left to the host.

    Args:
        state_cls: The ``rx.State`` subclass that also inherits from
            :class:`DataViewMixin`.
        search_placeholder: Placeholder text of the search box.
        show_download: Show the CSV download button.

    Returns:
        A Reflex component.
    """
    download_button = rx.fragment()
    if show_download:
        download_button = rx.button(
            rx.icon("download", size=14),
            "Download",
            variant="soft",
            on_click=state_cls.download_view_grid_csv,
        )

    toolbar = rx.hstack(
        rx.cond(
            state_cls.view_grid_show_search,
            rx.input(
                value=state_cls.view_grid_search,
                on_change=state_cls.handle_view_grid_search,
                placeholder=search_placeholder,
                width="24em",
            ),
        ),
        rx.foreach(
            state_cls.view_grid_selection,
            lambda tag: rx.button(
                tag,
                rx.icon("x", size=12),
                size="1",
                variant="soft",
                color_scheme="gray",
                on_click=state_cls.handle_view_grid_tag(tag),
            ),
        ),
        rx.spacer(),
        download_button,
        rx.button(
            "Cancel all",
            color_scheme="red",
            on_click=state_cls.reset_view_grid,
        ),
        align="center",
        spacing="2",
        width="100%",
        wrap="wrap",
    )

    table = rx.table.root(
        rx.table.header(
            rx.table.row(
                rx.foreach(
                    state_cls.view_grid_columns,
                    lambda column: _header_cell(state_cls, column),
                ),
            ),
        ),
        rx.table.body(
            rx.cond(
                state_cls.view_grid_row_count > 0,
                rx.foreach(
                    state_cls.view_grid_rows,
                    lambda row: rx.table.row(
                        rx.foreach(
                            state_cls.view_grid_columns,
                            lambda column: _body_cell(state_cls, row, column),
                        ),
                    ),
                ),
                rx.table.row(
                    rx.table.cell(
                        "No data matches the current filters",
                        col_span=state_cls.view_grid_columns.length(),
                        text_align="center",
                        color="var(--gray-9)",
                    ),
                ),
            ),
        ),
        variant="surface",
        width="100%",
    )

    pager = rx.hstack(
        rx.cond(
            state_cls.view_grid_taggable_field != "",
            rx.text(
                "Double-click on ",
                state_cls.view_grid_taggable_field,
                " cell to add/remove tag",
                size="1",
                color="var(--gray-9)",
            ),
        ),
        rx.spacer(),
        rx.button(
            "Previous",
            size="1",
            variant="ghost",
            disabled=state_cls.view_grid_page <= 1,
            on_click=state_cls.handle_view_grid_previous_page,
        ),
        rx.text(
            "Page ",
            state_cls.view_grid_page.to(str),  # type: ignore[union-attr]
            " of ",
            state_cls.view_grid_total_pages.to(str),  # type: ignore[union-attr]
            size="2",
        ),
        rx.button(
            "Next",
            size="1",
            variant="ghost",
            disabled=state_cls.view_grid_page >= state_cls.view_grid_total_pages,
            on_click=state_cls.handle_view_grid_next_page,
        ),
        align="center",
        width="100%",
    )

    return rx.vstack(toolbar, table, pager, spacing="3", width="100%")


def data_view_filter_panel(state_cls: type) -> rx.Component:
    """Return the compact filter panel for small screens.

    Every checkbox commits immediately (no draft, no Apply button), over
    the same committed filters as the column dropdowns.

    Args:
        state_cls: The ``rx.State`` subclass that inherits from
            :class:`DataViewMixin`.

    Returns:
        A Reflex component.
    """
    def _group(column: rx.Var) -> rx.Component:
        key = column["key"].to(str)
        return rx.cond(
            column["filterable"],
            rx.vstack(
                rx.text(column["label"].to(str), size="2", weight="medium"),
                rx.foreach(
                    state_cls.view_grid_filter_options[key],
                    lambda value: rx.checkbox(
                        value,
                        checked=state_cls.view_grid_committed[key].contains(value),
                        on_change=lambda _checked: state_cls.handle_view_grid_filter_immediate(
                            key, value
                        ),
                        size="1",
                    ),
                ),
                spacing="1",
            ),
        )

    return rx.box(
        rx.vstack(
            rx.text("Filters", weight="medium"),
            rx.foreach(state_cls.view_grid_columns, _group),
            rx.button(
                "Clear All Filters",
                color_scheme="red",
                width="100%",
                on_click=state_cls.reset_view_grid,
            ),
            spacing="3",
        ),
        padding="1em",
        border_radius="8px",
        border="1px solid var(--gray-a5)",
    )

"""State machines owned by a data view.

Each controller owns one slice of view state and exposes only total,
synchronous transitions.  None of them know about rows or polars; the
:class:`~reflex_data_view.view.DataView` coordinator feeds their output
into the pipeline.
"""

import math
from collections.abc import Iterable, Sequence
from typing import Any

from reflex_data_view.models import SortConfig, SortDirection

_DEFAULT_PAGE_SIZE: int = 10

# ascending -> descending -> none -> ascending
_NEXT_DIRECTION: dict[SortDirection, SortDirection] = {
    "asc": "desc",
    "desc": "none",
    "none": "asc",
}


# ---------------------------------------------------------------------------
# Filter staging
# ---------------------------------------------------------------------------

class FilterStaging:
    """Draft and committed per-field filter selections.

    The committed state is what the pipeline applies.  The draft is what
    an open dropdown edits; it only reaches the committed state through
    :meth:`commit`.  At most one dropdown is open at a time.

    Both states map every filterable field to a set of allowed string
    values.  An empty set means "no restriction".  Operations naming a
    field outside the filterable list are rejected as no-ops and return
    ``False``.
    """

    def __init__(self, fields: Iterable[str] = ()) -> None:
        self._fields: list[str] = []
        self._committed: dict[str, set[str]] = {}
        self._draft: dict[str, set[str]] = {}
        self._open: str | None = None
        self.reconfigure(fields)

    # -- read side --

    @property
    def fields(self) -> list[str]:
        return list(self._fields)

    @property
    def open_dropdown(self) -> str | None:
        return self._open

    @property
    def committed(self) -> dict[str, frozenset[str]]:
        """Snapshot of the committed state."""
        return {f: frozenset(v) for f, v in self._committed.items()}

    @property
    def draft(self) -> dict[str, frozenset[str]]:
        """Snapshot of the draft state."""
        return {f: frozenset(v) for f, v in self._draft.items()}

    def is_filterable(self, field: str | None) -> bool:
        return field is not None and field in self._committed

    def committed_values(self, field: str) -> frozenset[str]:
        return frozenset(self._committed.get(field, ()))

    def draft_values(self, field: str) -> frozenset[str]:
        return frozenset(self._draft.get(field, ()))

    def is_active(self, field: str) -> bool:
        return bool(self._committed.get(field))

    # -- transitions --

    def reconfigure(self, fields: Iterable[str]) -> None:
        """Reset both states to "no restriction" for a new field list."""
        self._fields = list(dict.fromkeys(fields))
        self._committed = {f: set() for f in self._fields}
        self._draft = {f: set() for f in self._fields}
        self._open = None

    def reset(self) -> None:
        self.reconfigure(self._fields)

    def open(self, field: str) -> bool:
        """Toggle the dropdown for *field*.

        Opening reseeds the field's draft from the committed state, so
        edits left over from an earlier dismissal are discarded.  Opening
        another field implicitly closes the current one.
        """
        if not self.is_filterable(field):
            return False
        if self._open == field:
            self._open = None
            return True
        self._draft[field] = set(self._committed[field])
        self._open = field
        return True

    def toggle_value(self, field: str, value: str) -> bool:
        """Flip membership of *value* in the draft only."""
        if not self.is_filterable(field):
            return False
        _toggle_member(self._draft[field], str(value))
        return True

    def commit(self, field: str) -> bool:
        """Copy the draft for *field* into the committed state and close."""
        if not self.is_filterable(field):
            return False
        self._committed[field] = set(self._draft[field])
        self._open = None
        return True

    def clear(self, field: str) -> bool:
        """Empty both states for *field* and close."""
        if not self.is_filterable(field):
            return False
        self._committed[field] = set()
        self._draft[field] = set()
        self._open = None
        return True

    def dismiss(self) -> bool:
        """Close the open dropdown without committing its draft."""
        if self._open is None:
            return False
        self._open = None
        return True

    def toggle_immediate(self, field: str, value: str) -> bool:
        """Flip *value* straight in the committed state (compact layouts).

        The draft is kept in step so a dropdown opened afterwards shows
        the same selection.
        """
        if not self.is_filterable(field):
            return False
        value = str(value)
        _toggle_member(self._committed[field], value)
        self._draft[field] = set(self._committed[field])
        return True


def _toggle_member(values: set[str], value: str) -> None:
    if value in values:
        values.discard(value)
    else:
        values.add(value)


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------

class SortController:
    """Single-column tri-state sort."""

    def __init__(self) -> None:
        self._config = SortConfig()

    @property
    def config(self) -> SortConfig:
        return self._config

    def cycle(self, field: str) -> SortConfig:
        """Advance the sort for *field*.

        A new column starts ascending.  The active column cycles
        ascending -> descending -> none -> ascending, keeping its key.
        """
        if self._config.key != field:
            self._config = SortConfig(key=field, direction="asc")
        else:
            self._config = SortConfig(
                key=field,
                direction=_NEXT_DIRECTION[self._config.direction],
            )
        return self._config

    def indicator(self, field: str | None) -> SortDirection:
        if field is None or self._config.key != field:
            return "none"
        return self._config.direction

    def reset(self) -> None:
        self._config = SortConfig()


# ---------------------------------------------------------------------------
# Tag selection
# ---------------------------------------------------------------------------

class TagSelection:
    """Set of tagged values drawn from one designated row field.

    Insertion order is kept so tag chips render in the order they were
    added.  Without a taggable field every toggle is a no-op.
    """

    def __init__(self, field: str | None = None) -> None:
        self.field = field
        self._values: dict[str, None] = {}

    @property
    def values(self) -> tuple[str, ...]:
        return tuple(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, value: object) -> bool:
        return self.is_selected(value)

    def is_selected(self, value: Any) -> bool:
        if value is None:
            return False
        return str(value) in self._values

    def toggle(self, value: Any) -> bool:
        if self.field is None or value is None:
            return False
        key = str(value)
        if key in self._values:
            del self._values[key]
        else:
            self._values[key] = None
        return True

    def toggle_row(self, row: Any) -> bool:
        """Toggle the taggable field's value of *row*."""
        if self.field is None:
            return False
        return self.toggle(row.get(self.field))

    def clear(self) -> None:
        self._values.clear()


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------

class Paginator:
    """Fixed-size page slicing over an ordered view.

    Pages are 1-based.  There is always at least one page, even when the
    view is empty, and the current page is kept within range whenever the
    row count changes.
    """

    def __init__(self, page_size: int = _DEFAULT_PAGE_SIZE) -> None:
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")
        self.page_size = page_size
        self._count = 0
        self._page = 1

    @property
    def row_count(self) -> int:
        return self._count

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self._count / self.page_size))

    @property
    def current_page(self) -> int:
        return self._page

    @property
    def offset(self) -> int:
        return (self._page - 1) * self.page_size

    @property
    def has_next(self) -> bool:
        return self._page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self._page > 1

    def update(self, row_count: int) -> None:
        """Record a new view size and clamp the current page."""
        self._count = max(0, row_count)
        self._page = min(max(1, self._page), self.total_pages)

    def next(self) -> bool:
        if not self.has_next:
            return False
        self._page += 1
        return True

    def previous(self) -> bool:
        if not self.has_previous:
            return False
        self._page -= 1
        return True

    def reset(self) -> None:
        self._page = 1

    def slice(self, rows: Sequence[Any]) -> list[Any]:
        return list(rows[self.offset:self.offset + self.page_size])

"""Column registry and small value types shared by the data-view engine."""

from dataclasses import dataclass
from typing import Any, Callable, Literal

from reflex.components.props import PropsBase

SortDirection = Literal["asc", "desc", "none"]


class ColumnDef(PropsBase):
    """Column definition for a data view.

    ``key`` names the row field shown in the column.  A column with
    ``key=None`` is the row-actions column: it is never filterable,
    sortable, searched or exported.

    ``render_cell`` is an optional ``(value, row) -> Any`` callable that
    overrides how a cell is displayed.  It is applied by
    :meth:`DataView.cell_value` and by the Reflex host to the rows it
    renders; search, filters, sort and the CSV export keep using the raw
    value.
    """

    key: str | None = None
    label: str = ""
    full_label: str | None = None
    filterable: bool = False
    sortable: bool = True
    render_cell: Callable[..., Any] | None = None

    @property
    def is_data_column(self) -> bool:
        return self.key is not None

    @property
    def header_label(self) -> str:
        """Long header text, falling back to the short label."""
        return self.full_label or self.label


@dataclass(frozen=True)
class SortConfig:
    """Single active sort column and its tri-state direction.

    ``direction="none"`` disables sorting but keeps ``key`` so the next
    cycle step starts from the same column.
    """

    key: str | None = None
    direction: SortDirection = "none"

    @property
    def is_active(self) -> bool:
        return self.key is not None and self.direction != "none"


@dataclass(frozen=True)
class CsvExport:
    """A file-shaped CSV blob ready to be offered to the user."""

    data: bytes
    filename: str = "trading_data.csv"
    mime_type: str = "text/csv"

    @property
    def text(self) -> str:
        return self.data.decode("utf-8")

"""Polars evaluation of the data-view pipeline: search -> filter -> sort.

Rows are handed to polars once as a frame with a hidden row-index
column.  Every stage is a lazy expression over that frame and only the
surviving row indexes are collected, so the caller always gets back its
own row objects in view order.

Each data field is carried twice: the raw values, used for sorting, and
a hidden text column holding :func:`stringify_value` of every value.
Search, filters and filter options only look at the text columns, so
they match exactly what the table and the CSV export display.
"""

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import polars as pl

from reflex_data_view.models import ColumnDef, SortConfig

ROW_INDEX_FIELD: str = "__row_idx__"
TEXT_FIELD_PREFIX: str = "__text__:"


def _humanize_field_name(field: str) -> str:
    """Convert a snake_case or raw field name to a human-friendly header.

    Examples:
        ``"first_name"`` -> ``"First Name"``
        ``"qty"`` -> ``"Qty"``
    """
    return field.strip("_").replace("_", " ").title()


def _text_field(field: str) -> str:
    return f"{TEXT_FIELD_PREFIX}{field}"


def _is_sortable(dtype: pl.DataType) -> bool:
    return not isinstance(dtype, (pl.Object, pl.Struct, pl.List, pl.Array))


def stringify_value(value: Any) -> str:
    """Text form of a single row value, shared by every stage and output.

    ``None`` becomes ``""`` and booleans become ``"true"`` / ``"false"``.
    Everything else goes through ``str``, so ``2`` stays ``"2"`` next to
    ``2.5`` and datetimes read ``"2024-01-01 08:14:31"``.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


# ---------------------------------------------------------------------------
# Frame construction
# ---------------------------------------------------------------------------

def build_frame(rows: Sequence[Mapping[str, Any]]) -> pl.DataFrame:
    """Build the evaluation frame for *rows*.

    The whole collection is scanned for the schema, so fields missing from
    some rows become nulls.  Columns holding mixed value types are unified
    to their supertype (usually String) instead of raising.  Missing and
    ``None`` values stay null in the text columns, so they never match a
    search or a filter.
    """
    if not rows:
        return pl.DataFrame({ROW_INDEX_FIELD: pl.Series([], dtype=pl.UInt32)})

    records = [dict(row) for row in rows]
    fields = list(dict.fromkeys(name for record in records for name in record))
    if not fields:
        return pl.DataFrame(
            {ROW_INDEX_FIELD: pl.Series(range(len(records)), dtype=pl.UInt32)}
        )

    raw = pl.DataFrame(records, infer_schema_length=None, strict=False)
    text = pl.DataFrame(
        {
            _text_field(name): [
                None if record.get(name) is None else stringify_value(record[name])
                for record in records
            ]
            for name in fields
        },
        schema={_text_field(name): pl.String for name in fields},
    )
    return pl.concat([raw, text], how="horizontal").with_row_index(ROW_INDEX_FIELD)


def _data_schema(frame: pl.DataFrame) -> dict[str, pl.DataType]:
    return {
        name: dtype
        for name, dtype in frame.schema.items()
        if name != ROW_INDEX_FIELD and not name.startswith(TEXT_FIELD_PREFIX)
    }


# ---------------------------------------------------------------------------
# Pipeline stages
# ---------------------------------------------------------------------------

def apply_search(
    lf: pl.LazyFrame,
    search_term: str,
    schema: Mapping[str, pl.DataType],
) -> pl.LazyFrame:
    """Keep rows where any field contains *search_term*, case-insensitively.

    Every data field of the frame is searched, not only the fields that
    are shown as columns.  Null values never match.
    """
    if not search_term:
        return lf
    if not schema:
        return lf.filter(pl.lit(False))

    needle = search_term.lower()
    exprs: list[pl.Expr] = [
        pl.col(_text_field(name)).str.to_lowercase().str.contains(needle, literal=True)
        for name in schema
    ]
    return lf.filter(pl.any_horizontal(exprs).fill_null(False))


def apply_filter_state(
    lf: pl.LazyFrame,
    filters: Mapping[str, Any],
    schema: Mapping[str, pl.DataType],
) -> pl.LazyFrame:
    """Apply committed per-field value sets to a LazyFrame.

    A row survives when, for every field with a non-empty allowed set,
    its stringified value is one of the allowed values.  Empty sets and
    fields the rows do not have impose no constraint.
    """
    exprs: list[pl.Expr] = []
    for field, allowed in filters.items():
        if not allowed or field not in schema:
            continue
        values = sorted(str(v) for v in allowed)
        exprs.append(pl.col(_text_field(field)).is_in(values))

    if not exprs:
        return lf

    return lf.filter(pl.all_horizontal(exprs).fill_null(False))


def apply_sort_config(
    lf: pl.LazyFrame,
    sort: SortConfig,
    schema: Mapping[str, pl.DataType],
) -> pl.LazyFrame:
    """Apply a single-column sort to a LazyFrame.

    The sort runs on the raw values and is stable in both directions, so
    rows with equal keys keep the order produced by the earlier stages.
    Nulls go last.
    """
    if not sort.is_active or sort.key not in schema:
        return lf
    if not _is_sortable(schema[sort.key]):
        return lf

    return lf.sort(
        sort.key,
        descending=sort.direction == "desc",
        nulls_last=True,
        maintain_order=True,
    )


def evaluate_view(
    frame: pl.DataFrame,
    *,
    search_term: str = "",
    filters: Mapping[str, Any] | None = None,
    sort: SortConfig | None = None,
) -> list[int]:
    """Run search -> filter -> sort over *frame* and return row indexes."""
    if frame.height == 0:
        return []

    schema = _data_schema(frame)
    lf = frame.lazy()
    lf = apply_search(lf, search_term, schema)
    if filters:
        lf = apply_filter_state(lf, filters, schema)
    if sort is not None:
        lf = apply_sort_config(lf, sort, schema)

    return lf.select(ROW_INDEX_FIELD).collect()[ROW_INDEX_FIELD].to_list()


def compute_view(
    rows: Sequence[Mapping[str, Any]],
    *,
    search_term: str = "",
    filters: Mapping[str, Any] | None = None,
    sort: SortConfig | None = None,
) -> list[Mapping[str, Any]]:
    """Return *rows* searched, filtered and sorted, as the caller's own objects.

    Args:
        rows: The full row collection.
        search_term: Free-text search; empty means no search.
        filters: ``{field: allowed values}`` committed filter state.
        sort: Active sort, or ``None``.

    Returns:
        The surviving rows in view order.
    """
    indexes = evaluate_view(
        build_frame(rows),
        search_term=search_term,
        filters=filters,
        sort=sort,
    )
    return [rows[i] for i in indexes]


def unique_values(frame: pl.DataFrame, field: str) -> list[str]:
    """Distinct stringified values of *field*, in first-appearance order.

    Used for filter dropdown options.  Always computed over the full,
    unfiltered frame so a narrowed filter can be broadened again.
    """
    text_field = _text_field(field)
    if text_field not in frame.schema:
        return []

    values = frame.select(text_field).drop_nulls().unique(maintain_order=True)
    return values[text_field].to_list()


# ---------------------------------------------------------------------------
# File loading and column inference
# ---------------------------------------------------------------------------

def scan_file(path: Path) -> pl.LazyFrame:
    """Scan a tabular data file into a LazyFrame.

    Auto-detects the file format from the extension:

    * ``.csv`` / ``.tsv`` -- ``pl.scan_csv()`` with every column read as
      String, so values like ``"50/100"`` or ``"2,700.00"`` stay verbatim.
    * ``.parquet`` / ``.pq`` -- ``pl.scan_parquet()``.
    * ``.json`` -- ``pl.read_json().lazy()`` (no streaming scan).
    * ``.ndjson`` / ``.jsonl`` -- ``pl.scan_ndjson()``.
    * ``.ipc`` / ``.arrow`` / ``.feather`` -- ``pl.scan_ipc()``.

    Raises:
        FileNotFoundError: If *path* does not exist.
        ValueError: If the file extension is not recognised.
    """
    path = Path(path).resolve()
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    suffix = path.suffix.lower()

    if suffix == ".csv":
        return pl.scan_csv(path, infer_schema_length=0)
    if suffix == ".tsv":
        return pl.scan_csv(path, separator="\t", infer_schema_length=0)
    if suffix in (".parquet", ".pq"):
        return pl.scan_parquet(path)
    if suffix == ".json":
        return pl.read_json(path).lazy()
    if suffix in (".ndjson", ".jsonl"):
        return pl.scan_ndjson(path)
    if suffix in (".ipc", ".arrow", ".feather"):
        return pl.scan_ipc(path)

    raise ValueError(
        f"Unsupported file extension: {suffix!r}. "
        "Supported: .csv, .tsv, .parquet, .pq, .json, .ndjson, .jsonl, "
        ".ipc, .arrow, .feather"
    )


def load_rows(path: Path) -> list[dict[str, Any]]:
    """Read a whole data file into a list of row dicts."""
    return scan_file(path).collect().to_dicts()


def build_column_defs(
    fields: Sequence[str],
    *,
    filterable_fields: Sequence[str] = (),
    labels: Mapping[str, str] | None = None,
    with_actions: bool = False,
) -> list[ColumnDef]:
    """Build a :class:`ColumnDef` per field, with humanized labels.

    Args:
        fields: Field names in display order.
        filterable_fields: Fields that get a filter dropdown.
        labels: Optional ``{field: label}`` overrides.
        with_actions: Append a trailing ``key=None`` actions column.
    """
    if labels is None:
        labels = {}

    column_defs: list[ColumnDef] = [
        ColumnDef(
            key=name,
            label=labels.get(name, _humanize_field_name(name)),
            filterable=name in filterable_fields,
        )
        for name in fields
    ]
    if with_actions:
        column_defs.append(ColumnDef(key=None, label="Actions", sortable=False))
    return column_defs

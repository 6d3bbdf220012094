"""CSV export of a data view.

Always encodes the *full* filtered and sorted view, never just the
current page.  The quoting rules are spreadsheet-oriented:

* a field containing a comma, a double quote or a newline is wrapped in
  double quotes, with inner double quotes doubled;
* fields named in ``quoted_fields`` (the ``"executed/total"`` quantity)
  are always wrapped and prefixed with ``'`` inside the quotes, so a
  spreadsheet does not read ``50/100`` as a date or a fraction.
"""

from collections.abc import Collection, Mapping, Sequence
from typing import Any

from reflex_data_view.models import ColumnDef, CsvExport
from reflex_data_view.polars_utils import stringify_value

_DEFAULT_QUOTED_FIELDS: tuple[str, ...] = ("qty",)
_DEFAULT_FILENAME: str = "trading_data.csv"
_ESCAPE_TRIGGERS: tuple[str, ...] = (",", '"', "\n")


def escape_field(value: Any, *, force_text: bool = False) -> str:
    """Escape one CSV field.

    Examples:
        ``'He said "hi", ok'`` -> ``'"He said ""hi"", ok"'``
        ``"50/100"`` with ``force_text=True`` -> ``"\\"'50/100\\""``
    """
    text = stringify_value(value)
    if force_text:
        return '"\'' + text.replace('"', '""') + '"'
    if any(trigger in text for trigger in _ESCAPE_TRIGGERS):
        return '"' + text.replace('"', '""') + '"'
    return text


def export_columns(columns: Sequence[ColumnDef]) -> list[ColumnDef]:
    """Data columns that appear in the export (the actions column is dropped)."""
    return [c for c in columns if c.is_data_column]


def encode_csv(
    rows: Sequence[Mapping[str, Any]],
    columns: Sequence[ColumnDef],
    *,
    quoted_fields: Collection[str] = _DEFAULT_QUOTED_FIELDS,
) -> str:
    """Encode *rows* as CSV text, one column per data column.

    The header uses each column's short ``label``.  Lines are joined with
    ``\\n`` and there is no trailing newline.
    """
    data_columns = export_columns(columns)
    lines: list[str] = [",".join(escape_field(c.label) for c in data_columns)]
    for row in rows:
        lines.append(
            ",".join(
                escape_field(row.get(c.key), force_text=c.key in quoted_fields)
                for c in data_columns
            )
        )
    return "\n".join(lines)


def export_csv(
    rows: Sequence[Mapping[str, Any]],
    columns: Sequence[ColumnDef],
    *,
    quoted_fields: Collection[str] = _DEFAULT_QUOTED_FIELDS,
    filename: str = _DEFAULT_FILENAME,
) -> CsvExport:
    """Encode *rows* and wrap the result as a ``text/csv`` file blob."""
    text = encode_csv(rows, columns, quoted_fields=quoted_fields)
    return CsvExport(data=text.encode("utf-8"), filename=filename)

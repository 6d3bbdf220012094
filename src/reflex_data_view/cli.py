"""CLI for reflex-data-view -- export or browse tabular files.

Usage::

    # Filter and sort a CSV, write the spreadsheet-safe export
    reflex-data-view export orders.csv --filter side=Buy --sort price -o trading_data.csv

    # Search across every field and print to stdout
    reflex-data-view export orders.parquet --search mrf

    # Browse a file in the Reflex data view
    reflex-data-view view orders.csv --filterable side --filterable product

CSV and TSV files are read with every column as text, so values such as
``50/100`` or ``2,700.00`` round-trip untouched.
"""

import os
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import Annotated, Optional

import typer

from reflex_data_view.controllers import _DEFAULT_PAGE_SIZE
from reflex_data_view.csv_export import _DEFAULT_QUOTED_FIELDS
from reflex_data_view.polars_utils import build_column_defs, load_rows
from reflex_data_view.view import DataView

app = typer.Typer(
    name="reflex-data-view",
    help="Search, filter, sort and export tabular data files.",
    no_args_is_help=True,
)


def _parse_filters(raw: list[str]) -> dict[str, list[str]]:
    """Parse repeated ``field=value`` options into ``{field: [values]}``.

    Values keep their first-seen order; repeats are dropped.
    """
    filters: dict[str, list[str]] = {}
    for item in raw:
        field, sep, value = item.partition("=")
        if not sep or not field:
            raise typer.BadParameter(
                f"expected FIELD=VALUE, got {item!r}", param_hint="--filter"
            )
        values = filters.setdefault(field, [])
        if value not in values:
            values.append(value)
    return filters


def _load_or_exit(file: Path) -> list[dict]:
    try:
        return load_rows(file)
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)


@app.command()
def export(
    file: Annotated[Path, typer.Argument(help="Path to the data file (CSV, TSV, Parquet, JSON, etc.)")],
    search: Annotated[str, typer.Option("--search", "-s", help="Case-insensitive text searched in every field")] = "",
    filter_: Annotated[Optional[list[str]], typer.Option("--filter", "-f", help="FIELD=VALUE, repeatable; values of one field are OR-ed")] = None,
    sort: Annotated[Optional[str], typer.Option("--sort", help="Field to sort by")] = None,
    descending: Annotated[bool, typer.Option("--descending", "-d", help="Sort descending")] = False,
    quote_field: Annotated[Optional[list[str]], typer.Option("--quote-field", "-q", help="Field always exported as quoted text")] = None,
    output: Annotated[str, typer.Option("--output", "-o", help="Output path, or '-' for stdout")] = "-",
) -> None:
    """Export a file through the data-view pipeline as CSV.

    Applies search, then filters, then a stable sort, exactly like the
    interactive view, and encodes the whole result.
    """
    filters = _parse_filters(filter_ or [])
    rows = _load_or_exit(file)
    fields = list(rows[0].keys()) if rows else []

    view = DataView(
        rows,
        build_column_defs(fields),
        unique_identifier=fields[0] if fields else "",
        filterable_fields=list(filters),
        csv_quoted_fields=quote_field if quote_field is not None else _DEFAULT_QUOTED_FIELDS,
    )
    view.set_search(search)
    for field, values in filters.items():
        view.open_filter(field)
        for value in values:
            view.toggle_filter_value(field, value)
        view.apply_filter(field)
    if sort:
        view.cycle_sort(sort)
        if descending:
            view.cycle_sort(sort)

    text = view.to_csv()
    if output == "-":
        typer.echo(text)
    else:
        Path(output).write_text(text, encoding="utf-8")
        typer.echo(f"Wrote {view.row_count} rows to {output}", err=True)


def _build_app_code(
    file_path: Path,
    id_field: str | None,
    filterable: list[str],
    taggable: str | None,
    page_size: int,
    title: str,
) -> str:
    """Generate the Reflex app module source code."""
    abs_path = str(file_path.resolve())
    # Escape backslashes and quotes for embedding in Python string literal
    safe_path = abs_path.replace("\\", "\\\\").replace('"', '\\"')

    # Use placeholder substitution to avoid escaping nightmares.
    template = _APP_TEMPLATE
    template = template.replace("__FILENAME__", file_path.name)
    template = template.replace("__SAFE_PATH__", safe_path)
    template = template.replace("__ID_FIELD__", repr(id_field))
    template = template.replace("__FILTERABLE__", repr(filterable))
    template = template.replace("__TAGGABLE__", repr(taggable))
    template = template.replace("__PAGE_SIZE__", str(page_size))
    template = template.replace("__TITLE__", title)
    return template


# ---------------------------------------------------------------------------
# App template -- uses __PLACEHOLDER__ tokens for dynamic parts.
# ---------------------------------------------------------------------------

_APP_TEMPLATE = '''"""Auto-generated viewer app for: __FILENAME__"""

from pathlib import Path

import reflex as rx

from reflex_data_view import (
    DataViewMixin,
    build_column_defs,
    data_view_grid,
    load_rows,
)


class ViewerState(DataViewMixin, rx.State):
    """Viewer state using DataViewMixin."""

    def load_data(self):
        rows = load_rows(Path("__SAFE_PATH__"))
        fields = list(rows[0].keys()) if rows else []
        id_field = __ID_FIELD__ or (fields[0] if fields else "")
        self.set_data_view(
            rows,
            build_column_defs(fields, filterable_fields=__FILTERABLE__, with_actions=True),
            unique_identifier=id_field,
            taggable_field=__TAGGABLE__,
            page_size=__PAGE_SIZE__,
        )


def index() -> rx.Component:
    return rx.box(
        rx.heading("__TITLE__", size="6", margin_bottom="0.5em"),
        rx.cond(
            ViewerState.view_grid_loaded,
            data_view_grid(ViewerState),
            rx.text("Loading...", color="var(--gray-9)"),
        ),
        padding="2em",
        max_width="1400px",
        margin="0 auto",
    )


app = rx.App()
app.add_page(index, on_load=ViewerState.load_data)
'''


@app.command()
def view(
    file: Annotated[Path, typer.Argument(help="Path to the data file (CSV, TSV, Parquet, JSON, etc.)")],
    id_field: Annotated[Optional[str], typer.Option("--id-field", help="Unique row identifier field (default: first field)")] = None,
    filterable: Annotated[Optional[list[str]], typer.Option("--filterable", "-f", help="Field with a filter dropdown, repeatable")] = None,
    taggable: Annotated[Optional[str], typer.Option("--taggable", help="Field whose values can be tagged")] = None,
    page_size: Annotated[int, typer.Option("--page-size", "-n", min=1, help="Rows per page")] = _DEFAULT_PAGE_SIZE,
    port: Annotated[int, typer.Option("--port", "-p", help="Port for the Reflex frontend")] = 3000,
    title: Annotated[Optional[str], typer.Option("--title", "-t", help="Page title")] = None,
) -> None:
    """Browse a data file in the interactive data view."""
    file = file.resolve()
    if not file.exists():
        typer.echo(f"Error: file not found: {file}", err=True)
        raise typer.Exit(code=1)

    if title is None:
        title = f"{file.name} -- Data View"

    app_code = _build_app_code(file, id_field, filterable or [], taggable, page_size, title)

    # Create a temporary Reflex app directory.
    tmp_dir = Path(tempfile.mkdtemp(prefix="data_view_"))
    app_name = "viewer_app"
    app_pkg = tmp_dir / app_name
    app_pkg.mkdir()
    (app_pkg / "__init__.py").write_text("")
    (app_pkg / f"{app_name}.py").write_text(app_code)

    rxconfig_code = f"""import reflex as rx
config = rx.Config(app_name="{app_name}", frontend_port={port})
"""
    (tmp_dir / "rxconfig.py").write_text(rxconfig_code)

    typer.echo(f"Launching viewer for: {file}")
    typer.echo(f"Page size: {page_size} | Port: {port}")

    os.chdir(tmp_dir)

    # Step 1: initialise the Reflex project (creates .web/ with node_modules).
    # We use subprocess because reflex's CLI calls sys.exit() on completion.
    typer.echo("Initializing Reflex project...")
    subprocess.run(
        [sys.executable, "-m", "reflex", "init"],
        cwd=str(tmp_dir),
        check=True,
    )

    # Step 2: run the app via exec (replaces this process).
    typer.echo("Starting viewer...")
    os.execvp(sys.executable, [sys.executable, "-m", "reflex", "run"])


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()

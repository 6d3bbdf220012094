"""reflex-data-view – searchable, filterable, sortable tabular views for Reflex.

The engine (:class:`DataView`) is plain Python over polars and can be used
on its own::

    pip install reflex-data-view

Inside a Reflex app, inherit from :class:`DataViewMixin` and render with
:func:`data_view_grid`.
"""

from reflex_data_view.controllers import FilterStaging, Paginator, SortController, TagSelection
from reflex_data_view.csv_export import encode_csv, escape_field, export_csv
from reflex_data_view.models import ColumnDef, CsvExport, SortConfig, SortDirection
from reflex_data_view.polars_utils import (
    apply_filter_state,
    apply_search,
    apply_sort_config,
    build_column_defs,
    build_frame,
    compute_view,
    load_rows,
    scan_file,
    unique_values,
)
from reflex_data_view.view import DataView
from reflex_data_view.view_grid import DataViewMixin, data_view_filter_panel, data_view_grid

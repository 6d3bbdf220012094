"""Example Reflex app demonstrating the data view on an open-orders table.

Two tabs:
  1. Open Orders -- the full table with column dropdown filters, tri-state
     sort, ticker tags, pagination and CSV download.
  2. Compact -- the same state rendered with the immediate-commit filter
     panel used on small screens.
"""

from collections.abc import Mapping
from typing import Any

import reflex as rx

from reflex_data_view import ColumnDef, DataViewMixin, data_view_filter_panel, data_view_grid

# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------

OPEN_ORDERS: list[dict[str, Any]] = [
    {
        "time": "08:14:31", "client": "AAA001", "ticker": "RELIANCE", "hasSignal": True,
        "side": "Buy", "product": "CNC", "qty": "50/100", "price": "250.50",
    },
    {
        "time": "08:14:31", "client": "AAA003", "ticker": "MRF", "hasSignal": False,
        "side": "Buy", "product": "NRML", "qty": "10/20", "price": "2,700.00",
    },
    {
        "time": "08:14:31", "client": "AAA002", "ticker": "ASIANPAINT", "hasSignal": True,
        "side": "Buy", "product": "NRML", "qty": "10/30", "price": "1,500.60",
    },
    {
        "time": "08:14:31", "client": "AAA002", "ticker": "TATAINVEST", "hasSignal": False,
        "side": "Sell", "product": "INTRADAY", "qty": "10/10", "price": "2,300.10",
    },
]

ORDER_COLUMNS: list[ColumnDef] = [
    ColumnDef(key="time", label="Time", filterable=True),
    ColumnDef(key="client", label="Client"),
    ColumnDef(key="ticker", label="Ticker"),
    ColumnDef(key="side", label="Side", filterable=True),
    ColumnDef(key="product", label="Product", filterable=True),
    ColumnDef(key="qty", label="Qty", full_label="Qty (Executed/Total)"),
    ColumnDef(key="price", label="Price", full_label="LTP"),
    ColumnDef(key=None, label="Actions", sortable=False),
]

TRADER_PROFILE: dict[str, str] = {"name": "Demo Trader", "initials": "DT"}


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------

class OrdersState(DataViewMixin, rx.State):
    """Open-orders state backed by DataViewMixin."""

    last_action: str = ""

    def load_orders(self) -> None:
        self.set_data_view(
            OPEN_ORDERS,
            ORDER_COLUMNS,
            unique_identifier="ticker",
            taggable_field="ticker",
            profile=TRADER_PROFILE,
            page_size=10,
        )

    def on_view_grid_row_action(self, row: Mapping[str, Any], action: str) -> Any:
        self.last_action = f"{action}: {row['ticker']} {row['side']} {row['qty']} @ {row['price']}"


# ---------------------------------------------------------------------------
# UI
# ---------------------------------------------------------------------------

def _profile_badge() -> rx.Component:
    return rx.hstack(
        rx.avatar(fallback=OrdersState.view_grid_profile["initials"], size="2"),
        rx.text(OrdersState.view_grid_profile["name"], weight="medium"),
        align="center",
        spacing="2",
    )


def _status_bar() -> rx.Component:
    return rx.hstack(
        rx.text(OrdersState.view_grid_stats, size="2", color="var(--gray-9)"),
        rx.spacer(),
        rx.cond(
            OrdersState.last_action != "",
            rx.text(OrdersState.last_action, size="2", color="var(--gray-11)"),
        ),
        width="100%",
    )


def orders_tab() -> rx.Component:
    return rx.vstack(
        data_view_grid(OrdersState, search_placeholder="Search orders..."),
        _status_bar(),
        padding_top="1em",
        width="100%",
    )


def compact_tab() -> rx.Component:
    return rx.hstack(
        data_view_filter_panel(OrdersState),
        rx.box(
            data_view_grid(OrdersState, show_download=False),
            flex="1",
        ),
        align="start",
        spacing="4",
        padding_top="1em",
        width="100%",
    )


def index() -> rx.Component:
    """Render the main page with tabs."""
    return rx.box(
        rx.hstack(
            rx.heading("Open Orders", size="6"),
            rx.spacer(),
            _profile_badge(),
            align="center",
            margin_bottom="1em",
        ),
        rx.cond(
            OrdersState.view_grid_loaded,
            rx.tabs.root(
                rx.tabs.list(
                    rx.tabs.trigger("Open Orders", value="orders"),
                    rx.tabs.trigger("Compact", value="compact"),
                ),
                rx.tabs.content(orders_tab(), value="orders"),
                rx.tabs.content(compact_tab(), value="compact"),
                default_value="orders",
            ),
            rx.text("Loading...", color="var(--gray-9)"),
        ),
        padding="2em",
        max_width="1400px",
        margin="0 auto",
    )


app = rx.App()
app.add_page(index, on_load=OrdersState.load_orders)

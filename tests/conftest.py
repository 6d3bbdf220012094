import pytest

from reflex_data_view import ColumnDef, DataView


@pytest.fixture
def trade_rows():
    """Open orders, in the shape the trading dashboard feeds the view."""
    return [
        {
            "time": "08:14:31",
            "client": "AAA001",
            "ticker": "RELIANCE",
            "hasSignal": True,
            "side": "Buy",
            "product": "CNC",
            "qty": "50/100",
            "price": "250.50",
        },
        {
            "time": "08:14:31",
            "client": "AAA003",
            "ticker": "MRF",
            "hasSignal": False,
            "side": "Buy",
            "product": "NRML",
            "qty": "10/20",
            "price": "2,700.00",
        },
        {
            "time": "08:14:31",
            "client": "AAA002",
            "ticker": "ASIANPAINT",
            "hasSignal": True,
            "side": "Buy",
            "product": "NRML",
            "qty": "10/30",
            "price": "1,500.60",
        },
        {
            "time": "08:14:31",
            "client": "AAA002",
            "ticker": "TATAINVEST",
            "hasSignal": False,
            "side": "Sell",
            "product": "INTRADAY",
            "qty": "10/10",
            "price": "2,300.10",
        },
    ]


@pytest.fixture
def trade_columns():
    return [
        ColumnDef(key="time", label="Time", filterable=True),
        ColumnDef(key="client", label="Client"),
        ColumnDef(key="ticker", label="Ticker"),
        ColumnDef(key="side", label="Side", filterable=True),
        ColumnDef(key="product", label="Product", filterable=True),
        ColumnDef(key="qty", label="Qty", full_label="Qty (Executed/Total)"),
        ColumnDef(key="price", label="Price"),
        ColumnDef(key=None, label="Actions", sortable=False),
    ]


@pytest.fixture
def trade_view(trade_rows, trade_columns):
    return DataView(
        trade_rows,
        trade_columns,
        unique_identifier="ticker",
        taggable_field="ticker",
    )


@pytest.fixture
def numbered_rows():
    """25 rows with a numeric key and an alternating side."""
    return [
        {"id": f"R{i:02d}", "n": i, "side": "Buy" if i % 2 else "Sell"}
        for i in range(1, 26)
    ]


@pytest.fixture
def numbered_view(numbered_rows):
    columns = [
        ColumnDef(key="id", label="Id"),
        ColumnDef(key="n", label="N"),
        ColumnDef(key="side", label="Side", filterable=True),
    ]
    return DataView(numbered_rows, columns, unique_identifier="id", page_size=10)

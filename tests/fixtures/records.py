"""
Record types and schema rows shared by the table binding tests.
"""
import datetime
from dataclasses import dataclass

import pytest
from tablemeta import field, uint

WIDGET_COLUMNS = [
    ('id', 'int(11)', 'NO', 'PRI', None, 'auto_increment'),
    ('value', 'tinyint(1)', 'NO', '', None, ''),
    ('name', 'varchar(255)', 'NO', '', None, ''),
    ]

ORDER_COLUMNS = [
    ('id', 'int(10) unsigned', 'NO', 'PRI', None, 'auto_increment'),
    ('customer', 'varchar(64)', 'NO', 'MUL', None, ''),
    ('order_total', 'double', 'NO', '', '0', ''),
    ('paid', 'tinyint(1)', 'NO', '', '0', ''),
    ('address', 'text', 'YES', '', None, ''),
    ('note', 'varchar(255)', 'YES', '', None, ''),
    ('created', 'timestamp', 'NO', '', 'CURRENT_TIMESTAMP', 'DEFAULT_GENERATED'),
    ]

BASKET_COLUMNS = [
    ('id', 'int(11)', 'NO', 'PRI', None, 'auto_increment'),
    ('items', 'text', 'NO', '', None, ''),
    ('stock', 'text', 'NO', '', None, ''),
    ('tags', 'text', 'NO', '', None, ''),
    ('cart', 'text', 'YES', '', None, ''),
    ]


@dataclass
class Widget:
    id: int = 0
    value: bool = False
    name: str = ''


@dataclass
class Address:
    street: str = ''
    city: str = ''
    zip_code: str = ''


@dataclass
class Order:
    id: uint = 0
    customer: str = ''
    total: float = field(rename_to='order_total', default=0.0)
    paid: bool = False
    address: Address | None = None
    note: str | None = None
    created: datetime.datetime = field(tag='no-insert,no-update', default=None)


@dataclass
class LineItem:
    sku: str = ''
    qty: int = 0


@dataclass
class Cart:
    owner: str = ''
    lines: list[LineItem] = field(default_factory=list)


@dataclass
class Basket:
    id: int = 0
    items: list[LineItem] = field(default_factory=list)
    stock: dict[str, LineItem] = field(default_factory=dict)
    tags: dict = field(default_factory=dict)
    cart: Cart | None = None


@pytest.fixture
def widget_columns():
    return list(WIDGET_COLUMNS)


@pytest.fixture
def order_columns():
    return list(ORDER_COLUMNS)

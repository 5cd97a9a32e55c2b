import pytest
import tablemeta as tm
from tablemeta import TableMeta, get_table_binding
from tablemeta.exceptions import SchemaMismatchError, UnknownColumnError

from tests.fixtures.records import Address, Order, Widget

pytestmark = pytest.mark.mysql


def test_build_widget_binding(mysql_conn):
    meta = TableMeta()
    binding = meta.fetch(mysql_conn, 'widget', Widget())
    assert [c.field for c in binding.columns] == ['id', 'value', 'name']
    assert [c.field for c in binding.insert_columns] == ['value', 'name']
    assert [c.field for c in binding.update_columns] == ['value', 'name']
    assert binding.warn == ''
    assert binding.columns[0].is_identity
    assert binding.columns[0].indexes[0].key_name == 'PRIMARY'


def test_build_orders_binding(mysql_conn):
    binding = tm.build_binding(mysql_conn, 'orders', Order)
    assert binding.warn == ''
    by_name = {c.field: c for c in binding.columns}
    assert [ind.key_name for ind in by_name['customer'].indexes] == ['ix_orders_customer']
    assert 'created' not in [c.field for c in binding.insert_columns]


def test_schema_mismatch(mysql_conn):
    mysql_conn.execute('alter table widget add column extra int not null default 0')
    meta = TableMeta()
    with pytest.raises(SchemaMismatchError):
        meta.fetch(mysql_conn, 'widget', Widget)
    assert meta.name == ''


def test_select_existing_rows(mysql_conn):
    binding = get_table_binding(mysql_conn, 'widget', Widget)
    w = binding.select_by_column(Widget(), 'name', 'Bob')
    assert w.value is False
    assert binding.select_by_id(Widget(), w.id).name == 'Bob'
    assert binding.select_by_id(Widget(), 999) is None

    widgets = binding.select_many(Widget, 'WHERE value = ? ORDER BY name', True)
    assert [w.name for w in widgets] == ['Alice', 'Charlie']

    with pytest.raises(UnknownColumnError):
        binding.select_by_column(Widget(), 'nope', 1)


def test_insert_update_save(mysql_conn):
    binding = get_table_binding(mysql_conn, 'widget', Widget)
    w = Widget(value=True, name='Dora')
    new_id = binding.insert(w)
    assert new_id > 0
    assert w.id == new_id

    w.name = 'Dora 100%'
    binding.save(w)
    assert binding.select_by_id(Widget(), new_id).name == 'Dora 100%'

    binding.update(Widget(id=99999, name='ghost'))


def test_struct_round_trip(mysql_conn):
    binding = get_table_binding(mysql_conn, 'orders', Order)
    address = Address(street='1 Main', city='Springfield', zip_code='01101')
    order = Order(customer='acme', total=19.99, paid=True, address=address)
    new_id = binding.save(order)

    loaded = binding.select_by_id(Order(), new_id)
    assert loaded.address == address
    assert loaded.total == pytest.approx(19.99)
    assert loaded.paid is True
    assert loaded.note is None
    assert loaded.created is not None


def test_delete_not_implemented(mysql_conn):
    binding = get_table_binding(mysql_conn, 'widget', Widget)
    with pytest.raises(NotImplementedError):
        binding.delete(Widget(id=1))
    assert len(binding.select_many(Widget)) == 3

"""Property-based tests for store durability across restarts.

Property: after N sequential appends, a freshly opened store over the same
file returns the same N orders, in submission order, with identifiers and
totals exactly as assigned at append time.
"""

import json
import tempfile
from pathlib import Path

from hypothesis import given, settings, strategies as st
from hypothesis.strategies import composite

from order_desk.order.store import OrderStore

text_field = st.text(
    alphabet=st.characters(blacklist_categories=('Cs', 'Cc')),
    min_size=1, max_size=25,
).filter(lambda s: s.strip())


@composite
def submission(draw):
    return {
        'customerName': draw(text_field),
        'email': draw(text_field),
        'phone': draw(text_field),
        'items': draw(st.lists(
            st.fixed_dictionaries({
                'name': text_field,
                'quantity': st.integers(min_value=1, max_value=99),
                'price': st.one_of(
                    st.integers(min_value=0, max_value=10000),
                    st.floats(min_value=0, max_value=10000, allow_nan=False, allow_infinity=False),
                ),
            }),
            min_size=1, max_size=4,
        )),
    }


class TestStoreReloadConsistency:

    @given(submissions=st.lists(submission(), min_size=1, max_size=6))
    @settings(max_examples=40, deadline=None, database=None)
    def test_reload_reproduces_collection(self, submissions):
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / 'orders.json'
            store = OrderStore(path)

            appended = []
            for expected_count, payload in enumerate(submissions, start=1):
                order, count = store.append(payload)
                assert count == expected_count
                appended.append(order)

            reloaded = OrderStore(path).load_all()

            assert reloaded == appended
            assert len({order.id for order in reloaded}) == len(submissions)
            assert [order.customer_name for order in reloaded] == [
                payload['customerName'].strip() for payload in submissions
            ]

    @given(submissions=st.lists(submission(), min_size=1, max_size=4))
    @settings(max_examples=25, deadline=None, database=None)
    def test_file_matches_serialized_orders(self, submissions):
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / 'orders.json'
            store = OrderStore(path)
            appended = [store.append(payload)[0] for payload in submissions]

            on_disk = json.loads(path.read_text(encoding='utf-8'))
            assert on_disk == [order.to_dict() for order in appended]

"""
Unit tests for loading collector account files
"""
import json

import pytest

from src.data_loading.accounts import (
    category_file_key,
    load_accounts,
    load_category_file,
    parse_account_record,
    parse_transaction,
)
from src.graph_construction.categories import Category
from src.graph_construction.errors import DataIntegrityError, UnknownCategoryError
from src.graph_construction.models import OperationKind


def make_entry(account, ty='Identified', name='Someone', extra=(), principal=None, transactions=()):
    return {
        'name': name,
        'ty': ty,
        'principal': principal,
        'account': account,
        'extra_accounts': list(extra),
        'transactions': list(transactions),
        'oldest_tx_id': 0,
    }


def make_tx(from_id, to_id, amount=500_000_000, op_type='Transfer', tx_id=1):
    return {
        'op_type': op_type,
        'from': from_id,
        'to': to_id,
        'id': tx_id,
        'timestamp': 1_700_000_000_000_000_000,
        'amount': amount,
    }


def write_collection(directory, key, entries):
    path = directory / f'account_transactions_{key}.json'
    with open(path, 'w') as f:
        json.dump(entries, f)
    return path


@pytest.mark.unit
class TestParseTransaction:
    """Tests for parse_transaction function"""

    def test_transfer(self):
        tx = parse_transaction(make_tx('a', 'b', amount=7, tx_id=42))

        assert tx.operation_kind == OperationKind.TRANSFER
        assert (tx.from_id, tx.to_id, tx.amount, tx.tx_id) == ('a', 'b', 7, 42)

    def test_missing_op_type_raises(self):
        """Test a transaction without op_type is rejected, not read as a transfer"""
        obj = make_tx('a', 'b')
        del obj['op_type']

        with pytest.raises(DataIntegrityError):
            parse_transaction(obj)

    def test_null_op_type_raises(self):
        with pytest.raises(DataIntegrityError):
            parse_transaction(make_tx('a', 'b', op_type=None))

    def test_mint_without_sender(self):
        tx = parse_transaction(make_tx(None, 'b', op_type='Mint'))

        assert tx.operation_kind == OperationKind.MINT
        assert tx.from_id is None

    def test_empty_endpoint_is_none(self):
        tx = parse_transaction(make_tx('', 'b', op_type='Mint'))

        assert tx.from_id is None

    def test_unknown_op_type_raises(self):
        with pytest.raises(DataIntegrityError):
            parse_transaction(make_tx('a', 'b', op_type='Stake'))

    def test_negative_amount_raises(self):
        with pytest.raises(DataIntegrityError):
            parse_transaction(make_tx('a', 'b', amount=-1))


@pytest.mark.unit
class TestParseAccountRecord:
    """Tests for parse_account_record function"""

    def test_account_pair_with_balance(self):
        record = parse_account_record(make_entry(['main1', 1_000], extra=[['alias1', 20], 'alias2']))

        assert record.account_id == 'main1'
        assert record.alias_ids == frozenset({'alias1', 'alias2'})
        assert record.balances == {'main1': 1_000, 'alias1': 20}

    def test_account_as_string(self):
        record = parse_account_record(make_entry('main1'))

        assert record.account_id == 'main1'
        assert record.balances == {}

    def test_collector_category_name(self):
        record = parse_account_record(make_entry('main1', ty='Cex'))

        assert record.category == Category.EXCHANGE

    def test_principal_becomes_alias(self):
        record = parse_account_record(make_entry('main1', principal='principal-id'))

        assert 'principal-id' in record.alias_ids

    def test_principal_equal_to_account_ignored(self):
        record = parse_account_record(make_entry('main1', principal='main1'))

        assert record.alias_ids == frozenset()

    def test_display_name_fallback(self):
        record = parse_account_record(make_entry('abcdefgh', name=''))

        assert record.display_name == 'abcde'

    def test_transactions_parsed_in_order(self):
        record = parse_account_record(make_entry('m', transactions=[
            make_tx('m', 'x', tx_id=1),
            make_tx('y', 'm', tx_id=2),
        ]))

        assert [tx.tx_id for tx in record.transactions] == [1, 2]

    def test_missing_account_raises(self):
        with pytest.raises(DataIntegrityError):
            parse_account_record(make_entry(None))

    def test_unknown_category_raises(self):
        with pytest.raises(UnknownCategoryError):
            parse_account_record(make_entry('main1', ty='Bank'))

    def test_malformed_account_entry_raises(self):
        with pytest.raises(DataIntegrityError):
            parse_account_record(make_entry({'id': 'main1'}))


@pytest.mark.unit
class TestLoadAccounts:
    """Tests for loading collections from a directory"""

    def test_category_file_keys(self):
        assert category_file_key(Category.EXCHANGE) == 'cex'
        assert category_file_key(Category.PARTICIPANT_OF_NETWORK_PARTICIPANT) == 'snsparticipant'

    def test_load_category_file(self, tmp_path):
        path = write_collection(tmp_path, 'cex', [make_entry('c1', ty='Cex')])

        assert load_category_file(str(path))[0]['account'] == 'c1'

    def test_load_category_file_rejects_non_list(self, tmp_path):
        path = tmp_path / 'account_transactions_cex.json'
        path.write_text('{"account": "c1"}')

        with pytest.raises(DataIntegrityError):
            load_category_file(str(path))

    def test_loads_in_category_order(self, tmp_path):
        write_collection(tmp_path, 'identified', [make_entry('i1'), make_entry('i2')])
        write_collection(tmp_path, 'cex', [make_entry('c1', ty='Cex')])
        write_collection(tmp_path, 'defi', [make_entry('d1', ty='Defi')])

        records = load_accounts(str(tmp_path))

        assert [r.account_id for r in records] == ['c1', 'd1', 'i1', 'i2']

    def test_selected_categories(self, tmp_path):
        write_collection(tmp_path, 'identified', [make_entry('i1')])
        write_collection(tmp_path, 'cex', [make_entry('c1', ty='Cex')])

        records = load_accounts(str(tmp_path), categories=['identified'])

        assert [r.account_id for r in records] == ['i1']

    def test_missing_files_skipped(self, tmp_path):
        records = load_accounts(str(tmp_path), categories=['cex', 'foundation'])

        assert records == []

    def test_unknown_category_selection_raises(self, tmp_path):
        with pytest.raises(UnknownCategoryError):
            load_accounts(str(tmp_path), categories=['bank'])


@pytest.mark.integration
def test_loaded_accounts_build_graph(tmp_path):
    """Test collections on disk flow through to a graph"""
    from src.graph_construction import build_graph

    write_collection(tmp_path, 'identified', [
        make_entry('x', extra=['x-sub'], transactions=[make_tx('x-sub', 'y', tx_id=1)]),
        make_entry('y', transactions=[make_tx('x-sub', 'y', tx_id=1), make_tx('y', 'dex', tx_id=2)]),
        make_entry('w', transactions=[make_tx('dex', 'w', tx_id=3)]),
    ])
    write_collection(tmp_path, 'defi', [make_entry('dex', ty='Defi')])

    graph = build_graph(load_accounts(str(tmp_path)))
    edges = {edge.pair: edge for edge in graph.edges}

    assert [n.id for n in graph.nodes] == ['x', 'y', 'w']
    assert edges[('x', 'y')].direction.value == 'Send'
    assert edges[('w', 'y')].connector_ids == ('dex',)

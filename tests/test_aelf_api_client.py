"""
Tests for the AElf node web API client against an httpx mock transport.
"""

import httpx
import pytest

from chain_scanner.block_indexer.types import ChainStatus
from chain_scanner.providers.aelf_api_client import AElfAPIClient, AElfAPIError
from chain_scanner.utils.listener_filters import contract_listener

BASE_URL = 'http://node.test'


def _block(height, tx_count):
    return {
        'BlockHash': f"hash-{height}",
        'Header': {'Height': str(height), 'PreviousBlockHash': f"hash-{height - 1}"},
        'Body': {'TransactionsCount': tx_count},
    }


def _tx(index, to='other'):
    return {
        'TransactionId': f"tx-{index}",
        'Status': 'MINED',
        'Transaction': {'From': 'sender', 'To': to, 'MethodName': 'Transfer'},
        'Logs': [],
    }


def _make_client(handler, page_size=2):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AElfAPIClient(base_url=BASE_URL + '/', page_size=page_size, client=http_client)


class TestChainStatus:

    @pytest.mark.asyncio
    async def test_parses_heights(self):
        def handler(request):
            assert request.url.path == '/api/blockChain/chainStatus'
            return httpx.Response(200, json={'BestChainHeight': '120', 'LastIrreversibleBlockHeight': 100})

        client = _make_client(handler)
        assert await client.chain_status() == ChainStatus(best_height=120, lib_height=100)

    @pytest.mark.asyncio
    async def test_http_error_wrapped(self):
        client = _make_client(lambda request: httpx.Response(500, text='down'))
        with pytest.raises(AElfAPIError, match='500'):
            await client.chain_status()

    @pytest.mark.asyncio
    async def test_network_error_wrapped(self):
        def handler(request):
            raise httpx.ConnectError('refused', request=request)

        client = _make_client(handler)
        with pytest.raises(AElfAPIError, match='Network error'):
            await client.chain_status()

    @pytest.mark.asyncio
    async def test_malformed_status(self):
        client = _make_client(lambda request: httpx.Response(200, json={'unexpected': 1}))
        with pytest.raises(AElfAPIError):
            await client.chain_status()


class TestBlockQueries:

    @pytest.fixture
    def node(self):
        """Node with block 7 holding five transactions."""
        calls = []
        transactions = [_tx(i) for i in range(5)]
        transactions[3] = _tx(3, to='token-contract')

        def handler(request):
            calls.append(request)
            if request.url.path == '/api/blockChain/blockByHeight':
                assert request.url.params['blockHeight'] == '7'
                return httpx.Response(200, json=_block(7, len(transactions)))
            if request.url.path == '/api/blockChain/transactionResults':
                assert request.url.params['blockHash'] == 'hash-7'
                offset = int(request.url.params['offset'])
                limit = int(request.url.params['limit'])
                return httpx.Response(200, json=transactions[offset:offset + limit])
            return httpx.Response(404)

        return handler, calls

    @pytest.mark.asyncio
    async def test_transactions_paginated(self, node):
        handler, calls = node
        client = _make_client(handler, page_size=2)

        response = await client.query_transactions_by_height(7)

        assert response['blockInfo']['BlockHash'] == 'hash-7'
        assert [tx['TransactionId'] for tx in response['transactions']] == [f"tx-{i}" for i in range(5)]
        pages = [c for c in calls if c.url.path == '/api/blockChain/transactionResults']
        assert [int(c.url.params['offset']) for c in pages] == [0, 2, 4]

    @pytest.mark.asyncio
    async def test_bloom_query_tags_block_and_transactions(self, node):
        handler, _ = node
        client = _make_client(handler)
        listeners = [contract_listener('token', 'token-contract'), contract_listener('vote', 'vote-contract')]

        response = await client.query_blocks_and_txs_by_bloom(7, listeners)

        assert response['block']['scanTags'] == ['token']
        tagged = {tx['TransactionId']: tx['scanTags'] for tx in response['transactions']}
        assert tagged['tx-3'] == ['token']
        assert tagged['tx-0'] == []

    @pytest.mark.asyncio
    async def test_block_without_transactions_skips_paging(self):
        calls = []

        def handler(request):
            calls.append(request.url.path)
            return httpx.Response(200, json=_block(3, 0))

        client = _make_client(handler)
        response = await client.query_transactions_by_height(3)

        assert response['transactions'] == []
        assert calls == ['/api/blockChain/blockByHeight']

    @pytest.mark.asyncio
    async def test_invalid_block_response(self):
        client = _make_client(lambda request: httpx.Response(200, json=None))
        with pytest.raises(AElfAPIError):
            await client.query_transactions_by_height(3)

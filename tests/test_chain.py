"""Tests for chain state readers and fee estimation."""

import httpx
import pytest

from stxsend.chain.base import SimulatedChainReader
from stxsend.chain.blockstack import BlockstackChainReader
from stxsend.chain.fees import FeeEstimator
from stxsend.errors import NetworkError
from stxsend.tx.builder import P2PKH_INPUT_SIZE

ADDRESS = "1FzTxL9Mxnm2fdmnQEArfhzJHevwbvcH6d"
RECIPIENT = "1BgGZ9tcN4rm9KBzDn7KprQz87SZ26SAMH"


def make_client(routes: dict) -> httpx.AsyncClient:
    """HTTP client answering ``routes[path]`` with (status, json or text)."""

    def handler(request: httpx.Request) -> httpx.Response:
        status, body = routes.get(request.url.path, (404, {"error": "not found"}))
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def healthy_routes() -> dict:
    return {
        "/unspent": (200, {"unspent_outputs": [
            {"tx_hash_big_endian": "11" * 32, "tx_output_n": 0, "value": 120000, "confirmations": 3},
            {"tx_hash_big_endian": "22" * 32, "tx_output_n": 2, "value": 30000, "confirmations": 0},
        ]}),
        f"/v1/accounts/{ADDRESS}/STACKS/balance": (200, {"balance": "5000000"}),
        f"/v1/accounts/{ADDRESS}/STACKS/status": (200, {"lock_transfer_block_id": 599000}),
        "/latestblock": (200, {"height": 600123}),
        "/v1/blockchains/bitcoin/consensus": (200, {"consensus_hash": "cd" * 16}),
    }


class TestBlockstackChainReader:
    """Tests for the HTTP chain state reader."""

    @pytest.mark.asyncio
    async def test_read_snapshot(self, settings):
        reader = BlockstackChainReader(settings, make_client(healthy_routes()))

        snapshot = await reader.read_snapshot(ADDRESS, "STACKS")

        assert len(snapshot.utxos) == 2
        assert snapshot.utxos[1].output_index == 2
        assert snapshot.btc_balance == 150000
        assert snapshot.account_balance == 5000000
        assert snapshot.account_status.lock_transfer_block_id == 599000
        assert snapshot.block_height == 600123
        assert snapshot.confirmed_balance(1) == 120000

    @pytest.mark.asyncio
    async def test_no_free_outputs_means_empty(self, settings):
        routes = healthy_routes()
        routes["/unspent"] = (500, "No free outputs to spend")
        reader = BlockstackChainReader(settings, make_client(routes))

        assert await reader.get_utxos(ADDRESS) == []

    @pytest.mark.asyncio
    async def test_any_failed_read_fails_snapshot(self, settings):
        routes = healthy_routes()
        routes["/latestblock"] = (503, "unavailable")
        reader = BlockstackChainReader(settings, make_client(routes))

        with pytest.raises(NetworkError):
            await reader.read_snapshot(ADDRESS, "STACKS")

    @pytest.mark.asyncio
    async def test_unknown_account(self, settings):
        routes = healthy_routes()
        del routes[f"/v1/accounts/{ADDRESS}/STACKS/status"]
        reader = BlockstackChainReader(settings, make_client(routes))

        with pytest.raises(NetworkError, match="Account not found"):
            await reader.get_account_status(ADDRESS, "STACKS")

    @pytest.mark.asyncio
    async def test_status_error_field(self, settings):
        routes = healthy_routes()
        routes[f"/v1/accounts/{ADDRESS}/STACKS/status"] = (200, {"error": "Failed to load account"})
        reader = BlockstackChainReader(settings, make_client(routes))

        with pytest.raises(NetworkError, match="Failed to load account"):
            await reader.get_account_status(ADDRESS, "STACKS")

    @pytest.mark.asyncio
    async def test_malformed_balance(self, settings):
        routes = healthy_routes()
        routes[f"/v1/accounts/{ADDRESS}/STACKS/balance"] = (200, {"amount": 1})
        reader = BlockstackChainReader(settings, make_client(routes))

        with pytest.raises(NetworkError):
            await reader.get_account_balance(ADDRESS, "STACKS")

    @pytest.mark.asyncio
    async def test_connection_failure(self, settings):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        reader = BlockstackChainReader(settings, client)

        with pytest.raises(NetworkError):
            await reader.get_block_height()

    @pytest.mark.asyncio
    async def test_consensus_hash(self, settings):
        reader = BlockstackChainReader(settings, make_client(healthy_routes()))
        assert await reader.get_consensus_hash() == "cd" * 16


class TestSimulatedChainReader:
    """Tests for the in-memory reader."""

    @pytest.mark.asyncio
    async def test_snapshot_reads_all_four_sources(self, chain):
        snapshot = await chain.read_snapshot(ADDRESS)

        assert chain.reads == 4
        assert snapshot.btc_balance == 2_000_000
        assert snapshot.block_height == 600000

    @pytest.mark.asyncio
    async def test_empty(self):
        snapshot = await SimulatedChainReader().read_snapshot(ADDRESS)
        assert snapshot.btc_balance == 0
        assert snapshot.utxos == ()


class TestFeeEstimator:
    """Tests for fee rate lookup and the size-based estimate."""

    @pytest.mark.asyncio
    async def test_get_fee_rate(self, settings):
        client = make_client({"/api/v1/fees/recommended": (200, {"fastestFee": 25, "halfHourFee": 10})})
        estimator = FeeEstimator(settings, client)

        assert await estimator.get_fee_rate() == 25

    @pytest.mark.asyncio
    async def test_fee_rate_failure(self, settings):
        client = make_client({"/api/v1/fees/recommended": (500, "boom")})
        estimator = FeeEstimator(settings, client)

        with pytest.raises(NetworkError):
            await estimator.get_fee_rate()

    @pytest.mark.asyncio
    async def test_zero_fee_rate_rejected(self, settings):
        client = make_client({"/api/v1/fees/recommended": (200, {"fastestFee": 0})})
        estimator = FeeEstimator(settings, client)

        with pytest.raises(NetworkError):
            await estimator.get_fee_rate()

    def test_estimate_scales_with_utxo_count(self, settings):
        estimator = FeeEstimator(settings)

        one = estimator.estimate(RECIPIENT, "STACKS", 1000, "", 1, 10)
        three = estimator.estimate(RECIPIENT, "STACKS", 1000, "", 3, 10)

        assert three - one == 2 * 10 * P2PKH_INPUT_SIZE

    def test_estimate_includes_recipient_dust(self, settings):
        estimator = FeeEstimator(settings)

        estimate = estimator.estimate(RECIPIENT, "STACKS", 1000, "", 1, 1)

        # 10 overhead + 148 input + 57 payload output + 34 recipient + 34 change
        assert estimate == 283 + settings.dust_minimum

    def test_estimate_counts_memo(self, settings):
        estimator = FeeEstimator(settings)

        without = estimator.estimate(RECIPIENT, "STACKS", 1000, "", 1, 1)
        with_memo = estimator.estimate(RECIPIENT, "STACKS", 1000, "thanks", 1, 1)

        assert with_memo - without == 6

    @pytest.mark.asyncio
    async def test_estimate_with_network(self, settings):
        client = make_client({"/api/v1/fees/recommended": (200, {"fastestFee": 2})})
        estimator = FeeEstimator(settings, client)

        estimate = await estimator.estimate_with_network(RECIPIENT, "STACKS", 1000, "", 1)

        assert estimate == 2 * 283 + settings.dust_minimum

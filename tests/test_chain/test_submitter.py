"""Tests for transaction signing and submission."""

import asyncio

import pytest
from eth_account import Account
from web3 import Web3

from pinmint.chain.client import ChainErrorKind
from pinmint.chain.submitter import (
    TransactionSubmitter,
    validate_content_uri,
    validate_recipient,
)
from pinmint.core.errors import ErrorCategory, SubmissionFailed, ValidationError

from tests.fixtures.chain import (
    BACKUP_RPC,
    GWEI,
    PRIMARY_RPC,
    RECIPIENT,
    TEST_PRIVATE_KEY,
    TEST_SENDER,
    rpc_error,
)


@pytest.fixture
def submitter(selector) -> TransactionSubmitter:
    return TransactionSubmitter(selector, TEST_PRIVATE_KEY, chain_id=11155111)


def _decode_sent(client, call_index: int = 0):
    raw = client.send_raw_transaction.await_args_list[call_index].args[0]
    return Account.recover_transaction(raw), raw


class TestValidation:
    """Test pre-flight checks."""

    def test_recipient_is_checksummed(self):
        assert validate_recipient(RECIPIENT.lower()) == RECIPIENT

    @pytest.mark.parametrize("value", ["not-an-address", "", None, "0x1234"])
    def test_malformed_recipient_is_rejected(self, value):
        with pytest.raises(ValidationError, match="Invalid Ethereum address"):
            validate_recipient(value)

    def test_empty_content_is_rejected(self):
        with pytest.raises(ValidationError, match="IPFS hash cannot be empty"):
            validate_content_uri("ipfs://")

    def test_content_is_canonicalized(self):
        assert validate_content_uri("QmTest123") == "ipfs://QmTest123"


class TestSubmit:
    """Test the submission path against fake endpoints."""

    @pytest.mark.asyncio
    async def test_submits_uplifted_signed_mint(self, submitter, chain_clients):
        pending = await submitter.submit(RECIPIENT, "QmTest123")

        primary = chain_clients[PRIMARY_RPC]
        assert pending.endpoint == PRIMARY_RPC
        assert pending.nonce == 7
        assert pending.gas_price == 12 * GWEI
        assert primary.encoded == [(RECIPIENT, "ipfs://QmTest123")]

        sender, raw = _decode_sent(primary)
        assert sender == TEST_SENDER
        assert submitter.sender == TEST_SENDER
        assert pending.tx_hash == Web3.to_hex(Web3.keccak(raw))
        assert chain_clients[BACKUP_RPC].calls == 0

    def test_uplift_is_fixed_percentage(self, submitter):
        assert submitter.uplift(100) == 120
        assert submitter.uplift(10 * GWEI) == 12 * GWEI

    @pytest.mark.asyncio
    async def test_invalid_recipient_makes_no_calls(self, submitter, chain_clients):
        with pytest.raises(ValidationError):
            await submitter.submit("not-an-address", "QmTest123")
        assert all(client.calls == 0 for client in chain_clients.values())

    @pytest.mark.asyncio
    async def test_missing_key_is_rpc_config(self, selector, chain_clients):
        submitter = TransactionSubmitter(selector, None)
        with pytest.raises(SubmissionFailed) as exc_info:
            await submitter.submit(RECIPIENT, "QmTest123")
        assert exc_info.value.category is ErrorCategory.RPC_CONFIG
        assert chain_clients[PRIMARY_RPC].calls == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("kind", "category"),
        [
            (ChainErrorKind.AUTHENTICATION, ErrorCategory.AUTHENTICATION),
            (ChainErrorKind.INSUFFICIENT_FUNDS, ErrorCategory.INSUFFICIENT_FUNDS),
            (ChainErrorKind.UNDERPRICED, ErrorCategory.UNDERPRICED),
            (ChainErrorKind.UNKNOWN, ErrorCategory.UNKNOWN),
        ],
    )
    async def test_terminal_errors_map_to_categories(
        self, submitter, chain_clients, kind, category
    ):
        chain_clients[PRIMARY_RPC].send_raw_transaction.side_effect = rpc_error(kind)
        with pytest.raises(SubmissionFailed) as exc_info:
            await submitter.submit(RECIPIENT, "QmTest123")
        assert exc_info.value.category is category
        # Terminal errors do not fail over
        assert chain_clients[BACKUP_RPC].send_raw_transaction.await_count == 0

    @pytest.mark.asyncio
    async def test_auth_failure_while_reading_gas_price(self, submitter, chain_clients):
        chain_clients[PRIMARY_RPC].gas_price.side_effect = rpc_error(
            ChainErrorKind.AUTHENTICATION, "401 Unauthorized"
        )
        with pytest.raises(SubmissionFailed) as exc_info:
            await submitter.submit(RECIPIENT, "QmTest123")
        assert exc_info.value.category is ErrorCategory.AUTHENTICATION
        assert "RPC authentication failed" in exc_info.value.message


class TestFailover:
    """Test bounded failover re-broadcasts the same signed transaction."""

    @pytest.mark.asyncio
    async def test_network_failure_rebroadcasts_identical_bytes(
        self, submitter, chain_clients
    ):
        primary, backup = chain_clients[PRIMARY_RPC], chain_clients[BACKUP_RPC]
        primary.send_raw_transaction.side_effect = rpc_error(ChainErrorKind.NETWORK)

        pending = await submitter.submit(RECIPIENT, "QmTest123")

        assert pending.endpoint == BACKUP_RPC
        primary_raw = primary.send_raw_transaction.await_args.args[0]
        backup_raw = backup.send_raw_transaction.await_args.args[0]
        assert primary_raw == backup_raw
        # Signed once: the backup never reads fee data or the nonce
        assert backup.gas_price.await_count == 0
        assert backup.pending_nonce.await_count == 0

    @pytest.mark.asyncio
    async def test_already_known_counts_as_accepted(self, submitter, chain_clients):
        primary = chain_clients[PRIMARY_RPC]
        primary.send_raw_transaction.side_effect = rpc_error(ChainErrorKind.ALREADY_KNOWN)

        pending = await submitter.submit(RECIPIENT, "QmTest123")

        assert pending.endpoint == PRIMARY_RPC
        raw = primary.send_raw_transaction.await_args.args[0]
        assert pending.tx_hash == Web3.to_hex(Web3.keccak(raw))

    @pytest.mark.asyncio
    async def test_all_endpoints_down_is_network_error(self, submitter, chain_clients):
        for client in chain_clients.values():
            client.send_raw_transaction.side_effect = rpc_error(ChainErrorKind.NETWORK)

        with pytest.raises(SubmissionFailed) as exc_info:
            await submitter.submit(RECIPIENT, "QmTest123")

        assert exc_info.value.category is ErrorCategory.NETWORK
        assert "may still reach the network" in exc_info.value.details

    @pytest.mark.asyncio
    async def test_attempts_are_bounded(self, selector, chain_clients):
        submitter = TransactionSubmitter(
            selector, TEST_PRIVATE_KEY, max_endpoint_attempts=1, chain_id=1
        )
        chain_clients[PRIMARY_RPC].gas_price.side_effect = rpc_error(
            ChainErrorKind.NETWORK
        )
        with pytest.raises(SubmissionFailed):
            await submitter.submit(RECIPIENT, "QmTest123")
        assert chain_clients[BACKUP_RPC].calls == 0


class TestNonceSerialization:
    """Test concurrent submissions never share a nonce."""

    @pytest.mark.asyncio
    async def test_concurrent_submits_get_distinct_nonces(
        self, submitter, chain_clients
    ):
        # The node keeps reporting the same pending nonce
        primary = chain_clients[PRIMARY_RPC]

        async def slow_send(raw):
            await asyncio.sleep(0.01)
            return Web3.to_hex(Web3.keccak(raw))

        primary.send_raw_transaction.side_effect = slow_send

        results = await asyncio.gather(
            *(submitter.submit(RECIPIENT, f"QmTest{i}") for i in range(3))
        )

        assert sorted(p.nonce for p in results) == [7, 8, 9]
        assert len({p.tx_hash for p in results}) == 3

    @pytest.mark.asyncio
    async def test_nonce_too_low_resets_local_cursor(self, submitter, chain_clients):
        primary = chain_clients[PRIMARY_RPC]
        await submitter.submit(RECIPIENT, "QmTest1")
        primary.send_raw_transaction.side_effect = rpc_error(ChainErrorKind.NONCE_TOO_LOW)

        with pytest.raises(SubmissionFailed):
            await submitter.submit(RECIPIENT, "QmTest2")

        primary.send_raw_transaction.side_effect = None
        primary.send_raw_transaction.return_value = "0x" + "cd" * 32
        primary.pending_nonce.return_value = 3
        pending = await submitter.submit(RECIPIENT, "QmTest3")
        assert pending.nonce == 3

    @pytest.mark.asyncio
    async def test_resync_rereads_nonce_from_node(self, submitter, chain_clients):
        primary = chain_clients[PRIMARY_RPC]
        assert (await submitter.submit(RECIPIENT, "QmTest1")).nonce == 7
        assert (await submitter.submit(RECIPIENT, "QmTest2")).nonce == 8

        # Both were dropped; the node still expects nonce 7
        await submitter.resync_nonce("timeout")

        pending = await submitter.submit(RECIPIENT, "QmTest3")
        assert pending.nonce == 7
        assert primary.pending_nonce.await_count == 3

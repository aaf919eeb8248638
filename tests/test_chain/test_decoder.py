"""Tests for mint event decoding."""

from hexbytes import HexBytes

from pinmint.chain.decoder import EventDecoder
from pinmint.core.config import DEFAULT_CONTRACT_ADDRESS

from tests.fixtures.chain import (
    OTHER_CONTRACT,
    RECIPIENT,
    make_receipt,
    minted_log,
    transfer_log,
)


class TestEventDecoder:
    """Test event priority, filtering and degradation."""

    def setup_method(self):
        self.decoder = EventDecoder(DEFAULT_CONTRACT_ADDRESS)

    def test_decodes_nft_minted(self):
        decoded = self.decoder.decode(make_receipt([minted_log(42)]))

        assert decoded is not None
        assert decoded.token_id == 42
        assert decoded.recipient == RECIPIENT
        assert decoded.content_reference == "ipfs://QmTest123"
        assert decoded.event == "NFTMinted"

    def test_falls_back_to_erc721_transfer(self):
        decoded = self.decoder.decode(make_receipt([transfer_log(9)]))

        assert decoded is not None
        assert decoded.token_id == 9
        assert decoded.content_reference is None
        assert decoded.event == "Transfer"

    def test_minted_wins_over_earlier_transfer(self):
        receipt = make_receipt([transfer_log(1), minted_log(2)])
        assert self.decoder.decode(receipt).token_id == 2

    def test_first_matching_log_wins(self):
        receipt = make_receipt([minted_log(5), minted_log(6)])
        assert self.decoder.decode(receipt).token_id == 5

    def test_ignores_logs_from_other_contracts(self):
        receipt = make_receipt([minted_log(3, address=OTHER_CONTRACT)])
        assert self.decoder.decode(receipt) is None

    def test_any_contract_when_unfiltered(self):
        receipt = make_receipt([minted_log(3, address=OTHER_CONTRACT)])
        assert EventDecoder().decode(receipt).token_id == 3

    def test_unknown_events_decode_to_none(self):
        receipt = make_receipt(
            [{"address": DEFAULT_CONTRACT_ADDRESS, "topics": [HexBytes(b"\x01" * 32)], "data": b""}]
        )
        assert self.decoder.decode(receipt) is None

    def test_empty_receipt_decodes_to_none(self):
        assert self.decoder.decode(make_receipt([])) is None

    def test_erc20_style_transfer_is_skipped(self):
        log = transfer_log(4)
        log["topics"] = log["topics"][:3]
        assert self.decoder.decode(make_receipt([log])) is None

    def test_malformed_minted_log_falls_through_to_transfer(self):
        bad = minted_log(1)
        bad["data"] = HexBytes(b"\x00" * 5)
        decoded = self.decoder.decode(make_receipt([bad, transfer_log(8)]))
        assert decoded.token_id == 8
        assert decoded.event == "Transfer"

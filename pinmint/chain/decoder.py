"""Extract mint identifiers from receipt logs."""

from collections.abc import Iterable, Mapping
from typing import Any

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from hexbytes import HexBytes
from web3 import Web3

from pinmint.chain.contract import NFT_MINTED_TOPIC, TRANSFER_TOPIC
from pinmint.core.errors import DecodeIncomplete
from pinmint.core.logging import get_logger
from pinmint.mint.models import DecodedMint

logger = get_logger(__name__)


def _topic_address(topic: Any) -> str:
    return Web3.to_checksum_address(HexBytes(topic)[-20:])


def _topic_int(topic: Any) -> int:
    return int.from_bytes(HexBytes(topic), "big")


class EventDecoder:
    """Finds the mint event in a receipt.

    ``NFTMinted`` takes priority over the ERC-721 ``Transfer`` event, and
    within one signature the first matching log wins.
    """

    def __init__(self, contract_address: str | None = None) -> None:
        self.contract_address = (
            Web3.to_checksum_address(contract_address) if contract_address else None
        )

    def _from_contract(self, log: Mapping[str, Any]) -> bool:
        if self.contract_address is None or not log.get("address"):
            return True
        return Web3.to_checksum_address(log["address"]) == self.contract_address

    def _matching(
        self, logs: Iterable[Mapping[str, Any]], topic: HexBytes
    ) -> Iterable[Mapping[str, Any]]:
        for log in logs:
            topics = log.get("topics") or []
            if topics and HexBytes(topics[0]) == topic and self._from_contract(log):
                yield log

    def _parse_minted(self, log: Mapping[str, Any]) -> DecodedMint:
        topics = log["topics"]
        if len(topics) < 3:
            raise DecodeIncomplete("NFTMinted log is missing indexed topics")
        try:
            data = bytes(HexBytes(log.get("data") or b""))
            (token_uri,) = abi_decode(["string"], data)
        except (DecodingError, ValueError) as e:
            raise DecodeIncomplete("NFTMinted log data is not a string", str(e)) from e
        return DecodedMint(
            token_id=_topic_int(topics[2]),
            recipient=_topic_address(topics[1]),
            content_reference=token_uri,
            event="NFTMinted",
        )

    def _parse_transfer(self, log: Mapping[str, Any]) -> DecodedMint:
        topics = log["topics"]
        # ERC-20 Transfer has three topics; only ERC-721 indexes the token id.
        if len(topics) != 4:
            raise DecodeIncomplete("Transfer log is not an ERC-721 transfer")
        return DecodedMint(
            token_id=_topic_int(topics[3]),
            recipient=_topic_address(topics[2]),
            content_reference=None,
            event="Transfer",
        )

    def decode(self, receipt: Mapping[str, Any]) -> DecodedMint | None:
        """Return the decoded mint event, or None when none is recognizable."""
        logs = list(receipt.get("logs") or [])
        for topic, parse in (
            (NFT_MINTED_TOPIC, self._parse_minted),
            (TRANSFER_TOPIC, self._parse_transfer),
        ):
            for log in self._matching(logs, topic):
                try:
                    return parse(log)
                except DecodeIncomplete as e:
                    logger.debug("log_skipped", reason=e.message, details=e.details)
        logger.info(
            "mint_event_not_found",
            tx_hash=_hex(receipt.get("transactionHash")),
            log_count=len(logs),
        )
        return None


def _hex(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return Web3.to_hex(value)

"""ABI and identifiers for the minting contract."""

from web3 import Web3

IPFS_SCHEME = "ipfs://"

MINT_FUNCTION = "mintWithIPFS"

NFT_ABI: list[dict] = [
    {
        "type": "function",
        "name": MINT_FUNCTION,
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "recipient", "type": "address"},
            {"name": "ipfsHash", "type": "string"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "tokenCounter",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "ownerOf",
        "stateMutability": "view",
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "outputs": [{"name": "", "type": "address"}],
    },
    {
        "type": "function",
        "name": "tokenURI",
        "stateMutability": "view",
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "outputs": [{"name": "", "type": "string"}],
    },
    {
        "type": "event",
        "name": "NFTMinted",
        "anonymous": False,
        "inputs": [
            {"name": "recipient", "type": "address", "indexed": True},
            {"name": "tokenId", "type": "uint256", "indexed": True},
            {"name": "tokenURI", "type": "string", "indexed": False},
        ],
    },
    {
        "type": "event",
        "name": "Transfer",
        "anonymous": False,
        "inputs": [
            {"name": "from", "type": "address", "indexed": True},
            {"name": "to", "type": "address", "indexed": True},
            {"name": "tokenId", "type": "uint256", "indexed": True},
        ],
    },
]

NFT_MINTED_TOPIC = Web3.keccak(text="NFTMinted(address,uint256,string)")
TRANSFER_TOPIC = Web3.keccak(text="Transfer(address,address,uint256)")


def strip_content_scheme(content_id: str) -> str:
    """Bare CID with every leading ipfs:// prefix removed."""
    cid = content_id.strip()
    while cid.startswith(IPFS_SCHEME):
        cid = cid[len(IPFS_SCHEME) :].strip()
    return cid


def canonicalize_content_uri(content_id: str) -> str:
    """Return ``content_id`` as an ipfs:// URI with exactly one scheme prefix.

    Raises:
        ValueError: If no identifier remains after stripping
    """
    cid = strip_content_scheme(content_id)
    if not cid:
        raise ValueError("Content identifier cannot be empty")
    return f"{IPFS_SCHEME}{cid}"

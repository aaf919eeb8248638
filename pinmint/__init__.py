"""Pin JSON documents to IPFS and mint NFTs that point at them."""

__version__ = "0.1.0"

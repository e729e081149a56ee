"""Mint_Registry: record and query NFT mint claims."""

__version__ = "0.1.0"

"""HTTP API for Mint_Registry."""

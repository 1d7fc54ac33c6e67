"""Web3 helpers: connections, signing, artifacts, encoding and address math."""

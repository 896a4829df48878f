"""finledger CLI command groups."""

"""HTTP transport for finledger (``finledger.server.app``) and its pydantic payloads."""

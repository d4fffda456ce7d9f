"""Batch phases: planning, encoding, integration, and KTX2 metadata fixes."""

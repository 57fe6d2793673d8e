"""Off-ledger tooling for chip clients."""

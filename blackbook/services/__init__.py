"""External collaborators: price source and ledger clients."""

"""Income and expense ledger with range analytics."""

"""Trade maintenance: filtering, deduplication, deletion and PnL reconciliation."""

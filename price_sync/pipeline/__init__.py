"""Card Price Sync - Reconciliation pipeline (network, strategies, persistence, orchestration)."""

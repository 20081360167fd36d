"""HTTP transport adapter over the escrow engine."""

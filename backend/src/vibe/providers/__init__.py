"""Model providers: shared adapter, per-backend strategies and the registry."""

"""Generation pipeline: prompts, stream segmenting and run orchestration."""

"""Use cases — the operations the CLI and embedding applications call."""

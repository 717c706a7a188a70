"""Cross-cutting pieces: typed errors and dependency wiring."""

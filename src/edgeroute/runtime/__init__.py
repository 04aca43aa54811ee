"""Runtime entrypoints copied into each function bundle."""

"""HTTP surface for triggering collections and reading the history."""

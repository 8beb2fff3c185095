"""OPL Manager - core library operations."""

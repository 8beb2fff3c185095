"""OPL Manager - application layer (API facade and async streams)."""

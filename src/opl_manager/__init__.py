"""OPL Manager - backend for Open PS2 Loader game libraries."""

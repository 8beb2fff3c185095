"""OPL Manager - utility helpers."""

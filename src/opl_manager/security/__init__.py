"""OPL Manager - path and name sanitization helpers."""

from .security_utils import sanitize_conf_label, sanitize_filename

__all__ = ['sanitize_conf_label', 'sanitize_filename']

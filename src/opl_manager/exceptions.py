#!/usr/bin/env python3
# -*-coding: utf-8-*-
"""
OPL Manager - Consolidated Exception Classes

All project-specific errors live here. Orchestrators raise them internally;
the public operations convert them into uniform result objects so callers
branch on ``success`` instead of catching.
"""

from datetime import datetime
from typing import Dict, Any, Optional


class BaseError(Exception):
    """Base class for all project-specific errors."""

    def __init__(self, message: str, error_code: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.error_code = error_code or "ERROR"
        self.details = details or {}
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        """Converts the exception to a dictionary for structured logging."""
        return {
            'error_code': self.error_code,
            'message': str(self),
            'details': self.details,
            'timestamp': self.timestamp.isoformat()
        }


# =====================================================================================================
# Configuration errors
# =====================================================================================================

class ConfigurationError(BaseError):
    """Raised when a required external tool, template or setting is missing."""

    def __init__(self, message: str, error_code: Optional[str] = None,
                 setting: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        config_details = details or {}
        if setting:
            config_details['setting'] = setting
        super().__init__(message, error_code or "CONFIG_ERROR", config_details)


# =====================================================================================================
# IO and data errors
# =====================================================================================================

class NotFoundError(BaseError):
    """Raised when an expected file or catalog entry is absent."""

    def __init__(self, message: str, path: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        nf_details = details or {}
        if path:
            nf_details['path'] = str(path)
        super().__init__(message, "NOT_FOUND", nf_details)


class FileOperationError(BaseError):
    """Raised when a filesystem read, write or rename fails."""

    def __init__(self, message: str, file_path: Optional[str] = None,
                 operation: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        file_details = details or {}
        if file_path:
            file_details['file_path'] = str(file_path)
        if operation:
            file_details['operation'] = operation
        super().__init__(message, "FILE_OP_ERROR", file_details)


class SheetParseError(BaseError):
    """Raised when a cue sheet has no usable FILE entry."""

    def __init__(self, message: str, sheet_path: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        sheet_details = details or {}
        if sheet_path:
            sheet_details['sheet_path'] = str(sheet_path)
        super().__init__(message, "SHEET_PARSE_ERROR", sheet_details)


# =====================================================================================================
# External process errors
# =====================================================================================================

class ExternalToolError(BaseError):
    """Raised when an external tool exits with a non-zero status."""

    def __init__(self, message: str, tool: Optional[str] = None,
                 exit_code: Optional[int] = None,
                 details: Optional[Dict[str, Any]] = None):
        tool_details = details or {}
        if tool:
            tool_details['tool'] = tool
        if exit_code is not None:
            tool_details['exit_code'] = exit_code
        super().__init__(message, "EXTERNAL_TOOL_ERROR", tool_details)
        self.exit_code = exit_code

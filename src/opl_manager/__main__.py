#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""OPL Manager - module entry point (``python -m opl_manager``)."""

from .main import main

if __name__ == "__main__":
    raise SystemExit(main())

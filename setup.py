#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Minimal setup.py for apop-mle; all metadata lives in pyproject.toml.
Kept for tools that still invoke setup.py directly.
"""

import setuptools

if __name__ == "__main__":
    setuptools.setup()

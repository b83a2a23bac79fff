"""
snipvault — a content-addressed key-value store for small secrets.

Items live as individual files under ~/.snipvault.cache, named by the
SHA-1 of their content. A compact binary index makes listing and
lookup cheap. The whole directory can optionally be a git working tree
synchronized with a remote.
"""

import os

__version__ = "0.1.3"

STORE_HOME = os.environ.get("SNIPVAULT_HOME", "~/.snipvault.cache")
CONFIG_PATH = os.environ.get("SNIPVAULT_CONFIG", "~/.config/snipvault/config.yaml")

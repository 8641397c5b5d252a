"""
config.py

Environment-driven defaults for the changetracker store.
"""

import os

# Directory holding the entity files
DATA_DIR = os.getenv("CHANGETRACKER_DATA_DIR", ".")

# Slots per page for paginated listings
PAGE_SIZE = int(os.getenv("CHANGETRACKER_PAGE_SIZE", "6"))

# Level used by log.configure_logging() when none is given
LOG_LEVEL = os.getenv("CHANGETRACKER_LOG_LEVEL", "WARNING")

REQUESTER_FILE = "requester.dat"
PRODUCT_FILE = "product.dat"
RELEASE_FILE = "release.dat"
CHANGE_ITEM_FILE = "change-item.dat"
CHANGE_REQUEST_FILE = "change-request.dat"

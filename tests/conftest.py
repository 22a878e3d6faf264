"""Root pytest configuration for all tests."""

import logging

# The Azure SDK logs every HTTP request at INFO; keep test output readable.
logging.getLogger("azure").setLevel(logging.WARNING)

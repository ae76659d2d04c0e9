"""
ipmifan - IPMI sensor and fan duty primitives for server baseboards
"""

import logging

__version__ = "0.1.0"

# Library code never configures handlers; the CLI does
logging.getLogger(__name__).addHandler(logging.NullHandler())

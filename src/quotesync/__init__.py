"""
quotesync — a quote collection that keeps itself in sync.

Keeps a local collection of quotes, reconciles it against a remote
source on an interval, and lets the operator override conflicts or
roll the last reconciliation back.
"""

import os

__version__ = "0.1.0"

QUOTESYNC_HOME = os.environ.get("QUOTESYNC_HOME", "~/.quotesync")

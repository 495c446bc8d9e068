"""
git-housekeep — personal git repository housekeeping.

Classifies untracked and ignored files, backs the keepers up into a
per-host, per-year branch, remembers what you chose to ignore, and
sweeps merged branches away. One operator, many clones, many hosts.
"""

import os

__version__ = "0.1.0"

HOUSEKEEP_HOME = os.environ.get("GIT_HOUSEKEEP_HOME", "~/.git-housekeep")

# Store section holding every persisted key (hostname, repo, ignore, protect).
SECTION = "git-housekeep"


class HousekeepError(Exception):
    """Base class for every error git-housekeep raises on purpose."""

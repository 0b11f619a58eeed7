"""Version management for the UniFi exporter"""

import os
from functools import lru_cache
from importlib import metadata


# Default version for development checkouts
DEFAULT_VERSION = "dev"

DISTRIBUTION_NAME = "unifi-network-exporter"


@lru_cache(maxsize=1)
def get_version() -> str:
    """
    Get the exporter version.

    Priority:
    1. UNIFI_EXPORTER_VERSION environment variable (set by Docker/CI)
    2. Installed distribution metadata
    3. Default to "dev"
    """
    version = os.environ.get("UNIFI_EXPORTER_VERSION")
    if version and version.strip():
        return version.strip()

    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return DEFAULT_VERSION

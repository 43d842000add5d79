"""Application configuration read from environment variables."""

import os


class AppConfig:
    """Runtime knobs for the entitlement, boost and sweep services."""

    SWEEP_BATCH_SIZE = int(os.environ.get("SWEEP_BATCH_SIZE", "100"))
    CAS_MAX_ATTEMPTS = int(os.environ.get("CAS_MAX_ATTEMPTS", "3"))
    ACTIVE_PROFILE_WINDOW_DAYS = int(os.environ.get("ACTIVE_PROFILE_WINDOW_DAYS", "30"))
    SERVICE_NAME = os.environ.get("SERVICE_NAME", "velvet-backend")

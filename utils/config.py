"""
Configuration management.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class Config:
    """
    Application configuration.

    Loads from environment variables with sensible defaults.
    """

    # Server
    host: str = field(default_factory=lambda: os.getenv("HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    # Data
    data_dir: str = field(default_factory=lambda: os.getenv("DATA_DIR", "./data"))
    upload_dir: str = field(default_factory=lambda: os.getenv("UPLOAD_DIR", "./uploads"))
    max_upload_bytes: int = field(
        default_factory=lambda: int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
    )

    # Sessions
    session_secret: str = field(default_factory=lambda: os.getenv("SESSION_SECRET", ""))
    session_duration_hours: int = field(
        default_factory=lambda: int(os.getenv("SESSION_DURATION_HOURS", "8"))
    )

    # Logistics
    pickup_volume_threshold: float = field(
        default_factory=lambda: float(os.getenv("PICKUP_VOLUME_THRESHOLD", "100"))
    )

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment."""
        return cls()

    def data_path(self, filename: str) -> str:
        """Path of a repository file inside the data directory."""
        return str(Path(self.data_dir) / filename)

    def to_dict(self) -> dict:
        """Convert config to dictionary (secrets omitted)."""
        return {
            "host": self.host,
            "port": self.port,
            "debug": self.debug,
            "log_level": self.log_level,
            "data_dir": self.data_dir,
            "upload_dir": self.upload_dir,
            "max_upload_bytes": self.max_upload_bytes,
            "session_duration_hours": self.session_duration_hours,
            "pickup_volume_threshold": self.pickup_volume_threshold,
        }

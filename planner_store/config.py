# -*- coding: utf-8 -*-
"""Environment-driven settings."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_DATA_DIR = Path.home() / ".student_planner"


@dataclass(frozen=True)
class Settings:
    data_dir: Path = DEFAULT_DATA_DIR
    log_level: str = "WARNING"
    notification_body: str = "Reminder triggered"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from ``PLANNER_*`` environment variables."""
        return cls(
            data_dir=Path(os.getenv("PLANNER_DATA_DIR", str(DEFAULT_DATA_DIR))).expanduser(),
            log_level=os.getenv("PLANNER_LOG_LEVEL", "WARNING").upper(),
            notification_body=os.getenv("PLANNER_NOTIFICATION_BODY", "Reminder triggered"),
        )

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from docguard.core.errors import ConfigurationError
from docguard.policy.profiles import PROFILES


@dataclass(frozen=True)
class Settings:
    profile: str = "reference"
    decision_log: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        profile = (env.get("DOCGUARD_PROFILE") or "reference").strip().lower()
        if profile not in PROFILES:
            raise ConfigurationError(f"DOCGUARD_PROFILE={profile!r} is not one of {sorted(PROFILES)}")

        level = (env.get("DOCGUARD_LOG_LEVEL") or "INFO").strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ConfigurationError(f"DOCGUARD_LOG_LEVEL={level!r} is not a logging level")

        return cls(
            profile=profile,
            decision_log=(env.get("DOCGUARD_DECISION_LOG") or "").strip() or None,
            log_level=level,
        )

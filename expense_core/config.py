"""Environment-driven settings and logging setup."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional

from .coordinator import DEFAULT_REMOTE_URL
from .exceptions import ValidationError
from .network import DEFAULT_TIMEOUT

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class Settings:
    """Runtime configuration shared by the API and the CLI."""

    data_dir: Path = Path("data")
    remote_url: str = DEFAULT_REMOTE_URL
    remote_timeout: float = DEFAULT_TIMEOUT
    refresh_on_start: bool = True
    log_level: str = "INFO"
    env: str = "prod"
    allowed_origins: List[str] = field(default_factory=list)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        environ = os.environ if environ is None else environ
        raw_timeout = environ.get("EXPENSE_TRACKER_REMOTE_TIMEOUT", str(DEFAULT_TIMEOUT))
        try:
            timeout = float(raw_timeout)
        except ValueError as exc:
            raise ValidationError("EXPENSE_TRACKER_REMOTE_TIMEOUT must be a number of seconds") from exc
        if timeout <= 0:
            raise ValidationError("EXPENSE_TRACKER_REMOTE_TIMEOUT must be greater than zero")

        origins = environ.get("EXPENSE_TRACKER_ALLOWED_ORIGINS", "")
        return cls(
            data_dir=Path(environ.get("EXPENSE_TRACKER_DATA_DIR", "data")),
            remote_url=environ.get("EXPENSE_TRACKER_REMOTE_URL", DEFAULT_REMOTE_URL),
            remote_timeout=timeout,
            refresh_on_start=environ.get("EXPENSE_TRACKER_REMOTE_REFRESH", "1").strip().lower()
            not in FALSE_VALUES,
            log_level=environ.get("EXPENSE_TRACKER_LOG_LEVEL", "INFO").upper(),
            env=environ.get("EXPENSE_TRACKER_ENV", "prod").lower(),
            allowed_origins=[origin.strip() for origin in origins.split(",") if origin.strip()],
        )

    @property
    def is_dev(self) -> bool:
        return self.env in {"dev", "development"}


def configure_logging(level: str = "INFO") -> None:
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValidationError(f"Unknown log level: {level}")
    logging.basicConfig(level=numeric, format=LOG_FORMAT)

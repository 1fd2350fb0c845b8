# settings.py
# Environment-driven configuration: where data lives and which pay rules apply.
from __future__ import annotations

import logging
import os
from dataclasses import replace
from pathlib import Path
from typing import Mapping

from domain import DEFAULT_POLICY, OvertimePolicy

logger = logging.getLogger(__name__)

APP_TITLE = "OT Calculator"

# env var -> (policy field, type)
POLICY_ENV = {
    "OT_HOLIDAY_RATE": ("holiday_hourly_rate", float),
    "OT_WEEKDAY_RATE": ("weekday_hourly_rate", float),
    "OT_MEAL_ALLOWANCE": ("meal_allowance", float),
    "OT_PERIOD_CAP": ("period_pay_cap", float),
    "OT_LEAVE_CAP_HOURS": ("leave_cap_hours", float),
    "OT_STANDARD_MINUTES": ("standard_work_minutes", int),
    "OT_BREAK_MINUTES": ("break_minutes", int),
    "OT_MINIMUM_MINUTES": ("minimum_ot_minutes", int),
}


def pick_data_dir(environ: Mapping[str, str] = os.environ) -> Path:
    candidates = []
    env = environ.get("DATA_DIR")
    if env:
        candidates.append(Path(env))
    candidates += [Path("/data"), Path.cwd() / "data"]

    for p in candidates:
        try:
            p.mkdir(parents=True, exist_ok=True)
            t = p / ".rwtest"
            t.write_text("ok")
            t.unlink(missing_ok=True)
            return p
        except OSError:
            logger.debug("Data dir %s not writable", p)
            continue
    return Path.cwd()


def database_url(data_dir: Path, environ: Mapping[str, str] = os.environ) -> str:
    default_sqlite = f"sqlite:///{(data_dir / 'ot_entries.db').as_posix()}"
    return environ.get("DATABASE_URL", default_sqlite)


def load_policy(environ: Mapping[str, str] = os.environ, base: OvertimePolicy = DEFAULT_POLICY) -> OvertimePolicy:
    """Default policy with any OT_* overrides applied."""
    overrides = {}
    for var, (name, cast) in POLICY_ENV.items():
        raw = environ.get(var)
        if raw is None or raw.strip() == "":
            continue
        try:
            overrides[name] = cast(raw)
        except ValueError:
            raise ValueError(f"{var} must be a {cast.__name__}, got {raw!r}") from None
    if overrides:
        logger.info("Policy overrides: %s", overrides)
    return replace(base, **overrides)

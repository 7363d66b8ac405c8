"""Runtime settings, read from CARGO_BOUNDS_* environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass

from cargo_bounds.registry import CRATES_IO_API, DEFAULT_USER_AGENT


def _env_float(key: str, default: float) -> float:
    return float(os.environ.get(key, default))


@dataclass(frozen=True)
class Settings:
    registry_url: str = CRATES_IO_API
    user_agent: str = DEFAULT_USER_AGENT
    request_interval: float = 1.0
    # overrides `cargo check --all-features` for `test` only
    check_command: str | None = None

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            registry_url=os.environ.get("CARGO_BOUNDS_REGISTRY_URL", CRATES_IO_API),
            user_agent=os.environ.get("CARGO_BOUNDS_USER_AGENT", DEFAULT_USER_AGENT),
            request_interval=_env_float("CARGO_BOUNDS_REQUEST_INTERVAL", 1.0),
            check_command=os.environ.get("CARGO_BOUNDS_CHECK_COMMAND") or None,
        )

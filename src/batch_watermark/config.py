import os
from dataclasses import dataclass

from .core import DEFAULT_MARGIN, DEFAULT_OPACITY, DEFAULT_SCALE
from .core.errors import InputValidationError
from .core.models import FailurePolicy
from .processors.batch import EXECUTORS, THREAD_EXECUTOR

ENV_PREFIX = "WATERMARK_"


def _env(name: str) -> str | None:
    value = os.getenv(ENV_PREFIX + name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _parse(name: str, cast, default):
    raw = _env(name)
    if raw is None:
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise InputValidationError(f"Invalid {ENV_PREFIX}{name}={raw!r}: {e}") from e


@dataclass(frozen=True)
class Settings:
    """Per-run knobs for a watermark batch."""

    opacity: float = DEFAULT_OPACITY
    margin: int = DEFAULT_MARGIN
    scale: float = DEFAULT_SCALE
    executor: str = THREAD_EXECUTOR
    max_workers: int | None = None
    policy: FailurePolicy = FailurePolicy.REPORT
    timeout: float | None = None

    def __post_init__(self):
        if self.executor not in EXECUTORS:
            raise InputValidationError(f"Unknown executor {self.executor!r}, expected one of {', '.join(EXECUTORS)}")
        if not self.scale > 0:
            raise InputValidationError(f"Scale must be positive, got {self.scale}")
        if self.max_workers is not None and self.max_workers < 1:
            raise InputValidationError(f"Worker count must be at least 1, got {self.max_workers}")
        if self.timeout is not None and self.timeout <= 0:
            raise InputValidationError(f"Timeout must be positive, got {self.timeout}")
        try:
            object.__setattr__(self, "policy", FailurePolicy(self.policy))
        except ValueError as e:
            raise InputValidationError(str(e)) from e

    @classmethod
    def from_env(cls, **overrides) -> "Settings":
        """
        Build settings from WATERMARK_* environment variables.

        Keyword overrides that are not None take precedence over the environment.
        """
        values = {
            "opacity": _parse("OPACITY", float, DEFAULT_OPACITY),
            "margin": _parse("MARGIN", int, DEFAULT_MARGIN),
            "scale": _parse("SCALE", float, DEFAULT_SCALE),
            "executor": _env("EXECUTOR") or THREAD_EXECUTOR,
            "max_workers": _parse("WORKERS", int, None),
            "policy": _parse("FAILURE_POLICY", FailurePolicy, FailurePolicy.REPORT),
            "timeout": _parse("TIMEOUT", float, None),
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)

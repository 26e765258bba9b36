"""Analysis configuration for vegscan.

A ``Config`` bundles the choices the caller makes once per run:
threshold method and value, which indices to report and in what order,
and how to schedule work. Engine functions take these as explicit
arguments; ``Config`` is the convenient way to carry them together.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from vegscan._types import ThresholdMethod
from vegscan.analysis.threshold import DEFAULT_FIXED_THRESHOLD
from vegscan.exceptions import ConfigurationError, InvalidInputError
from vegscan.indices import INDEX_KEYS, resolve_index_keys

logger = logging.getLogger("vegscan")


class Config(BaseModel):
    """Analysis configuration model.

    Immutable pydantic model. ``configure()`` replaces the module-level
    default; existing ``Config`` instances are never modified.

    Args:
        threshold_method: ``"otsu"`` (automatic) or ``"exg"`` (fixed).
        threshold_value: Fixed ExG threshold in ``[-1, 1]``, used only
            with ``"exg"``.
        indices: Index keys to compute, in reporting order.
        max_workers: Images analysed concurrently in a batch.
        chunk_size: Pixels classified per step; ``None`` for whole images.

    Example:
        >>> cfg = Config(threshold_method="exg", threshold_value=0.1)
        >>> cfg.indices[:3]
        ('INT', 'NRI', 'NGI')
    """

    model_config = ConfigDict(frozen=True, validate_default=True, extra="forbid")

    threshold_method: ThresholdMethod = ThresholdMethod.OTSU
    threshold_value: float = DEFAULT_FIXED_THRESHOLD
    indices: tuple[str, ...] = INDEX_KEYS
    max_workers: int = 1
    chunk_size: int | None = None

    @field_validator("threshold_value")
    @classmethod
    def _validate_threshold(cls, v: float) -> float:
        """Ensure the fixed threshold is on the normalised ExG scale."""
        if not -1.0 <= v <= 1.0:
            msg = "threshold_value must be within [-1, 1]"
            raise ValueError(msg)
        return v

    @field_validator("indices", mode="before")
    @classmethod
    def _validate_indices(cls, v: Any) -> tuple[str, ...]:
        """Check keys against the index registry and drop repeats."""
        try:
            return resolve_index_keys(v)
        except InvalidInputError as exc:
            raise ValueError(exc.what) from None

    @field_validator("max_workers")
    @classmethod
    def _validate_workers(cls, v: int) -> int:
        """Ensure at least one worker."""
        if v <= 0:
            msg = "max_workers must be greater than 0"
            raise ValueError(msg)
        return v

    @field_validator("chunk_size")
    @classmethod
    def _validate_chunk_size(cls, v: int | None) -> int | None:
        """Ensure chunk size is positive when given."""
        if v is not None and v <= 0:
            msg = "chunk_size must be greater than 0"
            raise ValueError(msg)
        return v

    @property
    def fixed_value(self) -> float | None:
        """Fixed threshold, or ``None`` when the method is automatic."""
        if self.threshold_method is ThresholdMethod.EXG:
            return self.threshold_value
        return None


_default_config = Config()


def configure(**kwargs: Any) -> None:
    """Set module-level default configuration.

    Creates a new ``Config`` from the current defaults merged with
    the provided keyword arguments.

    Args:
        **kwargs: Any ``Config`` field (e.g. ``threshold_method``,
            ``indices``, ``max_workers``).

    Raises:
        ConfigurationError: If a provided value fails validation.

    Example:
        >>> configure(threshold_method="exg", threshold_value=0.05)
    """
    global _default_config  # noqa: PLW0603
    current = _default_config.model_dump()
    current.update(kwargs)
    try:
        _default_config = Config(**current)
    except ValidationError as exc:
        raise ConfigurationError(
            what="Invalid vegscan configuration",
            cause="; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in exc.errors()
            ),
            fix="Check the values passed to configure()",
        ) from None
    logger.debug("Default configuration updated: %s", kwargs)


def get_default_config() -> Config:
    """Return the current module-level default configuration.

    Returns:
        The active ``Config`` instance.
    """
    return _default_config

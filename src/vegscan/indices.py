"""RGB vegetation index library.

Sixteen fixed formulas evaluated on normalised RGB (each channel divided
by the pixel's channel sum). The registry is built once at import time
and exposed read-only, so concurrent analyses can share it freely.

Pure computation module: numpy arrays in, numpy arrays out. Degenerate
pixels may yield NaN or infinity for the unguarded formulas (MGRVI,
RGBVI, VEG); those values are returned as-is, never clamped.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

import numpy as np
import numpy.typing as npt

from vegscan._types import PixelBuffer
from vegscan.exceptions import InvalidInputError

FloatArray = npt.NDArray[np.float64]
IndexFormula = Callable[[FloatArray, FloatArray, FloatArray], FloatArray]

# VEG exponent on the red channel; blue gets the complement.
_VEG_EXPONENT: float = 0.667


@dataclass(frozen=True)
class IndexDefinition:
    """A named vegetation index formula.

    Attributes:
        key: Short unique identifier (e.g. ``"ExG"``).
        name: Display name used in CSV headers. Never contains a comma.
        formula: Function of normalised ``(r, g, b)`` arrays.
    """

    key: str
    name: str
    formula: IndexFormula

    def __call__(self, r: Any, g: Any, b: Any) -> FloatArray:
        with np.errstate(divide="ignore", invalid="ignore"):
            return self.formula(
                np.asarray(r, dtype=np.float64),
                np.asarray(g, dtype=np.float64),
                np.asarray(b, dtype=np.float64),
            )


def _safe_divide(
    numerator: FloatArray,
    denominator: FloatArray,
    valid: npt.NDArray[np.bool_],
) -> FloatArray:
    """Divide where *valid*, 0.0 elsewhere."""
    out = np.zeros(np.broadcast(numerator, denominator).shape, dtype=np.float64)
    np.divide(numerator, denominator, out=out, where=valid)
    return out


# ── Formulas ──────────────────────────────────────────────────────


def _intensity(r: FloatArray, g: FloatArray, b: FloatArray) -> FloatArray:
    return (r + g + b) / 3


def _normalized_channel(channel: int) -> IndexFormula:
    def formula(r: FloatArray, g: FloatArray, b: FloatArray) -> FloatArray:
        total = r + g + b
        return _safe_divide((r, g, b)[channel], total, total > 0)

    return formula


def _rgri(r: FloatArray, g: FloatArray, b: FloatArray) -> FloatArray:
    return _safe_divide(r, g, g > 0)


def _exr(r: FloatArray, g: FloatArray, b: FloatArray) -> FloatArray:
    return 1.4 * r - g


def _exg(r: FloatArray, g: FloatArray, b: FloatArray) -> FloatArray:
    return 2 * g - r - b


def _exb(r: FloatArray, g: FloatArray, b: FloatArray) -> FloatArray:
    return 1.4 * b - g


def _exgr(r: FloatArray, g: FloatArray, b: FloatArray) -> FloatArray:
    return (2 * g - r - b) - (1.4 * r - g)


def _grvi(r: FloatArray, g: FloatArray, b: FloatArray) -> FloatArray:
    denom = g + r
    return _safe_divide(g - r, denom, denom > 0)


def _vari(r: FloatArray, g: FloatArray, b: FloatArray) -> FloatArray:
    denom = g + r - b
    return _safe_divide(g - r, denom, denom != 0)


def _gli(r: FloatArray, g: FloatArray, b: FloatArray) -> FloatArray:
    denom = 2 * g + r + b
    return _safe_divide(2 * g - r - b, denom, denom != 0)


def _mgrvi(r: FloatArray, g: FloatArray, b: FloatArray) -> FloatArray:
    g2 = g * g
    r2 = r * r
    return (g2 - r2) / (g2 + r2)


def _rgbvi(r: FloatArray, g: FloatArray, b: FloatArray) -> FloatArray:
    g2 = g * g
    rb = r * b
    return (g2 - rb) / (g2 + rb)


def _veg(r: FloatArray, g: FloatArray, b: FloatArray) -> FloatArray:
    a = _VEG_EXPONENT
    return g / (np.power(r, a) * np.power(b, 1 - a))


_DEFINITIONS: tuple[IndexDefinition, ...] = (
    IndexDefinition("INT", "Intensity", _intensity),
    IndexDefinition("NRI", "Normalized Red Index", _normalized_channel(0)),
    IndexDefinition("NGI", "Normalized Green Index", _normalized_channel(1)),
    IndexDefinition("NBI", "Normalized Blue Index", _normalized_channel(2)),
    IndexDefinition("RGRI", "Red Green Ratio Index", _rgri),
    IndexDefinition("ExR", "Excess Red Index", _exr),
    IndexDefinition("ExG", "Excess Green Index", _exg),
    IndexDefinition("ExB", "Excess Blue Index", _exb),
    IndexDefinition("ExGR", "Excess Green minus Red Index", _exgr),
    IndexDefinition("GRVI", "Green Red Vegetation Index", _grvi),
    IndexDefinition("VARI", "Visible Atmospherically Resistant Index", _vari),
    IndexDefinition("GLI", "Green Leaf Index", _gli),
    # Same body as GLI; kept as its own entry.
    IndexDefinition("GLA", "Green Leaf Algorithm", _gli),
    IndexDefinition("MGRVI", "Modified Green Red Vegetation Index", _mgrvi),
    IndexDefinition("RGBVI", "Red Green Blue Vegetation Index", _rgbvi),
    IndexDefinition("VEG", "Vegetativen", _veg),
)

INDICES: MappingProxyType[str, IndexDefinition] = MappingProxyType(
    {d.key: d for d in _DEFINITIONS}
)
"""Read-only registry of every supported index, keyed by ``key``."""

INDEX_KEYS: tuple[str, ...] = tuple(INDICES)
"""All index keys in registry order."""


# ── Lookup helpers ────────────────────────────────────────────────


def get_index(key: str) -> IndexDefinition:
    """Return the definition registered under *key*.

    Raises:
        InvalidInputError: If *key* is not a known index.
    """
    try:
        return INDICES[key]
    except KeyError:
        raise InvalidInputError(
            what=f"Unknown vegetation index {key!r}",
            cause="Index keys are case-sensitive and fixed",
            fix=f"Use one of: {', '.join(INDEX_KEYS)}",
        ) from None


def resolve_index_keys(keys: Iterable[str] | None = None) -> tuple[str, ...]:
    """Validate a caller's index selection, preserving its order.

    Args:
        keys: Index keys in the order results should be reported.
            ``None`` selects every index in registry order.

    Returns:
        Tuple of unique keys; repeated keys keep their first position.

    Raises:
        InvalidInputError: If any key is not in the registry.

    Example:
        >>> resolve_index_keys(["VARI", "ExG", "VARI"])
        ('VARI', 'ExG')
    """
    if keys is None:
        return INDEX_KEYS
    if isinstance(keys, str):
        keys = [keys]
    resolved: list[str] = []
    for key in keys:
        get_index(key)
        if key not in resolved:
            resolved.append(key)
    return tuple(resolved)


# ── Normalisation ─────────────────────────────────────────────────


def normalize_rgb(
    pixels: PixelBuffer,
) -> tuple[FloatArray, FloatArray, FloatArray]:
    """Split pixels into chromatic coordinates ``(r, g, b)``.

    Each channel is divided by ``R + G + B``. Black pixels (sum 0) map to
    ``(0, 0, 0)`` rather than NaN. Alpha, if present, is ignored.

    Args:
        pixels: Array whose last axis holds at least R, G, B.

    Returns:
        Three float64 arrays shaped like ``pixels[..., 0]``.

    Example:
        >>> r, g, b = normalize_rgb(np.array([[0, 0, 0], [10, 30, 10]]))
        >>> g.tolist()
        [0.0, 0.6]
    """
    rgb = np.asarray(pixels)[..., :3].astype(np.float64)
    total = rgb.sum(axis=-1, keepdims=True)
    normalized = np.zeros_like(rgb)
    np.divide(rgb, total, out=normalized, where=total != 0)
    return normalized[..., 0], normalized[..., 1], normalized[..., 2]


def compute_index(key: str, r: Any, g: Any, b: Any) -> FloatArray:
    """Evaluate the index *key* on normalised RGB values.

    Args:
        key: Registry key, e.g. ``"GLI"``.
        r: Normalised red (scalar or array).
        g: Normalised green.
        b: Normalised blue.

    Returns:
        float64 array (0-d for scalar input). May contain NaN or inf.

    Raises:
        InvalidInputError: If *key* is not a known index.
    """
    return get_index(key)(r, g, b)

from pivot_report.encoding.policy import (
    DISCRETE_SCALE,
    ERROR_BAND_STRIDE,
    LARGE_PALETTE,
    MEDIUM_PALETTE,
    SMALL_PALETTE,
    EncodingPolicy,
    palette_for,
    palette_for_channel,
)

__all__ = [
    "DISCRETE_SCALE",
    "ERROR_BAND_STRIDE",
    "LARGE_PALETTE",
    "MEDIUM_PALETTE",
    "SMALL_PALETTE",
    "EncodingPolicy",
    "palette_for",
    "palette_for_channel",
]

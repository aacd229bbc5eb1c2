"""Engine configuration: capability flags and rendering defaults.

Values come from the environment (``QRSTYLE_*``), optionally via a ``.env`` file.
"""

import os
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


@dataclass(frozen=True)
class EngineConfig:
    """Capability flags for one render pipeline.

    The gradient/logo/frame switches let a single pipeline serve both a plain
    generator and the fully styled one.
    """

    enable_gradient: bool = True
    enable_logo: bool = True
    enable_frame: bool = True

    # Extra fixed structures kept out of glyph styling (finders are always protected)
    protect_timing: bool = True
    protect_alignment: bool = True
    protect_version_info: bool = True

    # Redraw finder patterns for non-square eye shapes. Changes finder pixels.
    style_eyes: bool = False

    # Retry once at ECC level L when the payload does not fit the requested level
    low_ecc_fallback: bool = False

    workers: int = 1
    caption_height: int = 60
    font_size: int = 16

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "EngineConfig":
        """Build a config from ``QRSTYLE_*`` environment variables."""
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True))
        defaults = cls()
        return cls(
            enable_gradient=_env_bool("QRSTYLE_ENABLE_GRADIENT", defaults.enable_gradient),
            enable_logo=_env_bool("QRSTYLE_ENABLE_LOGO", defaults.enable_logo),
            enable_frame=_env_bool("QRSTYLE_ENABLE_FRAME", defaults.enable_frame),
            protect_timing=_env_bool("QRSTYLE_PROTECT_TIMING", defaults.protect_timing),
            protect_alignment=_env_bool("QRSTYLE_PROTECT_ALIGNMENT", defaults.protect_alignment),
            protect_version_info=_env_bool("QRSTYLE_PROTECT_VERSION_INFO", defaults.protect_version_info),
            style_eyes=_env_bool("QRSTYLE_STYLE_EYES", defaults.style_eyes),
            low_ecc_fallback=_env_bool("QRSTYLE_LOW_ECC_FALLBACK", defaults.low_ecc_fallback),
            workers=max(1, _env_int("QRSTYLE_WORKERS", defaults.workers)),
            caption_height=max(1, _env_int("QRSTYLE_CAPTION_HEIGHT", defaults.caption_height)),
            font_size=max(1, _env_int("QRSTYLE_FONT_SIZE", defaults.font_size)),
        )


DEFAULT_CONFIG = EngineConfig()

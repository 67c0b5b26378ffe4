"""Platform loudness targets and the parameter presets derived from them."""

from __future__ import annotations

from dataclasses import dataclass

from .mastering_options import Platform, parse_case_insensitive_enum
from .parameters import MasteringParameters


@dataclass(frozen=True, slots=True)
class PlatformTarget:
    """Integrated loudness a distribution platform normalizes to."""

    platform: Platform
    label: str
    target_lufs: float


PLATFORM_TARGETS: dict[Platform, PlatformTarget] = {
    Platform.SPOTIFY: PlatformTarget(Platform.SPOTIFY, "Spotify", -14.0),
    Platform.YOUTUBE: PlatformTarget(Platform.YOUTUBE, "YouTube", -14.0),
    Platform.APPLE: PlatformTarget(Platform.APPLE, "Apple Music", -16.0),
    Platform.SOUNDCLOUD: PlatformTarget(Platform.SOUNDCLOUD, "SoundCloud", -10.0),
    Platform.TIDAL: PlatformTarget(Platform.TIDAL, "Tidal", -14.0),
    Platform.CD: PlatformTarget(Platform.CD, "CD Master", -9.0),
}

DEFAULT_PLATFORM = Platform.SPOTIFY


def resolve_platform(platform: Platform | str | None) -> PlatformTarget:
    if platform is None:
        return PLATFORM_TARGETS[DEFAULT_PLATFORM]
    if not isinstance(platform, Platform):
        platform = parse_case_insensitive_enum(platform, Platform)
    return PLATFORM_TARGETS[platform]


def apply_platform_target(
    parameters: MasteringParameters, platform: Platform | str | None
) -> MasteringParameters:
    """Return parameters with ceiling/intensity tuned for the platform target.

    Loud targets (>= -10 LUFS) push hardest with the highest safe ceiling;
    streaming targets (>= -14 LUFS) use -1 dBTP; quieter targets back off.
    """

    target = resolve_platform(platform)
    if target.target_lufs >= -10.0:
        return parameters.with_overrides(limiter_ceiling_dbtp=-0.3, intensity=85.0)
    if target.target_lufs >= -14.0:
        return parameters.with_overrides(limiter_ceiling_dbtp=-1.0, intensity=70.0)
    return parameters.with_overrides(limiter_ceiling_dbtp=-1.5, intensity=60.0)

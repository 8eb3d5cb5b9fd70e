"""Android SDK level to platform version mapping and platform defaults."""

from bisect import bisect_right
from dataclasses import dataclass

# (lowest SDK level, Android major version), ascending
SDK_MAJOR_VERSIONS: list[tuple[int, int]] = [
    (1, 1),
    (5, 2),
    (11, 3),
    (14, 4),
    (21, 5),
    (23, 6),
    (24, 7),
    (26, 8),
    (28, 9),
    (29, 10),
    (30, 11),
    (31, 12),
    (33, 13),
]

LATEST_MAJOR_VERSION = SDK_MAJOR_VERSIONS[-1][1]

# Android 7 introduced network security configs
NSC_SUPPORTED_SINCE = 7
# Android 9 denies cleartext traffic by default
CLEARTEXT_DENIED_SINCE = 9

_LOWER_BOUNDS = [sdk for sdk, _ in SDK_MAJOR_VERSIONS]


def sdk_to_android_major(sdk_version: int) -> int:
    """Map an SDK level to its Android major version.

    Levels below 1 are clamped to Android 1; levels above the last known
    one map to the latest known major version.
    """
    idx = bisect_right(_LOWER_BOUNDS, max(sdk_version, 1)) - 1
    return SDK_MAJOR_VERSIONS[idx][1]


@dataclass(frozen=True)
class AndroidDefaults:
    """Platform behavior applied when an attribute is left unset."""

    allow_cleartext: bool
    nsc_expected: bool


def resolve_defaults(major_version: int) -> AndroidDefaults:
    """Compute platform defaults for an Android major version."""
    return AndroidDefaults(
        allow_cleartext=major_version < CLEARTEXT_DENIED_SINCE,
        nsc_expected=major_version >= NSC_SUPPORTED_SINCE,
    )

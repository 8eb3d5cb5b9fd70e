"""Pydantic models for decoded manifests and network security configs."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict

_TRUE_SPELLINGS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_SPELLINGS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


class TriState(StrEnum):
    """A boolean attribute that may also be absent."""

    UNSET = "unset"
    TRUE = "true"
    FALSE = "false"

    @classmethod
    def parse(cls, value: str | bool | None) -> "TriState":
        """Map a raw attribute value to a tri-state.

        Unknown spellings (e.g. an unresolved ``@7F05...`` bool resource)
        are treated as absent.
        """
        if value is None:
            return cls.UNSET
        if isinstance(value, bool):
            return cls.TRUE if value else cls.FALSE
        value = value.strip()
        if value in _TRUE_SPELLINGS:
            return cls.TRUE
        if value in _FALSE_SPELLINGS:
            return cls.FALSE
        return cls.UNSET

    @property
    def is_true(self) -> bool:
        return self is TriState.TRUE

    @property
    def is_false(self) -> bool:
        return self is TriState.FALSE

    @property
    def is_unset(self) -> bool:
        return self is TriState.UNSET


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class UsesSdk(_Frozen):
    """The ``<uses-sdk>`` element."""

    min_sdk_version: int | None = None
    target_sdk_version: int | None = None


class Application(_Frozen):
    """The ``<application>`` element attributes relevant to TLS."""

    name: str = ""
    """Application class name (android:name)."""

    label: str = ""

    network_security_config: str | None = None
    """Declared NSC resource (reference like ``@7F120000`` or a path)."""

    uses_cleartext_traffic: TriState = TriState.UNSET
    debuggable: TriState = TriState.UNSET


class Manifest(_Frozen):
    """Decoded ``AndroidManifest.xml``."""

    package: str = ""
    uses_sdk: UsesSdk = UsesSdk()
    application: Application = Application()

    @property
    def effective_target_sdk(self) -> int:
        """Target SDK, falling back to minSdkVersion and then to 1."""
        if self.uses_sdk.target_sdk_version is not None:
            return self.uses_sdk.target_sdk_version
        if self.uses_sdk.min_sdk_version is not None:
            return self.uses_sdk.min_sdk_version
        return 1


class CertificateSource(_Frozen):
    """A ``<certificates>`` entry of a trust-anchors block."""

    src: str
    """``system``, ``user`` or a raw resource reference (``@7F0F0000``)."""

    override_pins: TriState = TriState.UNSET


class TrustAnchors(_Frozen):
    certificates: list[CertificateSource] = []


class Pin(_Frozen):
    digest: str = ""
    value: str = ""


class PinSet(_Frozen):
    expiration: str | None = None
    """Expiration date as declared (expected ``YYYY-MM-DD``)."""

    pins: list[Pin] = []


class Domain(_Frozen):
    name: str
    """Hostname pattern as declared, whitespace-stripped."""

    include_subdomains: TriState = TriState.UNSET


class DomainConfig(_Frozen):
    """A ``<domain-config>`` node, possibly holding nested configs."""

    cleartext_traffic_permitted: TriState = TriState.UNSET
    domains: list[Domain] = []
    trust_anchors: TrustAnchors | None = None
    pin_set: PinSet | None = None
    children: list["DomainConfig"] = []


class BaseConfig(_Frozen):
    cleartext_traffic_permitted: TriState = TriState.UNSET
    trust_anchors: TrustAnchors | None = None


class DebugOverrides(_Frozen):
    trust_anchors: TrustAnchors | None = None


class NetworkSecurityConfig(_Frozen):
    """Decoded ``<network-security-config>`` document."""

    base_config: BaseConfig | None = None
    domain_configs: list[DomainConfig] = []
    debug_overrides: DebugOverrides | None = None

"""Pydantic models for risks and per-file analysis results."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, computed_field


class RiskType(StrEnum):
    """Closed set of TLS misconfiguration kinds."""

    NSC_MISSING = "NSCMissing"
    CLEARTEXT = "Cleartext"
    USER_ANCHORS = "UserAnchors"
    ANCHORS_OVERRIDE_PINNING = "AnchorsOverridePinning"
    UNPINNED = "Unpinned"
    PINNING_EXPIRATION = "PinningExpiration"
    PROXY_ANCHORS = "ProxyAnchors"
    MALFORMED_NSC = "MalformedNSC"

    @property
    def description(self) -> str:
        """Stable human-readable description of this risk kind."""
        return RISK_DESCRIPTIONS[self]


RISK_DESCRIPTIONS: dict[RiskType, str] = {
    RiskType.NSC_MISSING: "Android network security configuration is missing.",
    RiskType.CLEARTEXT: "Allow cleartext traffic to be transferred.",
    RiskType.USER_ANCHORS: "Allow users to trust 3rd-party CAs.",
    RiskType.ANCHORS_OVERRIDE_PINNING: "Trust anchors override pinned certificates.",
    RiskType.UNPINNED: "Does not pin any certificates.",
    RiskType.PINNING_EXPIRATION: "Certificate pins are expired or about to expire.",
    RiskType.PROXY_ANCHORS: "Trust anchors contain proxy tool CA.",
    RiskType.MALFORMED_NSC: "Domains in NSC contain invalid hostnames.",
}


class Risk(BaseModel):
    """A single finding produced by the risk classifier."""

    model_config = ConfigDict(frozen=True)

    type: RiskType
    """Kind of risk."""

    reason: str
    """Section path and, where applicable, the offending literal value."""

    @computed_field  # type: ignore[prop-decorator]
    @property
    def description(self) -> str:
        return self.type.description

    def __str__(self) -> str:
        return f"Type: {self.type} Reason: {self.reason}"


class Analysis(BaseModel):
    """Risk analysis of one application."""

    file: str
    """Path of the analyzed APK."""

    name: str
    """Declared application name."""

    package: str = ""
    """Manifest package name."""

    target_sdk: int
    """Effective target SDK level."""

    target_version: int
    """Android major version derived from the target SDK."""

    nsc_path: str | None = None
    """Container path of the evaluated NSC, if one was decoded."""

    risks: list[Risk]
    """Risks in classifier order."""

    warnings: list[str] = []
    """Checks that degraded while analyzing this file."""


class AnalysisFailure(BaseModel):
    """A file that could not be decoded."""

    file: str
    error: str

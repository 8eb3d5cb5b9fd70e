"""Convert manifest and NSC XML trees into typed models."""

from typing import Any

from tlshunter.core.flatten import DEFAULT_MAX_DEPTH
from tlshunter.exceptions import ConfigParseError
from tlshunter.models.manifest import (
    Application,
    BaseConfig,
    CertificateSource,
    DebugOverrides,
    Domain,
    DomainConfig,
    Manifest,
    NetworkSecurityConfig,
    Pin,
    PinSet,
    TriState,
    TrustAnchors,
    UsesSdk,
)

ANDROID_NS = "http://schemas.android.com/apk/res/android"

# lxml and xml.etree elements both support iteration, get() and itertext()
Element = Any


def _local_name(tag: Any) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _children(element: Element, name: str) -> list[Element]:
    return [child for child in element if _local_name(child.tag) == name]


def _child(element: Element, name: str) -> Element | None:
    children = _children(element, name)
    return children[0] if children else None


def _android_attr(element: Element | None, name: str) -> str | None:
    """Read an android:-namespaced attribute, tolerating a missing namespace."""
    if element is None:
        return None
    value = element.get(f"{{{ANDROID_NS}}}{name}")
    if value is None:
        value = element.get(name)
    return value


def _int_attr(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def _text(element: Element) -> str:
    return "".join(element.itertext()).strip()


def manifest_from_xml(root: Element) -> Manifest:
    """Build a Manifest from a decoded ``<manifest>`` element."""
    uses_sdk = _child(root, "uses-sdk")
    application = _child(root, "application")

    return Manifest(
        package=root.get("package") or "",
        uses_sdk=UsesSdk(
            min_sdk_version=_int_attr(_android_attr(uses_sdk, "minSdkVersion")),
            target_sdk_version=_int_attr(_android_attr(uses_sdk, "targetSdkVersion")),
        ),
        application=Application(
            name=_android_attr(application, "name") or "",
            label=_android_attr(application, "label") or "",
            network_security_config=_android_attr(application, "networkSecurityConfig")
            or None,
            uses_cleartext_traffic=TriState.parse(
                _android_attr(application, "usesCleartextTraffic")
            ),
            debuggable=TriState.parse(_android_attr(application, "debuggable")),
        ),
    )


def _trust_anchors(element: Element | None) -> TrustAnchors | None:
    if element is None:
        return None
    anchors = _child(element, "trust-anchors")
    if anchors is None:
        return None
    return TrustAnchors(
        certificates=[
            CertificateSource(
                src=(cert.get("src") or "").strip(),
                override_pins=TriState.parse(cert.get("overridePins")),
            )
            for cert in _children(anchors, "certificates")
        ]
    )


def _pin_set(element: Element) -> PinSet | None:
    pin_set = _child(element, "pin-set")
    if pin_set is None:
        return None
    return PinSet(
        expiration=pin_set.get("expiration"),
        pins=[
            Pin(digest=pin.get("digest") or "", value=_text(pin))
            for pin in _children(pin_set, "pin")
        ],
    )


def _domain_config(element: Element, depth: int, max_depth: int) -> DomainConfig:
    # One level past the bound is kept (childless) so flattening can report the cut
    children: list[DomainConfig] = []
    if depth <= max_depth:
        children = [
            _domain_config(child, depth + 1, max_depth)
            for child in _children(element, "domain-config")
        ]

    return DomainConfig(
        cleartext_traffic_permitted=TriState.parse(
            element.get("cleartextTrafficPermitted")
        ),
        domains=[
            Domain(
                name=_text(domain),
                include_subdomains=TriState.parse(domain.get("includeSubdomains")),
            )
            for domain in _children(element, "domain")
        ],
        trust_anchors=_trust_anchors(element),
        pin_set=_pin_set(element),
        children=children,
    )


def nsc_from_xml(
    root: Element, *, max_depth: int = DEFAULT_MAX_DEPTH
) -> NetworkSecurityConfig:
    """Build a NetworkSecurityConfig from a decoded XML root.

    Domain configs are decoded down to one level below ``max_depth``;
    anything nested further is dropped. The surviving over-deep nodes make
    ``flatten_domain_configs`` flag the tree as truncated.

    Raises:
        ConfigParseError: If the root is not ``<network-security-config>``.
    """
    if _local_name(root.tag) != "network-security-config":
        raise ConfigParseError(
            f"Unexpected root element <{_local_name(root.tag)}>, "
            "expected <network-security-config>"
        )

    base = _child(root, "base-config")
    debug = _child(root, "debug-overrides")

    return NetworkSecurityConfig(
        base_config=BaseConfig(
            cleartext_traffic_permitted=TriState.parse(
                base.get("cleartextTrafficPermitted")
            ),
            trust_anchors=_trust_anchors(base),
        )
        if base is not None
        else None,
        domain_configs=[
            _domain_config(element, 0, max_depth)
            for element in _children(root, "domain-config")
        ],
        debug_overrides=DebugOverrides(trust_anchors=_trust_anchors(debug))
        if debug is not None
        else None,
    )

"""Shared fixtures and builders for tlshunter tests."""

import datetime
import zipfile
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from tlshunter.core.certificates import CertificateResolver
from tlshunter.exceptions import ResourceResolutionError
from tlshunter.utils import config as config_module
from tests.compiled import (
    ResourceRef,
    XmlNode,
    compile_resource_table,
    compile_xml,
)

TODAY = datetime.date(2026, 10, 19)

PROXY_CERT_RES_ID = 0x7F0F0000
PLAIN_CERT_RES_ID = 0x7F0F0001

# Ids assigned by compile_resource_table to the compiled APK's resources
COMPILED_NSC_RES_ID = 0x7F010000
COMPILED_CERT_RES_ID = 0x7F020000


class FakeContainer:
    """In-memory resource container."""

    def __init__(
        self,
        resources: dict[int, str] | None = None,
        entries: dict[str, bytes] | None = None,
    ):
        self.resources = resources or {}
        self.entries = entries or {}
        self.reads: list[str] = []

    def resolve_resource(self, res_id: int) -> str | None:
        return self.resources.get(res_id)

    def read_entry(self, path: str) -> bytes:
        self.reads.append(path)
        if path not in self.entries:
            raise ResourceResolutionError(f"Entry not found: {path}")
        return self.entries[path]


def make_certificate(
    common_name: str,
    organization: str = "Example Org",
    encoding: serialization.Encoding = serialization.Encoding.DER,
) -> bytes:
    """Create a self-signed certificate."""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name(
        [
            x509.NameAttribute(NameOID.COMMON_NAME, common_name),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, organization),
        ]
    )
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=365))
        .sign(key, hashes.SHA256())
    )
    return cert.public_bytes(encoding)


def create_test_apk(path: Path, entries: dict[str, str | bytes]) -> Path:
    """Write a ZIP archive with the given entries."""
    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return path


def manifest_xml(
    target_sdk: int | None = 30,
    *,
    min_sdk: int | None = 21,
    uses_cleartext: str | None = None,
    nsc: str | None = None,
    name: str = "com.example.App",
    package: str = "com.example",
) -> str:
    """Plain-text AndroidManifest.xml as produced by apktool."""
    sdk_attrs = ""
    if min_sdk is not None:
        sdk_attrs += f' android:minSdkVersion="{min_sdk}"'
    if target_sdk is not None:
        sdk_attrs += f' android:targetSdkVersion="{target_sdk}"'

    app_attrs = f' android:name="{name}"'
    if uses_cleartext is not None:
        app_attrs += f' android:usesCleartextTraffic="{uses_cleartext}"'
    if nsc is not None:
        app_attrs += f' android:networkSecurityConfig="{nsc}"'

    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        '<manifest xmlns:android="http://schemas.android.com/apk/res/android" '
        f'package="{package}">\n'
        f"    <uses-sdk{sdk_attrs} />\n"
        f"    <application{app_attrs} />\n"
        "</manifest>\n"
    )


@pytest.fixture(autouse=True)
def isolated_config(tmp_path_factory, monkeypatch):
    """Keep tests away from the user's ~/.tlshunter/config.json."""
    config_dir = tmp_path_factory.mktemp("config")
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_dir / "config.json")
    config_module.reload_config()
    yield config_dir / "config.json"
    config_module.reload_config()


@pytest.fixture(scope="session")
def proxy_cert() -> bytes:
    return make_certificate("Charles Proxy CA", "XK72 Ltd")


@pytest.fixture(scope="session")
def plain_cert() -> bytes:
    return make_certificate("Example Root CA", "Example Org")


@pytest.fixture
def container(proxy_cert, plain_cert) -> FakeContainer:
    return FakeContainer(
        resources={
            PROXY_CERT_RES_ID: "res/raw/charles.der",
            PLAIN_CERT_RES_ID: "res/raw/example.der",
        },
        entries={
            "res/raw/charles.der": proxy_cert,
            "res/raw/example.der": plain_cert,
        },
    )


@pytest.fixture
def resolver(container) -> CertificateResolver:
    return CertificateResolver(container)


def compiled_manifest_xml(nsc: object | None = ResourceRef(COMPILED_NSC_RES_ID)) -> bytes:
    """Binary AndroidManifest.xml as shipped in a release APK."""
    app_attrs: dict[str, object] = {
        "android:name": "com.example.App",
        "android:usesCleartextTraffic": False,
    }
    if nsc is not None:
        app_attrs["android:networkSecurityConfig"] = nsc

    return compile_xml(
        XmlNode(
            "manifest",
            {"package": "com.example"},
            [
                XmlNode(
                    "uses-sdk",
                    {"android:minSdkVersion": 24, "android:targetSdkVersion": 33},
                ),
                XmlNode("application", app_attrs),
            ],
        )
    )


def compiled_nsc_xml() -> bytes:
    """Binary NSC trusting an embedded certificate and pinning one domain."""
    return compile_xml(
        XmlNode(
            "network-security-config",
            children=[
                XmlNode(
                    "base-config",
                    {"cleartextTrafficPermitted": False},
                    [
                        XmlNode(
                            "trust-anchors",
                            children=[
                                XmlNode("certificates", {"src": "system"}),
                                XmlNode(
                                    "certificates",
                                    {"src": ResourceRef(COMPILED_CERT_RES_ID)},
                                ),
                            ],
                        )
                    ],
                ),
                XmlNode(
                    "domain-config",
                    children=[
                        XmlNode(
                            "domain", {"includeSubdomains": True}, text="api.example.com"
                        ),
                        XmlNode(
                            "pin-set",
                            {"expiration": "2030-01-01"},
                            [
                                XmlNode(
                                    "pin",
                                    {"digest": "SHA-256"},
                                    text="7HIpactkIAq2Y49orFOOQKurWxmmSFZhBCoQYcRhJ3Y=",
                                )
                            ],
                        ),
                    ],
                ),
            ],
        ),
        android_namespace=False,
    )


@pytest.fixture
def compiled_apk(tmp_path, proxy_cert) -> Path:
    """APK with binary manifest and NSC, resolved through resources.arsc."""
    return create_test_apk(
        tmp_path / "compiled.apk",
        {
            "AndroidManifest.xml": compiled_manifest_xml(),
            "resources.arsc": compile_resource_table(
                "com.example",
                {
                    "xml": [
                        ("network_security_config", "res/xml/network_security_config.xml")
                    ],
                    "raw": [("charles", "res/raw/charles.der")],
                },
            ),
            "res/xml/network_security_config.xml": compiled_nsc_xml(),
            "res/raw/charles.der": proxy_cert,
        },
    )

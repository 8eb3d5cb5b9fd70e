"""Resolution of trust-anchor certificate sources."""

import re
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from cryptography import x509

from tlshunter.exceptions import TLSHunterError
from tlshunter.models.manifest import CertificateSource

SYSTEM_SOURCE = "system"
USER_SOURCE = "user"

# Raw resource reference as emitted for compiled XML, e.g. "@7F0F0000"
_RESOURCE_REF = re.compile(r"@([0-9A-Fa-f]{1,8})")
_MAX_RESOURCE_ID = 0x7FFFFFFF

PROXY_MARKER = "proxy"


class ResourceContainer(Protocol):
    """Read-only access to the resources of an application container."""

    def resolve_resource(self, res_id: int) -> str | None:
        """Map a resource id to a container-relative path."""
        ...

    def read_entry(self, path: str) -> bytes:
        """Read a size-bounded container entry.

        Raises:
            TLSHunterError: If the entry is missing, oversized or unreadable.
        """
        ...


class ResolutionKind(StrEnum):
    SYSTEM = "system"
    USER = "user"
    RESOLVED = "resolved"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class CertificateResolution:
    """Outcome of resolving one certificate source."""

    kind: ResolutionKind
    subject: str | None = None
    """RFC 4514 subject of the certificate when resolved."""

    @property
    def is_proxy(self) -> bool:
        """Whether the subject looks like an interception tool's root CA."""
        return self.subject is not None and is_proxy_subject(self.subject)


def is_proxy_subject(subject: str) -> bool:
    """Cheap heuristic for bundled proxy roots (Burp, Charles, mitmproxy...)."""
    return PROXY_MARKER in subject.lower()


def parse_resource_id(src: str) -> int | None:
    """Parse a ``@<hex>`` reference, returning None when malformed."""
    match = _RESOURCE_REF.fullmatch(src.strip())
    if match is None:
        return None
    res_id = int(match.group(1), 16)
    if res_id > _MAX_RESOURCE_ID:
        return None
    return res_id


def load_certificate(data: bytes) -> x509.Certificate:
    """Parse a DER or PEM encoded X.509 certificate.

    Raises:
        ValueError: If the data holds no parsable certificate.
    """
    try:
        return x509.load_der_x509_certificate(data)
    except ValueError:
        return x509.load_pem_x509_certificate(data)


class CertificateResolver:
    """Resolve certificate sources against a resource container."""

    UNRESOLVED = CertificateResolution(ResolutionKind.UNRESOLVED)

    def __init__(self, container: ResourceContainer):
        self.container = container

    def resolve(self, source: CertificateSource) -> CertificateResolution:
        """Resolve a trust-anchor source.

        Every failure (malformed reference, unknown resource, unreadable or
        unparsable certificate) yields an UNRESOLVED result scoped to this
        source.
        """
        if source.src == SYSTEM_SOURCE:
            return CertificateResolution(ResolutionKind.SYSTEM)
        if source.src == USER_SOURCE:
            return CertificateResolution(ResolutionKind.USER)

        res_id = parse_resource_id(source.src)
        if res_id is None:
            return self.UNRESOLVED

        path = self.container.resolve_resource(res_id)
        if not path:
            return self.UNRESOLVED

        try:
            data = self.container.read_entry(path)
        except TLSHunterError:
            return self.UNRESOLVED

        try:
            certificate = load_certificate(data)
            subject = certificate.subject.rfc4514_string()
        except ValueError:
            return self.UNRESOLVED

        return CertificateResolution(ResolutionKind.RESOLVED, subject=subject)

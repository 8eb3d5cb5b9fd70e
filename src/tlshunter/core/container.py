"""APK container access: zip entries, binary XML and the resource table."""

import re
from pathlib import Path
from types import TracebackType
from typing import Any
from zipfile import BadZipFile, ZipFile

from lxml import etree
from pyaxmlparser.arscparser import ARSCParser  # type: ignore[import-untyped]
from pyaxmlparser.axmlprinter import AXMLPrinter  # type: ignore[import-untyped]

from tlshunter.core.certificates import parse_resource_id
from tlshunter.core.decoder import manifest_from_xml, nsc_from_xml
from tlshunter.core.flatten import DEFAULT_MAX_DEPTH
from tlshunter.exceptions import (
    ConfigParseError,
    ContainerError,
    ResourceResolutionError,
    TLSHunterError,
)
from tlshunter.models.manifest import Manifest, NetworkSecurityConfig

# ZIP file magic header (APKs are ZIP files)
ZIP_FILE_HEADER = b"PK\x03\x04"

MANIFEST_ENTRY = "AndroidManifest.xml"
RESOURCE_TABLE_ENTRY = "resources.arsc"

DEFAULT_MAX_ENTRY_SIZE = 1024 * 1024
MAX_RESOURCE_TABLE_SIZE = 64 * 1024 * 1024

# Named reference left in apktool-decoded manifests, e.g. "@xml/network_security_config"
_NAMED_XML_REF = re.compile(r"@xml/([\w.]+)")


def validate_apk_path(apk_path: Path) -> None:
    """Validate that a path points to a readable ZIP archive.

    Raises:
        ContainerError: If validation fails.
    """
    if not apk_path.exists():
        raise ContainerError(str(apk_path), "file not found")

    if not apk_path.is_file():
        raise ContainerError(str(apk_path), "not a file")

    try:
        with apk_path.open("rb") as f:
            header = f.read(len(ZIP_FILE_HEADER))
    except OSError as e:
        raise ContainerError(str(apk_path), f"failed to read header: {e}") from e

    if header != ZIP_FILE_HEADER:
        raise ContainerError(
            str(apk_path),
            f"header mismatch, expected {ZIP_FILE_HEADER!r}, got {header!r}",
        )


def parse_xml(data: bytes, name: str) -> Any:
    """Parse a compiled (AXML) or plain-text XML document.

    Returns:
        The lxml root element.

    Raises:
        ResourceResolutionError: If the document cannot be decoded.
    """
    if data.lstrip()[:1] == b"<":
        parser = etree.XMLParser(
            resolve_entities=False, no_network=True, remove_comments=True
        )
        try:
            return etree.fromstring(data, parser=parser)
        except etree.XMLSyntaxError as e:
            raise ResourceResolutionError(f"Malformed XML in {name}: {e}") from e

    try:
        root = AXMLPrinter(data).get_xml_obj()
    except Exception as e:
        # pyaxmlparser raises arbitrary errors on corrupt chunks
        raise ResourceResolutionError(f"Malformed binary XML in {name}: {e}") from e

    if root is None:
        raise ResourceResolutionError(f"Empty binary XML in {name}")
    return root


class ApkContainer:
    """Read-only, size-bounded view of an APK file."""

    def __init__(
        self,
        apk_path: Path,
        zip_file: ZipFile,
        *,
        max_entry_size: int = DEFAULT_MAX_ENTRY_SIZE,
        max_domain_config_depth: int = DEFAULT_MAX_DEPTH,
    ):
        self.apk_path = apk_path
        self.max_entry_size = max_entry_size
        self.max_domain_config_depth = max_domain_config_depth
        self._zip = zip_file
        self._resources: ARSCParser | None = None
        self._resources_loaded = False

    @classmethod
    def open(
        cls,
        apk_path: Path,
        *,
        max_entry_size: int = DEFAULT_MAX_ENTRY_SIZE,
        max_domain_config_depth: int = DEFAULT_MAX_DEPTH,
    ) -> "ApkContainer":
        """Open an APK archive.

        Raises:
            ContainerError: If the file is not a readable ZIP archive.
        """
        validate_apk_path(apk_path)
        try:
            zip_file = ZipFile(apk_path, "r")
        except BadZipFile as e:
            raise ContainerError(str(apk_path), f"not a valid ZIP file: {e}") from e
        except OSError as e:
            raise ContainerError(str(apk_path), f"failed to read: {e}") from e

        return cls(
            apk_path,
            zip_file,
            max_entry_size=max_entry_size,
            max_domain_config_depth=max_domain_config_depth,
        )

    def close(self) -> None:
        self._zip.close()

    def __enter__(self) -> "ApkContainer":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def read_entry(self, path: str, *, limit: int | None = None) -> bytes:
        """Read an entry, refusing anything larger than the size limit.

        Both the declared size and the actually inflated size are checked so
        that entries with a forged header cannot exceed the limit.

        Raises:
            ResourceResolutionError: If the entry is missing, too large or
                unreadable.
        """
        limit = limit or self.max_entry_size
        try:
            info = self._zip.getinfo(path)
        except KeyError:
            raise ResourceResolutionError(f"Entry not found: {path}") from None

        if info.file_size > limit:
            raise ResourceResolutionError(
                f"Entry {path} declares {info.file_size} bytes, limit is {limit}"
            )

        try:
            with self._zip.open(info) as f:
                data = f.read(limit + 1)
        except (BadZipFile, OSError, RuntimeError, NotImplementedError) as e:
            raise ResourceResolutionError(f"Failed to read {path}: {e}") from e

        if len(data) > limit:
            raise ResourceResolutionError(f"Entry {path} exceeds {limit} bytes")
        return data

    def read_xml(self, path: str) -> Any:
        """Read and parse an XML entry (compiled or plain text)."""
        return parse_xml(self.read_entry(path), path)

    def _resource_table(self) -> ARSCParser | None:
        if not self._resources_loaded:
            self._resources_loaded = True
            try:
                data = self.read_entry(RESOURCE_TABLE_ENTRY, limit=MAX_RESOURCE_TABLE_SIZE)
            except ResourceResolutionError:
                return None
            try:
                self._resources = ARSCParser(data)
            except Exception:
                # Corrupt resource tables leave every reference unresolved
                self._resources = None
        return self._resources

    def resolve_resource(self, res_id: int) -> str | None:
        """Resolve a resource id to its value (a container path for files)."""
        table = self._resource_table()
        if table is None:
            return None

        try:
            configs = table.get_resolved_res_configs(res_id)
        except Exception:
            return None

        for _config, value in configs:
            if isinstance(value, str) and value:
                return value
        return None

    def load_manifest(self) -> Manifest:
        """Decode AndroidManifest.xml.

        Raises:
            ContainerError: If the manifest is missing or cannot be decoded.
        """
        try:
            root = self.read_xml(MANIFEST_ENTRY)
        except TLSHunterError as e:
            raise ContainerError(str(self.apk_path), str(e)) from e

        if not isinstance(root.tag, str) or root.tag.rsplit("}", 1)[-1] != "manifest":
            raise ContainerError(str(self.apk_path), "manifest root is not <manifest>")
        return manifest_from_xml(root)

    def resolve_nsc_path(self, reference: str) -> str | None:
        """Turn the manifest's networkSecurityConfig value into an entry path."""
        reference = reference.strip()
        if not reference.startswith("@"):
            return reference or None

        res_id = parse_resource_id(reference)
        if res_id is not None:
            return self.resolve_resource(res_id)

        match = _NAMED_XML_REF.fullmatch(reference)
        if match:
            return f"res/xml/{match.group(1)}.xml"
        return None

    def load_network_security_config(
        self, manifest: Manifest
    ) -> tuple[str, NetworkSecurityConfig] | None:
        """Decode the NSC declared by the manifest.

        Returns:
            The NSC entry path and decoded config, or None when the
            application declares no NSC.

        Raises:
            ConfigParseError: If a declared NSC cannot be located or decoded.
        """
        reference = manifest.application.network_security_config
        if not reference:
            return None

        path = self.resolve_nsc_path(reference)
        if path is None:
            raise ConfigParseError(f"Cannot resolve NSC reference {reference}")

        try:
            root = self.read_xml(path)
        except ResourceResolutionError as e:
            raise ConfigParseError(f"Cannot read NSC {path}: {e}") from e

        return path, nsc_from_xml(root, max_depth=self.max_domain_config_depth)

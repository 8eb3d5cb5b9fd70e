"""Per-file TLS risk analysis."""

from datetime import date
from pathlib import Path

from tlshunter.core.certificates import CertificateResolver
from tlshunter.core.classifier import RiskClassifier
from tlshunter.core.container import ApkContainer
from tlshunter.core.versions import sdk_to_android_major
from tlshunter.exceptions import ConfigParseError
from tlshunter.models.manifest import NetworkSecurityConfig
from tlshunter.models.risk import Analysis
from tlshunter.utils.config import ScanSettings


class TLSAnalyzer:
    """Analyze APK files for TLS misconfigurations."""

    def __init__(self, settings: ScanSettings | None = None):
        self.settings = settings or ScanSettings()
        self.classifier = RiskClassifier(self.settings)

    def analyze(self, apk_path: Path, *, today: date | None = None) -> Analysis:
        """Decode one APK and classify its TLS posture.

        A declared but unreadable network security config is reported as a
        warning and the application is evaluated as if it had none.

        Args:
            apk_path: Path to the APK file.
            today: Evaluation date for pin-set expiration checks.

        Returns:
            Analysis with risks in classifier order.

        Raises:
            ContainerError: If the APK or its manifest cannot be decoded.
        """
        with ApkContainer.open(
            apk_path,
            max_entry_size=self.settings.max_entry_size,
            max_domain_config_depth=self.settings.max_domain_config_depth,
        ) as container:
            manifest = container.load_manifest()

            warnings: list[str] = []
            nsc_path: str | None = None
            nsc: NetworkSecurityConfig | None = None
            try:
                loaded = container.load_network_security_config(manifest)
            except ConfigParseError as e:
                warnings.append(f"Network security config ignored: {e}")
                loaded = None
            if loaded is not None:
                nsc_path, nsc = loaded

            context = self.classifier.build_context(
                manifest, nsc, CertificateResolver(container), today=today
            )
            risks = self.classifier.run(context)
            if context.flattened.truncated:
                warnings.append(
                    "Domain config tree exceeds traversal bounds, "
                    f"only {len(context.flattened.nodes)} nodes evaluated"
                )

        target_sdk = manifest.effective_target_sdk
        return Analysis(
            file=str(apk_path),
            name=manifest.application.name,
            package=manifest.package,
            target_sdk=target_sdk,
            target_version=sdk_to_android_major(target_sdk),
            nsc_path=nsc_path,
            risks=risks,
            warnings=warnings,
        )


def analyze_apk(
    apk_path: Path, settings: ScanSettings | None = None, *, today: date | None = None
) -> Analysis:
    """Convenience wrapper around TLSAnalyzer.analyze."""
    return TLSAnalyzer(settings).analyze(apk_path, today=today)

"""Rule engine turning a decoded manifest and NSC into ordered risks."""

from dataclasses import dataclass, field
from datetime import date
from functools import cached_property

from tlshunter.core.certificates import (
    SYSTEM_SOURCE,
    USER_SOURCE,
    CertificateResolver,
)
from tlshunter.core.flatten import FlattenResult, flatten_domain_configs
from tlshunter.core.versions import (
    AndroidDefaults,
    resolve_defaults,
    sdk_to_android_major,
)
from tlshunter.models.manifest import (
    CertificateSource,
    Manifest,
    NetworkSecurityConfig,
    PinSet,
    TriState,
)
from tlshunter.models.risk import Risk, RiskType
from tlshunter.utils.config import ScanSettings

MANIFEST_SECTION = "Manifest"
BASE_CONFIG_SECTION = "NSC base config"
DOMAIN_CONFIG_SECTION = "NSC domain config"

EXPIRATION_FORMAT = "%Y-%m-%d"


@dataclass
class ClassificationContext:
    """Inputs shared by every rule during one classification run."""

    manifest: Manifest
    nsc: NetworkSecurityConfig | None
    resolver: CertificateResolver
    today: date
    settings: ScanSettings = field(default_factory=ScanSettings)

    @cached_property
    def defaults(self) -> AndroidDefaults:
        return resolve_defaults(sdk_to_android_major(self.manifest.effective_target_sdk))

    @cached_property
    def flattened(self) -> FlattenResult:
        forest = self.nsc.domain_configs if self.nsc else []
        return flatten_domain_configs(
            forest,
            max_depth=self.settings.max_domain_config_depth,
            max_nodes=self.settings.max_domain_configs,
        )


def cleartext_risk(
    section: str, permitted: TriState, defaults: AndroidDefaults
) -> Risk | None:
    """Evaluate a tri-state cleartext attribute against platform defaults."""
    if permitted.is_unset:
        if defaults.allow_cleartext:
            return Risk(
                type=RiskType.CLEARTEXT,
                reason=f"{section} defaults permit cleartext traffic.",
            )
        return None
    if permitted.is_true:
        return Risk(
            type=RiskType.CLEARTEXT,
            reason=f"{section} explicitly permits cleartext traffic.",
        )
    return None


def pin_set_expiring(pin_set: PinSet, today: date, threshold_days: int) -> bool:
    """Check whether a pin set is expired, about to expire or undated garbage.

    A missing expiration, or one that does not parse as ``YYYY-MM-DD``,
    counts as already expired.
    """
    raw = (pin_set.expiration or "").strip()
    try:
        expiration = date.fromisoformat(raw)
    except ValueError:
        return True
    # fromisoformat also accepts compact forms such as 20250101
    if expiration.strftime(EXPIRATION_FORMAT) != raw:
        return True
    return (expiration - today).days <= threshold_days


def proxy_anchor_risk(
    section: str, source: CertificateSource, resolver: CertificateResolver
) -> Risk | None:
    """Resolve an embedded anchor and flag it if it looks like a proxy CA."""
    if source.src in (SYSTEM_SOURCE, USER_SOURCE):
        return None
    resolution = resolver.resolve(source)
    if not resolution.is_proxy:
        return None
    return Risk(
        type=RiskType.PROXY_ANCHORS,
        reason=f'{section} contain proxy tool CA with subject "{resolution.subject}".',
    )


class Rule:
    """A unit of the rule engine.

    Rules run in declaration order; a rule only contributes risks when
    ``applies`` returns True for the context.
    """

    name = "rule"

    def applies(self, context: ClassificationContext) -> bool:
        raise NotImplementedError

    def evaluate(self, context: ClassificationContext) -> list[Risk]:
        raise NotImplementedError


class NscMissingRule(Rule):
    name = "nsc-missing"

    def applies(self, context: ClassificationContext) -> bool:
        return context.nsc is None

    def evaluate(self, context: ClassificationContext) -> list[Risk]:
        if not context.defaults.nsc_expected:
            return []
        return [
            Risk(
                type=RiskType.NSC_MISSING,
                reason=(
                    f"{MANIFEST_SECTION} does not specify NSC where target "
                    "Android version supports it."
                ),
            )
        ]


class ManifestCleartextRule(Rule):
    name = "manifest-cleartext"

    def applies(self, context: ClassificationContext) -> bool:
        return context.nsc is None

    def evaluate(self, context: ClassificationContext) -> list[Risk]:
        risk = cleartext_risk(
            MANIFEST_SECTION,
            context.manifest.application.uses_cleartext_traffic,
            context.defaults,
        )
        return [risk] if risk else []


class BaseCleartextRule(Rule):
    name = "base-config-cleartext"

    def applies(self, context: ClassificationContext) -> bool:
        return context.nsc is not None

    def evaluate(self, context: ClassificationContext) -> list[Risk]:
        if context.nsc is None:
            return []
        base = context.nsc.base_config
        permitted = base.cleartext_traffic_permitted if base else TriState.UNSET
        risk = cleartext_risk(BASE_CONFIG_SECTION, permitted, context.defaults)
        return [risk] if risk else []


class BaseTrustAnchorsRule(Rule):
    name = "base-config-trust-anchors"

    def applies(self, context: ClassificationContext) -> bool:
        return (
            context.nsc is not None
            and context.nsc.base_config is not None
            and context.nsc.base_config.trust_anchors is not None
        )

    def evaluate(self, context: ClassificationContext) -> list[Risk]:
        base = context.nsc.base_config if context.nsc else None
        anchors = base.trust_anchors if base else None
        if anchors is None:
            return []

        risks: list[Risk] = []
        for i, source in enumerate(anchors.certificates):
            section = f"{BASE_CONFIG_SECTION} trust anchors (index: {i})"
            if source.src == USER_SOURCE:
                risks.append(
                    Risk(type=RiskType.USER_ANCHORS, reason=f"{section} allow user CAs.")
                )

            # overridePins defaults to false, unset never counts
            if source.override_pins.is_true:
                risks.append(
                    Risk(
                        type=RiskType.ANCHORS_OVERRIDE_PINNING,
                        reason=f"{section} override certificate pinning.",
                    )
                )

            risk = proxy_anchor_risk(section, source, context.resolver)
            if risk:
                risks.append(risk)
        return risks


class DomainConfigRule(Rule):
    """Per-node checks over the flattened domain-config tree.

    Nodes are evaluated independently; unset attributes are not inherited
    from enclosing domain configs.
    """

    name = "domain-config"

    def applies(self, context: ClassificationContext) -> bool:
        return context.nsc is not None

    def evaluate(self, context: ClassificationContext) -> list[Risk]:
        risks: list[Risk] = []
        threshold = context.settings.expiration_threshold_days

        for node in context.flattened.nodes:
            section = f"{DOMAIN_CONFIG_SECTION} sub config (index: {node.index})"
            config = node.config

            if config.pin_set is not None and pin_set_expiring(
                config.pin_set, context.today, threshold
            ):
                risks.append(
                    Risk(
                        type=RiskType.PINNING_EXPIRATION,
                        reason=(
                            f"{section} pin set expiration "
                            f'"{config.pin_set.expiration or ""}" is invalid or within '
                            f"{threshold} days."
                        ),
                    )
                )

            for domain in config.domains:
                if domain.name.startswith("http"):
                    risks.append(
                        Risk(
                            type=RiskType.MALFORMED_NSC,
                            reason=(
                                f"{section} domains contain malformed hostname "
                                f'"{domain.name}".'
                            ),
                        )
                    )

            if config.trust_anchors is None:
                continue
            for i, source in enumerate(config.trust_anchors.certificates):
                anchor_section = f"{section} trust anchors (index: {i})"
                if source.src == USER_SOURCE:
                    risks.append(
                        Risk(
                            type=RiskType.USER_ANCHORS,
                            reason=f"{anchor_section} allow user CAs.",
                        )
                    )
                risk = proxy_anchor_risk(anchor_section, source, context.resolver)
                if risk:
                    risks.append(risk)

        return risks


class UnpinnedRule(Rule):
    """Section-level check: at least one domain config must pin."""

    name = "domain-config-unpinned"

    def applies(self, context: ClassificationContext) -> bool:
        return context.nsc is not None

    def evaluate(self, context: ClassificationContext) -> list[Risk]:
        pinned = any(
            node.config.pin_set is not None and node.config.pin_set.pins
            for node in context.flattened.nodes
        )
        if pinned:
            return []
        return [
            Risk(
                type=RiskType.UNPINNED,
                reason=f"{DOMAIN_CONFIG_SECTION} does not contain pinned certificates.",
            )
        ]


DEFAULT_RULES: tuple[Rule, ...] = (
    NscMissingRule(),
    ManifestCleartextRule(),
    BaseCleartextRule(),
    BaseTrustAnchorsRule(),
    DomainConfigRule(),
    UnpinnedRule(),
)


class RiskClassifier:
    """Classify the TLS posture of one application.

    The classifier is stateless between calls: identical inputs (including
    the evaluation date) produce identical risk sequences.
    """

    def __init__(
        self,
        settings: ScanSettings | None = None,
        rules: tuple[Rule, ...] = DEFAULT_RULES,
    ):
        self.settings = settings or ScanSettings()
        self.rules = rules

    def build_context(
        self,
        manifest: Manifest,
        nsc: NetworkSecurityConfig | None,
        resolver: CertificateResolver,
        *,
        today: date | None = None,
    ) -> ClassificationContext:
        """Bundle the inputs of one classification run.

        The context also carries the flattened domain-config tree, so callers
        can inspect traversal truncation without flattening again.
        """
        return ClassificationContext(
            manifest=manifest,
            nsc=nsc,
            resolver=resolver,
            today=today or date.today(),
            settings=self.settings,
        )

    def run(self, context: ClassificationContext) -> list[Risk]:
        """Run every applicable rule and collect risks in rule order."""
        risks: list[Risk] = []
        for rule in self.rules:
            if rule.applies(context):
                risks.extend(rule.evaluate(context))
        return risks

    def classify(
        self,
        manifest: Manifest,
        nsc: NetworkSecurityConfig | None,
        resolver: CertificateResolver,
        *,
        today: date | None = None,
    ) -> list[Risk]:
        """Classify one application.

        Args:
            manifest: Decoded manifest.
            nsc: Decoded network security config, or None when absent.
            resolver: Certificate resolver bound to the application container.
            today: Evaluation date for pin-set expiration; defaults to today.

        Returns:
            Risks in the order the rules emitted them, not deduplicated.
        """
        return self.run(self.build_context(manifest, nsc, resolver, today=today))

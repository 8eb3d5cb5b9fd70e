"""Tests for cross-file risk aggregation."""

from concurrent.futures import ThreadPoolExecutor

from tlshunter.core.aggregator import RiskAggregator
from tlshunter.models.risk import Analysis, Risk, RiskType


def make_analysis(file: str, *risks: tuple[RiskType, str]) -> Analysis:
    return Analysis(
        file=file,
        name=f"{file}.App",
        target_sdk=30,
        target_version=11,
        risks=[Risk(type=t, reason=r) for t, r in risks],
    )


class TestRiskAggregator:
    def test_groups_by_type_then_reason(self):
        aggregator = RiskAggregator()
        aggregator.add(
            make_analysis(
                "a.apk",
                (RiskType.UNPINNED, "no pins"),
                (RiskType.CLEARTEXT, "defaults"),
            )
        )
        aggregator.add(
            make_analysis(
                "b.apk",
                (RiskType.CLEARTEXT, "explicit"),
                (RiskType.CLEARTEXT, "defaults"),
            )
        )

        groups = aggregator.groups()
        assert [g.type for g in groups] == [RiskType.CLEARTEXT, RiskType.UNPINNED]

        cleartext = groups[0]
        assert cleartext.count == 3
        assert [r.reason for r in cleartext.reasons] == ["defaults", "explicit"]
        assert [a.file for a in cleartext.reasons[0].analyses] == ["a.apk", "b.apk"]

    def test_empty(self):
        assert RiskAggregator().groups() == []

    def test_concurrent_adds(self):
        aggregator = RiskAggregator()
        analyses = [
            make_analysis(f"{i}.apk", (RiskType.NSC_MISSING, "missing")) for i in range(200)
        ]
        with ThreadPoolExecutor(max_workers=8) as executor:
            list(executor.map(aggregator.add, analyses))

        (group,) = aggregator.groups()
        assert group.count == 200
        assert len(group.reasons[0].analyses) == 200

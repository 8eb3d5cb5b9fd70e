"""Bounded flattening of nested domain-config trees."""

from dataclasses import dataclass, field

from tlshunter.models.manifest import DomainConfig

DEFAULT_MAX_DEPTH = 32
DEFAULT_MAX_NODES = 4096


@dataclass(frozen=True)
class FlatDomainConfig:
    """A domain-config node with its position in the flattened sequence."""

    index: int
    depth: int
    config: DomainConfig


@dataclass
class FlattenResult:
    nodes: list[FlatDomainConfig] = field(default_factory=list)
    truncated: bool = False
    """True if nodes were dropped because of the depth or count bound."""


def flatten_domain_configs(
    forest: list[DomainConfig],
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_nodes: int = DEFAULT_MAX_NODES,
) -> FlattenResult:
    """Flatten a domain-config forest in pre-order.

    Parents come before their children and sibling order is preserved.
    Top-level configs have depth 0. Nodes deeper than ``max_depth`` are
    skipped together with their subtrees, and traversal stops once
    ``max_nodes`` nodes were collected. Both cases mark the result as
    truncated instead of failing.

    Args:
        forest: Top-level domain configs in document order.
        max_depth: Deepest nesting level that is still visited.
        max_nodes: Maximum number of nodes returned.

    Returns:
        FlattenResult with indexed nodes.
    """
    result = FlattenResult()
    stack: list[tuple[int, DomainConfig]] = [(0, node) for node in reversed(forest)]

    while stack:
        depth, node = stack.pop()
        if depth > max_depth:
            result.truncated = True
            continue
        if len(result.nodes) >= max_nodes:
            result.truncated = True
            break

        result.nodes.append(
            FlatDomainConfig(index=len(result.nodes), depth=depth, config=node)
        )
        stack.extend((depth + 1, child) for child in reversed(node.children))

    return result

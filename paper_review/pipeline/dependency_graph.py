"""Validated stage dependency graph."""

from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional

from paper_review.core.exceptions import ConfigurationError, DependencyCycleError
from paper_review.utils.logging import get_logger

LOGGER = get_logger(__name__)


class DependencyGraph:
    """Immutable DAG mapping each stage id to the stage ids it requires.

    Build it with :meth:`from_mapping`, which rejects unknown dependency ids
    and cycles.
    """

    def __init__(self, dependencies: Dict[str, FrozenSet[str]], order: List[str]):
        self._dependencies = dependencies
        self._order = order
        dependents: Dict[str, set] = {stage_id: set() for stage_id in dependencies}
        for stage_id, deps in dependencies.items():
            for dep in deps:
                dependents[dep].add(stage_id)
        self._dependents = {k: frozenset(v) for k, v in dependents.items()}

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Iterable[str]]) -> "DependencyGraph":
        """Build and validate a graph.

        Raises:
            ConfigurationError: If a dependency names an undeclared stage
            DependencyCycleError: If the dependencies contain a cycle
        """
        dependencies = {stage_id: frozenset(deps) for stage_id, deps in mapping.items()}

        for stage_id, deps in dependencies.items():
            unknown = sorted(deps - dependencies.keys())
            if unknown:
                raise ConfigurationError(
                    f"Stage '{stage_id}' depends on undeclared stage(s): {', '.join(unknown)}"
                )
            if stage_id in deps:
                raise DependencyCycleError([stage_id, stage_id])

        order = cls._topological_sort(dependencies)
        LOGGER.debug(f"Built dependency graph with {len(order)} stages")
        return cls(dependencies, order)

    @staticmethod
    def _topological_sort(dependencies: Dict[str, FrozenSet[str]]) -> List[str]:
        visiting: List[str] = []
        state: Dict[str, int] = {}  # 1 = on stack, 2 = done
        order: List[str] = []

        def visit(stage_id: str) -> None:
            mark = state.get(stage_id)
            if mark == 2:
                return
            if mark == 1:
                start = visiting.index(stage_id)
                raise DependencyCycleError(visiting[start:] + [stage_id])
            state[stage_id] = 1
            visiting.append(stage_id)
            for dep in sorted(dependencies[stage_id]):
                visit(dep)
            visiting.pop()
            state[stage_id] = 2
            order.append(stage_id)

        for stage_id in dependencies:
            visit(stage_id)
        return order

    def __contains__(self, stage_id: str) -> bool:
        return stage_id in self._dependencies

    def __len__(self) -> int:
        return len(self._dependencies)

    @property
    def stage_ids(self) -> List[str]:
        return list(self._dependencies)

    def dependencies_of(self, stage_id: str) -> FrozenSet[str]:
        """Stages that must succeed before ``stage_id`` may run. Unknown ids have none."""
        return self._dependencies.get(stage_id, frozenset())

    def dependents_of(self, stage_id: str, among: Optional[Iterable[str]] = None) -> FrozenSet[str]:
        """Stages that directly require ``stage_id``, optionally restricted to ``among``."""
        dependents = self._dependents.get(stage_id, frozenset())
        if among is not None:
            dependents = dependents & frozenset(among)
        return dependents

    def topological_order(self) -> List[str]:
        """Stage ids with every stage listed after all of its dependencies."""
        return list(self._order)

"""
Resource intent graph.

Intents are declared in order; every reference to another intent's output
becomes an edge in the graph. The graph is submitted once to a
provisioning engine which realizes each intent in dependency order and
reports the attributes it produced.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from graphlib import CycleError, TopologicalSorter
from typing import (
    Any,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Set,
    Tuple,
    Union,
)

from intents.errors import (
    DependencyCycleError,
    DependencyFailedError,
    DuplicateIntentError,
    EmptyOutputError,
    GraphAlreadySubmittedError,
    MissingOutputError,
    ProvisioningError,
    RealizationError,
    UnknownReferenceError,
)
from intents.outputs import Output

logger = logging.getLogger(__name__)

Properties = Union[Mapping[str, Any], Output]


@dataclass(frozen=True)
class Intent:
    kind: str
    name: str
    properties: Properties
    depends_on: Tuple[str, ...] = field(default_factory=tuple)


class ProvisioningEngine(Protocol):
    def realize(self, intent: Intent, properties: Dict[str, Any]) -> Mapping[str, Any]:
        """Create or update the resource and return the attributes it produced."""
        ...


class ResourceHandle:
    """Reference to a declared, not yet realized intent."""

    def __init__(self, graph: "ResourceGraph", intent: Intent) -> None:
        self._graph = graph
        self._intent = intent
        self._outputs: Dict[str, Output] = {}
        self._produced: Optional[Dict[str, Any]] = None
        self._error: Optional[BaseException] = None

    @property
    def graph(self) -> "ResourceGraph":
        return self._graph

    @property
    def intent(self) -> Intent:
        return self._intent

    @property
    def name(self) -> str:
        return self._intent.name

    @property
    def kind(self) -> str:
        return self._intent.kind

    def output(self, attribute: str, secret: bool = False) -> Output:
        """Return the (single) Output for one produced attribute."""
        out = self._outputs.get(attribute)
        if out is not None and secret and not out.is_secret:
            # Derivations of the existing Output already carry secret=False
            raise ValueError(
                f"Output {self.name}.{attribute} was already requested as non-secret"
            )
        if out is None:
            out = Output(resources=[self], secret=secret, label=f"{self.name}.{attribute}")
            self._outputs[attribute] = out
            if self._produced is not None and attribute in self._produced:
                out.set_result(self._produced[attribute])
            elif self._error is not None:
                out.set_exception(self._error)
            elif self._produced is not None:
                out.set_exception(
                    MissingOutputError(self.name, f"engine did not produce attribute: {attribute}")
                )
        return out

    def _resolve(self, produced: Mapping[str, Any]) -> None:
        self._produced = dict(produced)
        missing = sorted(a for a in self._outputs if a not in produced)
        for attribute, out in list(self._outputs.items()):
            if attribute in produced:
                out.set_result(produced[attribute])
        if missing:
            error = MissingOutputError(
                self.name, f"engine did not produce attribute(s): {', '.join(missing)}"
            )
            for attribute in missing:
                self._outputs[attribute].set_exception(error)
            raise error

    def _fail(self, error: BaseException) -> None:
        if self._error is None:
            self._error = error
        for out in list(self._outputs.values()):
            if not out.done():
                out.set_exception(error)

    def __repr__(self) -> str:
        return f"ResourceHandle({self.kind}:{self.name})"


def collect_references(value: Any) -> Set[ResourceHandle]:
    """Find every handle referenced by Outputs nested inside ``value``."""
    found: Set[ResourceHandle] = set()
    if isinstance(value, Output):
        found.update(value.resources)
    elif isinstance(value, Mapping):
        for k, v in value.items():
            found.update(collect_references(k))
            found.update(collect_references(v))
    elif isinstance(value, (list, tuple, set, frozenset)):
        for item in value:
            found.update(collect_references(item))
    return found


def resolve_value(value: Any) -> Any:
    """Replace every nested Output with its resolved value."""
    if isinstance(value, Output):
        return resolve_value(value.result())
    if isinstance(value, Mapping):
        return {resolve_value(k): resolve_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [resolve_value(v) for v in value]
    if isinstance(value, tuple):
        return tuple(resolve_value(v) for v in value)
    return value


def assert_acyclic(edges: Mapping[str, Iterable[str]]) -> List[str]:
    """Return a dependency-first order of ``edges`` or raise on a cycle."""
    sorter: TopologicalSorter = TopologicalSorter()
    for node, deps in edges.items():
        sorter.add(node, *deps)
    try:
        return list(sorter.static_order())
    except CycleError as ex:
        cycle = " -> ".join(ex.args[1]) if len(ex.args) > 1 else "?"
        raise DependencyCycleError(f"Dependency cycle detected: {cycle}") from ex


class ResourceGraph:
    """Collects intents and submits them to an engine once."""

    def __init__(self) -> None:
        self._handles: Dict[str, ResourceHandle] = {}
        self._edges: Dict[str, Tuple[str, ...]] = {}
        self._exports: Dict[str, Output] = {}
        self._submitted = False

    @property
    def intents(self) -> List[Intent]:
        return [h.intent for h in self._handles.values()]

    @property
    def exports(self) -> Dict[str, Output]:
        return dict(self._exports)

    def get(self, name: str) -> ResourceHandle:
        try:
            return self._handles[name]
        except KeyError:
            raise UnknownReferenceError(f"No intent named '{name}' is declared") from None

    def dependencies(self, name: str) -> Tuple[str, ...]:
        return self._edges[name]

    def declare(
        self,
        kind: str,
        name: str,
        properties: Properties,
        depends_on: Sequence[ResourceHandle] = (),
    ) -> ResourceHandle:
        if name in self._handles:
            raise DuplicateIntentError(f"Intent '{name}' is already declared")

        referenced = collect_references(properties) | set(depends_on)
        for handle in referenced:
            if handle.graph is not self or self._handles.get(handle.name) is not handle:
                raise UnknownReferenceError(
                    f"Intent '{name}' references '{handle.name}' which is not declared in this graph"
                )

        deps = tuple(sorted(h.name for h in referenced))
        assert_acyclic({**self._edges, name: deps})

        intent = Intent(
            kind=kind,
            name=name,
            properties=properties,
            depends_on=tuple(h.name for h in depends_on),
        )
        handle = ResourceHandle(self, intent)
        self._handles[name] = handle
        self._edges[name] = deps
        logger.debug("Declared %s '%s' (depends on: %s)", kind, name, ", ".join(deps) or "-")
        return handle

    def export(self, name: str, output: Output) -> None:
        if name in self._exports:
            raise DuplicateIntentError(f"Export '{name}' is already declared")
        for handle in output.resources:
            if self._handles.get(handle.name) is not handle:
                raise UnknownReferenceError(
                    f"Export '{name}' references '{handle.name}' which is not declared in this graph"
                )
        self._exports[name] = output

    def topological_order(self) -> List[str]:
        return assert_acyclic(self._edges)

    def submit(self, engine: ProvisioningEngine) -> Dict[str, Any]:
        """Realize every intent through ``engine`` and return the export values.

        Either every intent is realized and every export resolves to a
        non-empty value, or a ProvisioningError is raised.
        """
        if self._submitted:
            raise GraphAlreadySubmittedError("The graph has already been submitted")
        self._submitted = True

        order = self.topological_order()
        logger.info("Submitting %d intents: %s", len(order), ", ".join(order))
        failure: Optional[ProvisioningError] = None
        for name in order:
            handle = self._handles[name]
            if failure is not None:
                handle._fail(DependencyFailedError(f"{name}: not submitted after earlier failure"))
                continue
            try:
                self._realize(engine, handle)
            except ProvisioningError as ex:
                logger.error("Realization of '%s' failed: %s", name, ex)
                handle._fail(ex)
                failure = ex
        if failure is not None:
            raise failure

        values: Dict[str, Any] = {}
        for export_name, out in self._exports.items():
            value = resolve_value(out)
            if value is None or value == "":
                raise EmptyOutputError(f"Export '{export_name}' resolved to an empty value")
            values[export_name] = value
        return values

    def _realize(self, engine: ProvisioningEngine, handle: ResourceHandle) -> None:
        try:
            properties = resolve_value(handle.intent.properties)
        except Exception as ex:  # noqa: BLE001 - rethrow with context
            raise DependencyFailedError(f"{handle.name}: an input failed to resolve: {ex}") from ex
        if not isinstance(properties, dict):
            raise RealizationError(handle.name, "properties did not resolve to a mapping")
        try:
            produced = engine.realize(handle.intent, properties)
        except ProvisioningError:
            raise
        except Exception as ex:  # noqa: BLE001 - engine errors are not recoverable here
            raise RealizationError(handle.name, str(ex)) from ex
        if not isinstance(produced, Mapping):
            raise RealizationError(handle.name, "engine returned no attribute mapping")
        logger.debug("Realized %s '%s'", handle.kind, handle.name)
        handle._resolve(produced)

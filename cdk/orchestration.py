"""Explicit ordering between stacks and between resources within a stack.

CloudFormation already orders resources that reference each other. This
module covers the edges it cannot see: a stack whose values are read at
deploy time from another region, or a grant that has to land before the
resource using it. Every edge is recorded in a ``DependencyGraph`` first, so
cycles are rejected while the app is being built, and only then applied to
the CDK constructs.
"""

# Standard Library
import threading
from enum import Enum
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

# Third Party
from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from aws_cdk import Stack
    from constructs import Construct, IDependable


class NodeState(str, Enum):
    """Deployment state of a node in the graph.

    Attributes:
        pending: Not started.
        in_progress: Started and not yet finished.
        complete: Finished successfully.
        failed: Finished with an error.
        cancelled: Will not be started because something else failed.
    """

    pending = "pending"
    in_progress = "in_progress"
    complete = "complete"
    failed = "failed"
    cancelled = "cancelled"


class DependencyCycleError(ValueError):
    """Declaring an edge would make the graph cyclic."""


class DependencyNotSatisfiedError(RuntimeError):
    """A node was started before all of its producers completed."""


class FailureOutcome(BaseModel):
    """What happens to the rest of the graph after a failure.

    Attributes:
        failed: Nodes that failed.
        cancelled: Nodes that will not be started.
        rollback: Completed nodes to undo, dependents before producers.
        errors: Error message per failed node.
    """

    failed: List[str] = Field(default_factory=list)
    cancelled: List[str] = Field(default_factory=list)
    rollback: List[str] = Field(default_factory=list)
    errors: Dict[str, str] = Field(default_factory=dict)


class DependencyGraph:
    """A directed acyclic graph of named deployment steps.

    An edge ``consumer -> producer`` means the consumer may only start once
    the producer has completed.
    """

    def __init__(self) -> None:
        self._producers: Dict[str, Dict[str, Optional[str]]] = {}
        self._states: Dict[str, NodeState] = {}

    # region Construction
    def add_node(self, name: str) -> None:
        if name not in self._producers:
            self._producers[name] = {}
            self._states[name] = NodeState.pending

    def add_edge(
        self, consumer: str, producer: str, reason: Optional[str] = None
    ) -> None:
        """Declare that ``consumer`` depends on ``producer``.

        Raises
        ------
        DependencyCycleError
            If ``producer`` already depends on ``consumer``, directly or
            through other nodes, or if both are the same node.
        """
        self.check_edge(consumer, producer)
        self.add_node(consumer)
        self.add_node(producer)
        self._producers[consumer][producer] = reason

    def check_edge(self, consumer: str, producer: str) -> None:
        """Raise DependencyCycleError if the edge could not be added."""
        if consumer == producer:
            raise DependencyCycleError(
                f"'{consumer}' cannot depend on itself"
            )
        path = self._find_path(producer, consumer)
        if path is not None:
            cycle = " -> ".join([consumer] + path)
            raise DependencyCycleError(
                f"Declaring that '{consumer}' depends on '{producer}' would "
                f"create a dependency cycle: {cycle}"
            )

    def _find_path(self, start: str, target: str) -> Optional[List[str]]:
        """Return the chain of producers leading from start to target."""
        stack = [(start, [start])]
        seen = set()
        while stack:
            node, path = stack.pop()
            if node == target:
                return path
            if node in seen:
                continue
            seen.add(node)
            for producer in self._producers.get(node, {}):
                stack.append((producer, path + [producer]))
        return None

    # endregion

    # region Queries
    @property
    def nodes(self) -> List[str]:
        return list(self._producers)

    def producers_of(self, name: str) -> List[str]:
        return list(self._producers[name])

    def dependents_of(self, name: str) -> List[str]:
        return [
            node
            for node, producers in self._producers.items()
            if name in producers
        ]

    def reason(self, consumer: str, producer: str) -> Optional[str]:
        return self._producers[consumer][producer]

    def state(self, name: str) -> NodeState:
        return self._states[name]

    def topological_order(self) -> List[str]:
        """Return every node with producers first, in declaration order."""
        order: List[str] = []
        placed = set()
        remaining = list(self._producers)
        while remaining:
            batch = [
                node
                for node in remaining
                if all(p in placed for p in self._producers[node])
            ]
            for node in batch:
                order.append(node)
                placed.add(node)
            remaining = [node for node in remaining if node not in placed]
        return order

    def ready(self) -> List[str]:
        """Return the pending nodes whose producers have all completed."""
        return [
            node
            for node in self.topological_order()
            if self._states[node] == NodeState.pending
            and all(
                self._states[p] == NodeState.complete
                for p in self._producers[node]
            )
        ]

    # endregion

    # region Deployment state
    def start(self, name: str) -> None:
        """Mark a node as in progress.

        Raises
        ------
        DependencyNotSatisfiedError
            If any producer has not completed, or the node is not pending.
        """
        state = self._states[name]
        if state != NodeState.pending:
            raise DependencyNotSatisfiedError(
                f"Cannot start '{name}': it is already {state.value}"
            )
        waiting = [
            f"{p} ({self._states[p].value})"
            for p in self._producers[name]
            if self._states[p] != NodeState.complete
        ]
        if waiting:
            raise DependencyNotSatisfiedError(
                f"Cannot start '{name}' before its dependencies complete: "
                + ", ".join(waiting)
            )
        self._states[name] = NodeState.in_progress

    def complete(self, name: str) -> None:
        if self._states[name] != NodeState.in_progress:
            raise DependencyNotSatisfiedError(
                f"Cannot complete '{name}': it is "
                f"{self._states[name].value}, not in progress"
            )
        self._states[name] = NodeState.complete

    def _dependents_closure(self, name: str) -> List[str]:
        found: List[str] = []
        stack = [name]
        while stack:
            for dependent in self.dependents_of(stack.pop()):
                if dependent not in found:
                    found.append(dependent)
                    stack.append(dependent)
        return found

    def _rollback_order(self) -> List[str]:
        return [
            node
            for node in reversed(self.topological_order())
            if self._states[node] == NodeState.complete
        ]

    def fail(self, name: str, error: Optional[str] = None) -> FailureOutcome:
        """Mark a node as failed and cancel everything waiting on it.

        Returns
        -------
        FailureOutcome
            The cancelled dependents and the completed nodes to roll back,
            in reverse dependency order.
        """
        self._states[name] = NodeState.failed
        cancelled = []
        for dependent in self._dependents_closure(name):
            if self._states[dependent] == NodeState.pending:
                self._states[dependent] = NodeState.cancelled
                cancelled.append(dependent)
        return FailureOutcome(
            failed=[name],
            cancelled=cancelled,
            rollback=self._rollback_order(),
            errors={name: error} if error else {},
        )

    # endregion

    def execute(
        self,
        operation: Callable[[str, threading.Event], Any],
        max_workers: int = 4,
    ) -> Optional[FailureOutcome]:
        """Run ``operation`` for every node, in parallel where edges allow.

        ``operation`` receives the node name and a cancellation event that
        is set as soon as any node fails, so long-running steps can stop
        early. After a failure no further node is started.

        Returns
        -------
        Optional[FailureOutcome]
            None when every node completed, otherwise what failed, what was
            cancelled and what must be rolled back.
        """
        cancel_event = threading.Event()
        running: Dict[Future, str] = {}
        failed: List[str] = []
        errors: Dict[str, str] = {}

        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            while True:
                if not failed:
                    for name in self.ready():
                        self.start(name)
                        running[pool.submit(operation, name, cancel_event)] = (
                            name
                        )
                if not running:
                    break

                done, _ = wait(list(running), return_when=FIRST_COMPLETED)
                for future in done:
                    name = running.pop(future)
                    error = future.exception()
                    if error is None:
                        self.complete(name)
                        continue
                    self._states[name] = NodeState.failed
                    failed.append(name)
                    errors[name] = str(error)
                    cancel_event.set()

        if not failed:
            return None

        cancelled = []
        for node in self.topological_order():
            if self._states[node] == NodeState.pending:
                self._states[node] = NodeState.cancelled
                cancelled.append(node)
        return FailureOutcome(
            failed=failed,
            cancelled=cancelled,
            rollback=self._rollback_order(),
            errors=errors,
        )


class StackDependencyOrchestrator:
    """Declares ordering edges on CDK constructs, validating them first.

    A construct edge that crosses stacks also records the edge between the
    two stacks, so a later stack edge in the opposite direction is rejected
    as a cycle.

    Parameters
    ----------
    graph : Optional[DependencyGraph], optional
        Graph that records every declared edge, by default a new graph
    """

    def __init__(self, graph: Optional[DependencyGraph] = None) -> None:
        self.graph = graph or DependencyGraph()

    @staticmethod
    def _name(dependable: Any, override: Optional[str] = None) -> str:
        if override:
            return override
        node = getattr(dependable, "node", None)
        if node is None:
            raise TypeError(
                f"{type(dependable).__name__} has no construct path; pass "
                "producer_name to name it"
            )
        return node.path

    @staticmethod
    def _stack_name(dependable: Any) -> Optional[str]:
        """Path of the stack that holds a construct, None for grants."""
        if getattr(dependable, "node", None) is None:
            return None
        # Deferred so the graph itself can be used without the jsii runtime
        from aws_cdk import Stack

        return Stack.of(dependable).node.path

    def declare_dependency(
        self,
        consumer: "Construct",
        producer: "IDependable",
        producer_name: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> None:
        """Make ``consumer`` wait for ``producer``.

        Parameters
        ----------
        consumer : Construct
            The construct that must be created second.
        producer : IDependable
            The construct or grant that must exist first.
        producer_name : Optional[str], optional
            Name for producers without a construct path, such as grants,
            by default None
        reason : Optional[str], optional
            Why the edge exists, by default None

        Raises
        ------
        DependencyCycleError
            If the edge, or the stack edge it implies, closes a cycle. Nothing
            is recorded or applied in that case.
        """
        edges = [
            (self._name(consumer), self._name(producer, producer_name))
        ]
        consumer_stack = self._stack_name(consumer)
        producer_stack = self._stack_name(producer)
        if (
            consumer_stack is not None
            and producer_stack is not None
            and consumer_stack != producer_stack
        ):
            edges.append((consumer_stack, producer_stack))

        for edge_consumer, edge_producer in edges:
            self.graph.check_edge(edge_consumer, edge_producer)
        for edge_consumer, edge_producer in edges:
            self.graph.add_edge(edge_consumer, edge_producer, reason)
        consumer.node.add_dependency(producer)

    def declare_stack_dependency(
        self,
        consumer_stack: "Stack",
        producer_stack: "Stack",
        reason: Optional[str] = None,
    ) -> None:
        """Make a whole stack deploy only after another stack has deployed.

        Parameters
        ----------
        consumer_stack : Stack
            The stack deployed second.
        producer_stack : Stack
            The stack deployed first.
        reason : Optional[str], optional
            Why the edge exists, by default None
        """
        self.graph.add_edge(
            self._name(consumer_stack), self._name(producer_stack), reason
        )
        consumer_stack.add_stack_dependency(producer_stack, reason)

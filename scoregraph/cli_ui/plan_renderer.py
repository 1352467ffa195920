"""Terminal rendering of execution plans.

Provides a level table and a dependency tree using Rich.

NOTE: render_levels() shows which nodes share a barrier but not the edges
between them. Use render_tree() to see each target's dependency chain.
"""

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from scoregraph.core.graph import Graph
from scoregraph.core.models import ExecutionPlan


class PlanRenderer:
    """Renders an ExecutionPlan for a Graph.

    Nodes on the graph's critical path (longest dependency chain) are
    highlighted, since they bound the number of levels any run needs.
    """

    CRITICAL_STYLE = "magenta bold"
    NODE_STYLE = "cyan"

    def __init__(self, graph: Graph, console: Console | None = None):
        self.graph = graph
        self.console = console or Console()
        self._critical = set(graph.critical_path())

    def _label(self, node_id: str) -> str:
        style = self.CRITICAL_STYLE if node_id in self._critical else self.NODE_STYLE
        return f"[{style}]{escape(node_id)}[/]"

    @staticmethod
    def scope(plan: ExecutionPlan) -> str:
        return "full graph" if plan.targets is None else f"targets: {', '.join(plan.targets)}"

    @staticmethod
    def describe(plan: ExecutionPlan) -> str:
        """Size and average level width of a plan."""
        return (
            f"{plan.total_nodes} nodes, {plan.depth} levels, "
            f"parallelism {plan.estimated_parallelism:.2f}"
        )

    def render_levels(self, plan: ExecutionPlan) -> Table:
        """One row per level, nodes listed in execution priority order."""
        table = Table(title="Execution Plan")
        table.add_column("Level", justify="right", style="dim")
        table.add_column("Width", justify="right")
        table.add_column("Nodes")

        for index, level in enumerate(plan.levels):
            table.add_row(str(index), str(len(level)), "  ".join(self._label(n) for n in level))

        return table

    def render_tree(self, plan: ExecutionPlan, max_depth: int = 50) -> Tree:
        """Dependency tree rooted at the plan's sinks (or its targets).

        A node reached again on another branch is shown once and marked as
        already listed, so shared dependencies do not blow the tree up.
        """
        planned = set(plan.node_ids)
        if plan.targets is not None:
            roots = list(plan.targets)
        else:
            roots = [n for n in plan.node_ids if not any(d in planned for d in self.graph.dependents(n))]

        tree = Tree("[bold]Dependencies[/]")
        visited: set[str] = set()
        for root in roots:
            self._add_node(tree, root, planned, visited, depth=0, max_depth=max_depth)
        return tree

    def _add_node(
        self,
        parent: Tree,
        node_id: str,
        planned: set[str],
        visited: set[str],
        depth: int,
        max_depth: int,
    ) -> None:
        if node_id in visited:
            parent.add(f"{self._label(node_id)} [dim](see above)[/]")
            return
        visited.add(node_id)

        node = self.graph[node_id]
        label = self._label(node_id)
        if node.description:
            label += f" [dim]{escape(node.description)}[/]"
        branch = parent.add(label)

        if depth >= max_depth:
            branch.add("[dim]...[/]")
            return
        for dep_id in node.dependencies:
            if dep_id in planned:
                self._add_node(branch, dep_id, planned, visited, depth + 1, max_depth)

    def show(self, plan: ExecutionPlan) -> None:
        self.console.print(f"[bold]Plan:[/] {escape(self.scope(plan))}")
        self.console.print(f"[dim]{self.describe(plan)}[/]")
        self.console.print(self.render_levels(plan))
        self.console.print()
        self.console.print(self.render_tree(plan))

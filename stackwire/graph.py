from collections.abc import Iterable, Mapping, Sequence


def find_cycle(nodes: Sequence[str], edges: Mapping[str, Iterable[str]]) -> list[str] | None:
    """Return one cycle as a node path (first node repeated at the end), or None.

    Iterative three-colour DFS, so deep graphs cannot overflow the interpreter stack.
    Edges pointing at unknown nodes are ignored; dangling references are reported elsewhere.
    """
    white, grey, black = 0, 1, 2
    colour = dict.fromkeys(nodes, white)

    for start in nodes:
        if colour[start] != white:
            continue
        path = [start]
        stack = [iter(edges.get(start, ()))]
        colour[start] = grey
        while stack:
            nxt = next(stack[-1], None)
            if nxt is None:
                colour[path.pop()] = black
                stack.pop()
                continue
            if nxt not in colour:
                continue
            if colour[nxt] == grey:
                return [*path[path.index(nxt) :], nxt]
            if colour[nxt] == white:
                colour[nxt] = grey
                path.append(nxt)
                stack.append(iter(edges.get(nxt, ())))
    return None


def topological_order(nodes: Sequence[str], edges: Mapping[str, Iterable[str]]) -> list[str]:
    """Order nodes so every node comes after the nodes it depends on.

    ``edges[a]`` lists the nodes ``a`` depends on. Ties are broken by the position in
    ``nodes``, which keeps the result stable for identical input. Callers must reject cycles
    with ``find_cycle`` first; nodes left on a cycle are omitted from the result.
    """
    position = {node: i for i, node in enumerate(nodes)}
    dependents: dict[str, list[str]] = {node: [] for node in nodes}
    pending = dict.fromkeys(nodes, 0)
    for node in nodes:
        for dep in set(edges.get(node, ())):
            if dep in position and dep != node:
                dependents[dep].append(node)
                pending[node] += 1

    ready = sorted((n for n in nodes if pending[n] == 0), key=position.__getitem__)
    order = []
    while ready:
        node = ready.pop(0)
        order.append(node)
        released = []
        for dependent in dependents[node]:
            pending[dependent] -= 1
            if pending[dependent] == 0:
                released.append(dependent)
        if released:
            ready = sorted([*ready, *released], key=position.__getitem__)
    return order

"""Witness call stacks for reachable vulnerabilities.

For every vulnerability with a call sink, a breadth-first search walks the
call graph backwards from the sink until it reaches entry functions. Each
function is expanded at most once, so the search is linear in the number of
call edges but does not enumerate every path. Among the shortest stacks found,
the one going through the fewest unresolved (dynamic) call sites is kept.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set

from .models import CallGraph, CallSite, CallStack, FuncNode, Result, StackEntry, Vuln
from .ordering import call_site_less, func_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _CallChain:
    """A path from ``function`` down to the sink, innermost frame last."""
    function: FuncNode
    call: Optional[CallSite] = None
    child: Optional["_CallChain"] = None

    def call_stack(self) -> CallStack:
        entries = []
        chain: Optional[_CallChain] = self
        while chain is not None:
            entries.append(StackEntry(function=chain.function, call=chain.call))
            chain = chain.child
        return tuple(entries)


def call_stacks(result: Result, max_workers: Optional[int] = None) -> Dict[Vuln, Optional[CallStack]]:
    """Compute a witness for every vulnerability of ``result`` that has a call sink.

    Searches run in a thread pool, one task per vulnerability. Vulns without
    a call sink are left out of the mapping; those whose sink is not reachable
    from an entry function map to None.
    """
    result.validate()
    vulns = [v for v in result.vulns if v.call_sink is not None]
    if not vulns:
        return {}

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [(vuln, executor.submit(call_stack, vuln, result)) for vuln in vulns]

    stacks: Dict[Vuln, Optional[CallStack]] = {}
    for vuln, future in futures:
        stacks[vuln] = future.result()

    found = sum(1 for stack in stacks.values() if stack is not None)
    logger.info("Found witnesses for %d of %d called vulnerabilities", found, len(stacks))
    return stacks


def call_stack(vuln: Vuln, result: Result) -> Optional[CallStack]:
    """Find the representative call stack for ``vuln``.

    This is a shortest stack from an entry function to the sink with the
    least number of unresolved call sites, or None if no entry reaches it.
    """
    return best_stack(candidate_stacks(vuln, result))


def candidate_stacks(vuln: Vuln, result: Result) -> List[CallStack]:
    """All shortest stacks found for ``vuln``, in discovery order.

    Each function is expanded at most once, so these are not all shortest
    paths of the graph.
    """
    if vuln.call_sink is None:
        return []

    graph = result.call_graph
    sink = graph.function(vuln.call_sink)
    entries = {fn.id for fn in result.entries()}
    if sink.id in entries:
        return [(StackEntry(function=sink),)]

    # Stacks through another symbol of the same flaw are not unique witnesses.
    skip = sibling_sinks(vuln, result)

    seen: Set[int] = set()
    candidates: List[CallStack] = []
    level = [_CallChain(function=sink)]
    depth = 1
    while level and not candidates:
        next_level: List[_CallChain] = []
        for chain in level:
            fid = chain.function.id
            if fid in seen:
                continue
            seen.add(fid)

            # One call site per caller is enough since callers are expanded once.
            for cs in callsites(graph, graph.incoming(fid), seen):
                caller = graph.function(cs.parent)
                link = _CallChain(function=caller, call=cs, child=chain)
                if caller.id in entries:
                    candidates.append(link.call_stack())
                if caller.id not in skip:
                    next_level.append(link)
        level = next_level
        depth += 1

    logger.debug(
        "%r: %d candidate stack(s) after %d level(s), %d function(s) expanded",
        vuln, len(candidates), depth - 1, len(seen),
    )
    return candidates


def sibling_sinks(vuln: Vuln, result: Result) -> Set[int]:
    """Call sinks of the other symbols affected by the same flaw as ``vuln``."""
    return {
        v.call_sink
        for v in result.vulns
        if v.call_sink is not None and vuln.is_sibling_of(v)
    }


def callsites(graph: CallGraph, sites: Iterable[CallSite], visited: Set[int]) -> List[CallSite]:
    """Pick the smallest call site for each caller not yet visited.

    The returned sites are ordered by their caller function. All sites are
    expected to share the same callee.
    """
    smallest: Dict[int, CallSite] = {}
    for cs in sites:
        if cs.parent in visited:
            continue
        if call_site_less(cs, smallest.get(cs.parent)):
            smallest[cs.parent] = cs

    callers = sorted((graph.function(fid) for fid in smallest), key=func_key)
    return [smallest[fn.id] for fn in callers]


def weight(stack: CallStack) -> int:
    """Number of unresolved call sites in ``stack``; smaller reads easier."""
    return sum(1 for e in stack if e.call is not None and not e.call.resolved)


def best_stack(candidates: List[CallStack]) -> Optional[CallStack]:
    """Lowest-weight candidate; ties keep discovery order."""
    if not candidates:
        return None
    return min(candidates, key=weight)

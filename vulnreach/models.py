"""Read-only graph records consumed by the witness search.

Functions, call sites and packages are addressed by stable integer ids.
``CallGraph`` and ``ImportGraph`` keep the adjacency indexes, so records never
hold references to each other.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple


class GraphContractError(ValueError):
    """Raised when the upstream analysis hands over an inconsistent graph."""


@dataclass(frozen=True)
class Position:
    filename: str
    line: int
    column: int = 0

    def __str__(self) -> str:
        if self.column:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.filename}:{self.line}"


@dataclass(frozen=True)
class FuncNode:
    """A function or method in the analyzed program."""
    id: int
    name: str
    pkg_path: str
    recv_type: str = ""
    pos: Optional[Position] = None

    @property
    def qualified_name(self) -> str:
        if self.recv_type:
            return f"{self.recv_type}.{self.name}"
        return f"{self.pkg_path}.{self.name}"

    def __str__(self) -> str:
        return self.qualified_name


@dataclass(frozen=True)
class CallSite:
    """A call expression from ``parent`` to ``callee``.

    ``resolved`` is False when the target came from an approximated dispatch
    set (interface or dynamic call) rather than a static resolution.
    """
    parent: int
    callee: int
    name: str
    recv_type: str = ""
    pos: Optional[Position] = None
    resolved: bool = True

    @property
    def qualified_name(self) -> str:
        if self.recv_type:
            return f"{self.recv_type}.{self.name}"
        return self.name


class CallGraph:
    """Arena of functions and call sites with per-function edge indexes."""

    def __init__(self) -> None:
        self.functions: Dict[int, FuncNode] = {}
        self._incoming: Dict[int, List[CallSite]] = {}
        self._outgoing: Dict[int, List[CallSite]] = {}

    def __len__(self) -> int:
        return len(self.functions)

    def __contains__(self, func_id: object) -> bool:
        return func_id in self.functions

    def add_function(self, fn: FuncNode) -> FuncNode:
        if fn.id in self.functions:
            raise GraphContractError(f"duplicate function id {fn.id} ({fn})")
        self.functions[fn.id] = fn
        return fn

    def add_call_site(self, site: CallSite) -> CallSite:
        for end in (site.parent, site.callee):
            if end not in self.functions:
                raise GraphContractError(
                    f"call site {site.qualified_name} refers to unknown function id {end}"
                )
        self._incoming.setdefault(site.callee, []).append(site)
        self._outgoing.setdefault(site.parent, []).append(site)
        return site

    def function(self, func_id: int) -> FuncNode:
        try:
            return self.functions[func_id]
        except KeyError:
            raise GraphContractError(f"unknown function id {func_id}") from None

    def incoming(self, func_id: int) -> Sequence[CallSite]:
        """Call sites whose callee is ``func_id``."""
        return tuple(self._incoming.get(func_id, ()))

    def outgoing(self, func_id: int) -> Sequence[CallSite]:
        """Call sites made from the body of ``func_id``."""
        return tuple(self._outgoing.get(func_id, ()))

    def call_sites(self) -> List[CallSite]:
        return [cs for sites in self._outgoing.values() for cs in sites]

    def callers_map(self) -> Dict[str, List[str]]:
        """Map each caller's display name to the sorted names of its callees.

        Parallel call sites between the same pair of functions count once.
        """
        seen = set()
        result: Dict[str, List[str]] = {}
        for fn in self.functions.values():
            for cs in self.incoming(fn.id):
                edge = (cs.parent, fn.id)
                if edge in seen:
                    continue
                seen.add(edge)
                caller = self.function(cs.parent).qualified_name
                result.setdefault(caller, []).append(fn.qualified_name)
        for callees in result.values():
            callees.sort()
        return result


@dataclass(frozen=True)
class PackageNode:
    id: int
    path: str
    module_path: str = ""
    imported_by: Tuple[int, ...] = ()


class ImportGraph:
    """Packages of the analyzed program keyed by id."""

    def __init__(self) -> None:
        self.packages: Dict[int, PackageNode] = {}

    def __len__(self) -> int:
        return len(self.packages)

    def __contains__(self, pkg_id: object) -> bool:
        return pkg_id in self.packages

    def add_package(self, pkg: PackageNode) -> PackageNode:
        if pkg.id in self.packages:
            raise GraphContractError(f"duplicate package id {pkg.id} ({pkg.path})")
        self.packages[pkg.id] = pkg
        return pkg

    def package(self, pkg_id: int) -> PackageNode:
        try:
            return self.packages[pkg_id]
        except KeyError:
            raise GraphContractError(f"unknown package id {pkg_id}") from None

    def importers_map(self) -> Dict[str, List[str]]:
        """Map each importing package path to the sorted paths it imports."""
        result: Dict[str, List[str]] = {}
        for pkg in self.packages.values():
            for importer_id in pkg.imported_by:
                importer = self.package(importer_id)
                result.setdefault(importer.path, []).append(pkg.path)
        for imports in result.values():
            imports.sort()
        return result


@dataclass(frozen=True)
class OSVEntry:
    """The vulnerability database record a ``Vuln`` originates from."""
    id: str
    summary: str = ""
    details: str = ""
    aliases: Tuple[str, ...] = ()


@dataclass(eq=False)
class Vuln:
    """One (database entry, affected symbol) pair found in the program.

    Instances hash by identity: the witness mapping is keyed per instance.
    """
    osv: OSVEntry
    symbol: str
    pkg_path: str
    mod_path: str = ""
    call_sink: Optional[int] = None
    import_sink: Optional[int] = None

    def is_sibling_of(self, other: "Vuln") -> bool:
        """True when both stand for the same flaw at different symbols."""
        return (
            other is not self
            and other.osv.id == self.osv.id
            and other.import_sink == self.import_sink
        )

    def __repr__(self) -> str:
        return f"Vuln({self.osv.id}, {self.pkg_path}.{self.symbol})"


@dataclass
class Result:
    """Everything the upstream analysis produced for one program."""
    call_graph: CallGraph
    entry_functions: Sequence[int] = ()
    vulns: Sequence[Vuln] = ()
    imports: ImportGraph = field(default_factory=ImportGraph)

    def entries(self) -> List[FuncNode]:
        return [self.call_graph.function(fid) for fid in self.entry_functions]

    def validate(self) -> None:
        """Raise ``GraphContractError`` if any reference is dangling."""
        graph = self.call_graph
        for fid in self.entry_functions:
            graph.function(fid)
        for cs in graph.call_sites():
            graph.function(cs.parent)
            graph.function(cs.callee)
        for pkg in self.imports.packages.values():
            for importer_id in pkg.imported_by:
                self.imports.package(importer_id)
        for vuln in self.vulns:
            if vuln.call_sink is not None and vuln.call_sink not in graph:
                raise GraphContractError(
                    f"{vuln!r} call sink {vuln.call_sink} is not in the call graph"
                )
            if vuln.import_sink is not None and vuln.import_sink not in self.imports:
                raise GraphContractError(
                    f"{vuln!r} import sink {vuln.import_sink} is not in the import graph"
                )


@dataclass(frozen=True)
class StackEntry:
    """One frame of a witness.

    ``call`` is the call site inducing the next frame; None on the last frame.
    """
    function: FuncNode
    call: Optional[CallSite] = None


CallStack = Tuple[StackEntry, ...]

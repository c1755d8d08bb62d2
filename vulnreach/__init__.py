"""vulnreach: witness call stacks for reachable dependency vulnerabilities."""

__version__ = "0.1.0"

from .models import (  # noqa: E402
    CallGraph,
    CallSite,
    CallStack,
    FuncNode,
    GraphContractError,
    ImportGraph,
    OSVEntry,
    PackageNode,
    Position,
    Result,
    StackEntry,
    Vuln,
)
from .witness import call_stack, call_stacks, weight  # noqa: E402

__all__ = [
    "CallGraph",
    "CallSite",
    "CallStack",
    "FuncNode",
    "GraphContractError",
    "ImportGraph",
    "OSVEntry",
    "PackageNode",
    "Position",
    "Result",
    "StackEntry",
    "Vuln",
    "call_stack",
    "call_stacks",
    "weight",
]

"""Text and JSON reports for witness call stacks."""

from __future__ import annotations

import json
import textwrap
from typing import Any, Dict, List, Mapping, Optional

from .models import CallStack, Position, Result, StackEntry, Vuln

LABEL_WIDTH = 16
LINE_WIDTH = 80 - LABEL_WIDTH

Stacks = Mapping[Vuln, Optional[CallStack]]


def indent(text: str, n: int) -> str:
    """Indent every non-empty line of ``text`` by ``n`` spaces."""
    return textwrap.indent(text, " " * n)


def wrap(text: str, width: int = LINE_WIDTH) -> str:
    """Re-flow ``text`` so no line is wider than ``width``."""
    return "\n".join(textwrap.wrap(" ".join(text.split()), width=width))


def _frame_position(entry: StackEntry) -> Optional[Position]:
    if entry.call is not None and entry.call.pos is not None:
        return entry.call.pos
    return entry.function.pos


def _prefix(pos: Optional[Position]) -> str:
    return f"{pos}: " if pos is not None else ""


def summarize_call_stack(stack: CallStack) -> str:
    """One-line summary of a witness, e.g. ``main.go:5:2: app.main calls a.A``."""
    names = [str(e.function) for e in stack]
    prefix = _prefix(_frame_position(stack[0]))
    if len(names) == 1:
        return f"{prefix}{names[0]}"
    if len(names) == 2:
        return f"{prefix}{names[0]} calls {names[1]}"
    if len(names) == 3:
        return f"{prefix}{names[0]} calls {names[1]}, which calls {names[2]}"
    return f"{prefix}{names[0]} calls {names[1]}, which eventually calls {names[-1]}"


def format_call_stack(stack: CallStack) -> str:
    """One line per call in the witness, entry function first."""
    if len(stack) == 1:
        return f"{_prefix(stack[0].function.pos)}{stack[0].function}"
    lines = []
    for entry, nxt in zip(stack, stack[1:]):
        at = f" at {entry.call.pos}" if entry.call is not None and entry.call.pos is not None else ""
        lines.append(f"{entry.function} calls {nxt.function}{at}")
    return "\n".join(lines)


def _label(name: str, value: str) -> str:
    return f"{name + ':':<{LABEL_WIDTH}}{value}"


def render_text(result: Result, stacks: Stacks, verbose: bool = False) -> str:
    """Human-readable report grouped by database entry.

    Entries with at least one witness come first, numbered; the remaining
    entries are listed as imported or required but not called.
    """
    by_osv: Dict[str, List[Vuln]] = {}
    for vuln in result.vulns:
        by_osv.setdefault(vuln.osv.id, []).append(vuln)

    called = {osv_id: [v for v in group if stacks.get(v) is not None] for osv_id, group in by_osv.items()}
    affected = [osv_id for osv_id, group in called.items() if group]
    uncalled = [osv_id for osv_id, group in called.items() if not group]

    blocks: List[str] = []
    for number, osv_id in enumerate(affected, 1):
        group = called[osv_id]
        first = group[0]
        lines = [f"Vulnerability #{number}: {osv_id}"]
        if first.osv.summary:
            lines.append(indent(wrap(first.osv.summary), 4))
        if first.mod_path:
            lines.append(indent(_label("Module", first.mod_path), 2))
        lines.append(indent(_label("Package", first.pkg_path), 2))
        lines.append(indent("Example traces found:", 2))
        for trace_no, vuln in enumerate(group, 1):
            stack = stacks[vuln]
            if verbose:
                lines.append(indent(f"#{trace_no}: for function {vuln.pkg_path}.{vuln.symbol}", 4))
                lines.append(indent(format_call_stack(stack), 6))
            else:
                lines.append(indent(f"#{trace_no}: {summarize_call_stack(stack)}", 4))
        blocks.append("\n".join(lines))

    if uncalled:
        lines = ["The following vulnerabilities are imported or required but not called:"]
        for osv_id in uncalled:
            first = by_osv[osv_id][0]
            lines.append(indent(f"{osv_id} ({first.pkg_path})", 2))
        blocks.append("\n".join(lines))

    if affected:
        noun = "vulnerability" if len(affected) == 1 else "vulnerabilities"
        blocks.append(f"Your code is affected by {len(affected)} {noun}.")
    else:
        blocks.append("No vulnerabilities found.")
    return "\n\n".join(blocks) + "\n"


def _frame(entry: StackEntry) -> Dict[str, Any]:
    pos = _frame_position(entry)
    return {
        "package": entry.function.pkg_path,
        "function": entry.function.name,
        "receiver": entry.function.recv_type,
        "position": (
            {"filename": pos.filename, "line": pos.line, "column": pos.column}
            if pos is not None
            else None
        ),
    }


def to_findings(result: Result, stacks: Stacks) -> List[Dict[str, Any]]:
    """One finding per vulnerability with a call sink.

    Import-only vulnerabilities are left out. Traces list the vulnerable
    symbol first.
    """
    findings = []
    for vuln in result.vulns:
        if vuln.call_sink is None:
            continue
        stack = stacks.get(vuln)
        findings.append(
            {
                "osv": vuln.osv.id,
                "symbol": vuln.symbol,
                "package": vuln.pkg_path,
                "module": vuln.mod_path,
                "called": stack is not None,
                "trace": [_frame(e) for e in reversed(stack)] if stack is not None else None,
            }
        )
    return findings


def render_json(result: Result, stacks: Stacks) -> str:
    return json.dumps({"findings": to_findings(result, stacks)}, indent=2)

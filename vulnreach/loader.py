"""Build a ``Result`` from the JSON document written by the upstream analysis."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import (
    CallGraph,
    CallSite,
    FuncNode,
    GraphContractError,
    ImportGraph,
    OSVEntry,
    PackageNode,
    Position,
    Result,
    Vuln,
)

logger = logging.getLogger(__name__)


def load_result(path: Path) -> Result:
    """Read and validate a result file.

    Raises:
        OSError: the file cannot be read
        json.JSONDecodeError: the file is not JSON
        GraphContractError: the file is not UTF-8 or the document is not a
            consistent result
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise GraphContractError(f"result file is not valid UTF-8: {exc}") from exc
    return result_from_dict(json.loads(text))


def result_from_dict(payload: Dict[str, Any]) -> Result:
    if not isinstance(payload, dict):
        raise GraphContractError("result document must be a JSON object")

    graph = CallGraph()
    for row in _rows(payload, "functions"):
        graph.add_function(
            FuncNode(
                id=_int(_require(row, "id", "function"), "function id"),
                name=_require(row, "name", "function"),
                pkg_path=row.get("pkg_path", ""),
                recv_type=row.get("recv_type", ""),
                pos=_position(row.get("pos")),
            )
        )
    for row in _rows(payload, "call_sites"):
        resolved = row.get("resolved", True) if isinstance(row, dict) else True
        if not isinstance(resolved, bool):
            raise GraphContractError(f"call site 'resolved' must be true or false: {row!r}")
        graph.add_call_site(
            CallSite(
                parent=_int(_require(row, "parent", "call site"), "call site parent"),
                callee=_int(_require(row, "callee", "call site"), "call site callee"),
                name=row.get("name", ""),
                recv_type=row.get("recv_type", ""),
                pos=_position(row.get("pos")),
                resolved=resolved,
            )
        )

    imports = ImportGraph()
    for row in _rows(payload, "packages"):
        imported_by = row.get("imported_by", []) if isinstance(row, dict) else []
        if not isinstance(imported_by, list):
            raise GraphContractError(f"package 'imported_by' must be a list: {row!r}")
        imports.add_package(
            PackageNode(
                id=_int(_require(row, "id", "package"), "package id"),
                path=_require(row, "path", "package"),
                module_path=row.get("module_path", ""),
                imported_by=tuple(_int(i, "importer id") for i in imported_by),
            )
        )

    vulns = []
    for row in _rows(payload, "vulns"):
        entry = _require(row, "osv", "vuln")
        if isinstance(entry, str):
            entry = {"id": entry}
        vulns.append(
            Vuln(
                osv=OSVEntry(
                    id=_require(entry, "id", "osv entry"),
                    summary=entry.get("summary", ""),
                    details=entry.get("details", ""),
                    aliases=tuple(entry.get("aliases", ())),
                ),
                symbol=row.get("symbol", ""),
                pkg_path=row.get("pkg_path", ""),
                mod_path=row.get("mod_path", ""),
                call_sink=_optional_int(row.get("call_sink"), "call sink"),
                import_sink=_optional_int(row.get("import_sink"), "import sink"),
            )
        )

    result = Result(
        call_graph=graph,
        entry_functions=tuple(_int(fid, "entry function id") for fid in _rows(payload, "entry_functions")),
        vulns=vulns,
        imports=imports,
    )
    result.validate()
    logger.debug(
        "Loaded %d functions, %d packages, %d entries, %d vulns",
        len(graph), len(imports), len(result.entry_functions), len(vulns),
    )
    return result


def _rows(payload: Dict[str, Any], key: str) -> List[Any]:
    rows = payload.get(key, [])
    if not isinstance(rows, list):
        raise GraphContractError(f"'{key}' must be a list, got {type(rows).__name__}")
    return rows


def _require(row: Dict[str, Any], key: str, kind: str) -> Any:
    if not isinstance(row, dict) or key not in row:
        raise GraphContractError(f"{kind} record is missing '{key}': {row!r}")
    return row[key]


def _int(value: Any, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise GraphContractError(f"{what} must be an integer, got {value!r}")
    return value


def _optional_int(value: Any, what: str) -> Optional[int]:
    return None if value is None else _int(value, what)


def _position(raw: Any) -> Optional[Position]:
    if not raw:
        return None
    if not isinstance(raw, dict):
        raise GraphContractError(f"position must be an object, got {raw!r}")
    return Position(
        filename=raw.get("filename", ""),
        line=_int(raw.get("line", 0), "position line"),
        column=_int(raw.get("column", 0), "position column"),
    )

"""Pytest configuration and fixtures for vulnreach tests."""

import json
import shutil
import tempfile
from pathlib import Path
from typing import Generator, List, Optional

import pytest

from vulnreach.models import (
    CallGraph,
    CallSite,
    FuncNode,
    ImportGraph,
    OSVEntry,
    PackageNode,
    Position,
    Result,
    Vuln,
)


class GraphBuilder:
    """Small helper to assemble call graphs in tests."""

    def __init__(self, graph: Optional[CallGraph] = None):
        self.graph = graph if graph is not None else CallGraph()
        self.imports = ImportGraph()
        self.entries: List[int] = []
        self.vulns: List[Vuln] = []
        self._next_func = 1
        self._next_pkg = 1

    def func(self, name, line=None, pkg="example.com/app", recv="", filename="main.go",
             entry=False, func_id=None) -> FuncNode:
        if func_id is None:
            func_id = self._next_func
        self._next_func = max(self._next_func, func_id) + 1
        pos = Position(filename, line, 1) if line is not None else None
        fn = self.graph.add_function(FuncNode(id=func_id, name=name, pkg_path=pkg, recv_type=recv, pos=pos))
        if entry:
            self.entries.append(fn.id)
        return fn

    def call(self, caller: FuncNode, callee: FuncNode, line=None, resolved=True,
             filename="main.go", column=1) -> CallSite:
        pos = Position(filename, line, column) if line is not None else None
        return self.graph.add_call_site(
            CallSite(
                parent=caller.id,
                callee=callee.id,
                name=callee.name,
                recv_type=callee.recv_type,
                pos=pos,
                resolved=resolved,
            )
        )

    def package(self, path, imported_by=()) -> PackageNode:
        pkg = self.imports.add_package(PackageNode(id=self._next_pkg, path=path, imported_by=tuple(imported_by)))
        self._next_pkg += 1
        return pkg

    def vuln(self, osv_id, sink: Optional[FuncNode], import_sink: Optional[PackageNode] = None,
             symbol=None) -> Vuln:
        vuln = Vuln(
            osv=OSVEntry(id=osv_id),
            symbol=symbol or (sink.name if sink is not None else ""),
            pkg_path=sink.pkg_path if sink is not None else (import_sink.path if import_sink else ""),
            call_sink=sink.id if sink is not None else None,
            import_sink=import_sink.id if import_sink is not None else None,
        )
        self.vulns.append(vuln)
        return vuln

    def result(self) -> Result:
        return Result(
            call_graph=self.graph,
            entry_functions=tuple(self.entries),
            vulns=list(self.vulns),
            imports=self.imports,
        )


@pytest.fixture
def builder() -> GraphBuilder:
    return GraphBuilder()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture(autouse=True)
def temp_config_home(tmp_path: Path, monkeypatch) -> Path:
    """Point the config file at a temporary directory for every test."""
    home = tmp_path / "vulnreach-home"
    monkeypatch.setattr("vulnreach.config.BASE_DIR", home)
    monkeypatch.setattr("vulnreach.config.CONFIG_FILE", home / "config.toml")
    return home


@pytest.fixture
def sample_payload() -> dict:
    """A small analysis result.

    app.main reaches avuln.VulnData.Vuln1 through a.A (static calls) and
    avuln.VulnData.Vuln2 through b.B (dynamic last call). bvuln.Vuln is never
    called and archive/zip is only imported.
    """
    return {
        "functions": [
            {"id": 1, "name": "main", "pkg_path": "example.com/app",
             "pos": {"filename": "main.go", "line": 3, "column": 6}},
            {"id": 2, "name": "A", "pkg_path": "golang.org/amod/a",
             "pos": {"filename": "a.go", "line": 8, "column": 6}},
            {"id": 3, "name": "Vuln1", "pkg_path": "golang.org/amod/avuln", "recv_type": "VulnData",
             "pos": {"filename": "avuln.go", "line": 12, "column": 19}},
            {"id": 4, "name": "B", "pkg_path": "golang.org/bmod/b",
             "pos": {"filename": "b.go", "line": 4, "column": 6}},
            {"id": 5, "name": "Vuln2", "pkg_path": "golang.org/amod/avuln", "recv_type": "VulnData",
             "pos": {"filename": "avuln.go", "line": 16, "column": 19}},
            {"id": 6, "name": "Vuln", "pkg_path": "golang.org/bmod/bvuln",
             "pos": {"filename": "bvuln.go", "line": 5, "column": 6}},
        ],
        "call_sites": [
            {"parent": 1, "callee": 2, "name": "A", "resolved": True,
             "pos": {"filename": "main.go", "line": 5, "column": 2}},
            {"parent": 2, "callee": 3, "name": "Vuln1", "recv_type": "VulnData", "resolved": True,
             "pos": {"filename": "a.go", "line": 10, "column": 3}},
            {"parent": 1, "callee": 4, "name": "B", "resolved": True,
             "pos": {"filename": "main.go", "line": 6, "column": 2}},
            {"parent": 4, "callee": 5, "name": "Vuln2", "recv_type": "VulnData", "resolved": False,
             "pos": {"filename": "b.go", "line": 7, "column": 4}},
        ],
        "packages": [
            {"id": 1, "path": "example.com/app", "module_path": "example.com/app"},
            {"id": 2, "path": "golang.org/amod/avuln", "module_path": "golang.org/amod",
             "imported_by": [1]},
            {"id": 3, "path": "golang.org/bmod/bvuln", "module_path": "golang.org/bmod",
             "imported_by": [1]},
            {"id": 4, "path": "archive/zip", "module_path": "stdlib", "imported_by": [1]},
        ],
        "entry_functions": [1],
        "vulns": [
            {"osv": {"id": "VA", "summary": "Crash when decoding crafted input."},
             "symbol": "VulnData.Vuln1", "pkg_path": "golang.org/amod/avuln",
             "mod_path": "golang.org/amod", "call_sink": 3, "import_sink": 2},
            {"osv": {"id": "VA", "summary": "Crash when decoding crafted input."},
             "symbol": "VulnData.Vuln2", "pkg_path": "golang.org/amod/avuln",
             "mod_path": "golang.org/amod", "call_sink": 5, "import_sink": 2},
            {"osv": {"id": "VB"}, "symbol": "Vuln", "pkg_path": "golang.org/bmod/bvuln",
             "mod_path": "golang.org/bmod", "call_sink": 6, "import_sink": 3},
            {"osv": "STD", "symbol": "OpenReader", "pkg_path": "archive/zip",
             "mod_path": "stdlib", "import_sink": 4},
        ],
    }


@pytest.fixture
def sample_result_file(temp_dir: Path, sample_payload: dict) -> Path:
    path = temp_dir / "result.json"
    path.write_text(json.dumps(sample_payload, indent=2), encoding="utf-8")
    return path

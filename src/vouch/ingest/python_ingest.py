"""Lower Python test modules to analysis units.

Lowering runs two passes over the module ``ast``. The first indexes
declarations (classes, functions, decorators, data attributes) into a
:class:`ModuleResolver`; the second produces the node variant the scope
engine walks, resolving every call against that index.
"""

from __future__ import annotations

import ast
import builtins
import fnmatch
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

from vouch.analysis.nodes import (
    AnalysisUnit,
    AssertStatement,
    Construction,
    FunctionDecl,
    Invocation,
    Node,
    Reference,
    TypeDecl,
)
from vouch.analysis.resolution import Decorator, ModuleResolver
from vouch.analysis.symbols import (
    CONSTRUCTOR_NAME,
    DecoratorValue,
    Location,
    Symbol,
    SymbolKind,
)
from vouch.analysis.visitors import base_identifier, collect_imports, decorator_name, dotted_name
from vouch.invariants import require_not_none

DEFAULT_TEST_FILE_PATTERNS = ("test_*.py", "*_test.py")

_PROPERTY_DECORATORS = frozenset({"property", "functools.cached_property"})


@dataclass(frozen=True)
class _Scope:
    kind: str
    qual: str
    self_name: str | None = None
    class_qual: str | None = None


def module_name(path: Path, project_root: Path | None = None) -> str:
    rel = path.with_suffix("")
    if project_root is not None:
        try:
            rel = rel.resolve().relative_to(project_root.resolve())
        except ValueError:
            pass
    parts = list(rel.parts)
    if parts and parts[0] == "src":
        parts = parts[1:]
    if parts and parts[-1] == "__init__":
        parts = parts[:-1]
    return ".".join(part for part in parts if part not in ("", "/"))


def display_path(path: Path, project_root: Path | None = None) -> str:
    if project_root is not None:
        try:
            return path.resolve().relative_to(project_root.resolve()).as_posix()
        except ValueError:
            pass
    return path.as_posix()


def is_test_file(path: Path, patterns: Sequence[str]) -> bool:
    return any(fnmatch.fnmatch(path.name, pattern) for pattern in patterns)


def iter_test_paths(
    paths: Iterable[Path],
    *,
    patterns: Sequence[str] = DEFAULT_TEST_FILE_PATTERNS,
    exclude_dirs: Iterable[str] = (),
) -> list[Path]:
    """Expand input paths to test modules, pruning excluded directories early.

    Files named explicitly are kept whatever their name; directories
    contribute only the files matching ``patterns``.
    """
    excluded = set(exclude_dirs)
    out: list[Path] = []
    for path in paths:
        if path.is_dir():
            for root, dirnames, filenames in os.walk(path, topdown=True):
                dirnames[:] = sorted(d for d in dirnames if d not in excluded)
                for filename in sorted(filenames):
                    candidate = Path(root) / filename
                    if candidate.suffix == ".py" and is_test_file(candidate, patterns):
                        out.append(candidate)
        elif path.suffix == ".py" and not excluded & set(path.parts):
            out.append(path)
    return sorted(set(out))


def _looks_like_class(name: str) -> bool:
    return name[:1].isupper() and not name.isupper()


def _first_param(fn: ast.FunctionDef | ast.AsyncFunctionDef) -> str | None:
    args = fn.args.posonlyargs + fn.args.args
    if not args:
        return None
    return args[0].arg


class _DeclarationIndexer(ast.NodeVisitor):
    def __init__(self, resolver: ModuleResolver) -> None:
        self.resolver = resolver
        self.scopes: list[_Scope] = []
        self.scope_by_node: dict[ast.AST, _Scope] = {}
        self.pending_bases: list[tuple[str, list[str], tuple[_Scope, ...]]] = []
        self.closures: set[str] = set()

    def _child_qual(self, name: str) -> str:
        if self.scopes:
            return f"{self.scopes[-1].qual}.{name}"
        return self.resolver.qualify(name)

    def _decorator(self, node: ast.expr) -> Decorator | None:
        name = decorator_name(node)
        if name is None:
            return None
        values: tuple[DecoratorValue, ...] = ()
        if isinstance(node, ast.Call):
            values = tuple(
                DecoratorValue(name=None, value=ast.unparse(arg)) for arg in node.args
            ) + tuple(
                DecoratorValue(name=kw.arg, value=ast.unparse(kw.value))
                for kw in node.keywords
            )
        return Decorator(name=self.resolver.resolve_dotted(name), values=values)

    def visit_ClassDef(self, node: ast.ClassDef) -> None:  # noqa: N802
        qual = self._child_qual(node.name)
        self.resolver.register_class(qual)
        bases = [name for name in (base_identifier(base) for base in node.bases) if name]
        self.pending_bases.append((qual, bases, tuple(self.scopes)))
        scope = _Scope(kind="class", qual=qual)
        self.scope_by_node[node] = scope
        self.scopes.append(scope)
        for stmt in node.body:
            self.visit(stmt)
        self.scopes.pop()

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:  # noqa: N802
        self._visit_function(node)

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> None:  # noqa: N802
        self._visit_function(node)

    def _visit_function(self, node: ast.FunctionDef | ast.AsyncFunctionDef) -> None:
        qual = self._child_qual(node.name)
        parent = self.scopes[-1] if self.scopes else None
        decorators = tuple(
            deco for deco in (self._decorator(d) for d in node.decorator_list) if deco
        )
        if parent is not None and parent.kind == "class":
            kind = SymbolKind.CONSTRUCTOR if node.name == CONSTRUCTOR_NAME else SymbolKind.METHOD
            symbol = Symbol(key=qual, name=node.name, owner=parent.qual, kind=kind)
            is_static = any(deco.name == "staticmethod" for deco in decorators)
            scope = _Scope(
                kind="function",
                qual=qual,
                self_name=None if is_static else _first_param(node),
                class_qual=parent.qual,
            )
        else:
            symbol = Symbol(
                key=qual,
                name=node.name,
                owner=self.resolver.module or None,
                kind=SymbolKind.FUNCTION,
            )
            if parent is not None:
                self.closures.add(qual)
            # closures see the enclosing method's ``self``
            scope = _Scope(
                kind="function",
                qual=qual,
                self_name=parent.self_name if parent is not None else None,
                class_qual=parent.class_qual if parent is not None else None,
            )
        self.resolver.register_function(symbol, decorators)
        self.scope_by_node[node] = scope
        self.scopes.append(scope)
        for stmt in node.body:
            self.visit(stmt)
        self.scopes.pop()

    def visit_Attribute(self, node: ast.Attribute) -> None:  # noqa: N802
        scope = self.scopes[-1] if self.scopes else None
        if (
            isinstance(node.ctx, ast.Store)
            and scope is not None
            and scope.class_qual is not None
            and isinstance(node.value, ast.Name)
            and node.value.id == scope.self_name
        ):
            self.resolver.data_attributes.add((scope.class_qual, node.attr))
        self.generic_visit(node)

    def visit_Name(self, node: ast.Name) -> None:  # noqa: N802
        scope = self.scopes[-1] if self.scopes else None
        if isinstance(node.ctx, ast.Store) and scope is not None and scope.kind == "class":
            self.resolver.data_attributes.add((scope.qual, node.id))


class _Lowerer:
    def __init__(
        self,
        resolver: ModuleResolver,
        indexer: _DeclarationIndexer,
        *,
        path: str,
        lines: list[str],
    ) -> None:
        self.resolver = resolver
        self.scope_by_node = indexer.scope_by_node
        self.closures = indexer.closures
        self.path = path
        self.lines = lines
        self.scopes: list[_Scope] = []

    def location(self, node: ast.AST) -> Location:
        return Location(
            path=self.path,
            line=getattr(node, "lineno", 1),
            column=getattr(node, "col_offset", 0) + 1,
        )

    def name_location(self, node: ast.FunctionDef | ast.AsyncFunctionDef) -> Location:
        line = node.lineno
        text = self.lines[line - 1] if 0 < line <= len(self.lines) else ""
        keyword = text.find("def", node.col_offset)
        start = keyword + 3 if keyword >= 0 else node.col_offset
        column = text.find(node.name, start)
        if column < 0:
            column = node.col_offset
        return Location(path=self.path, line=line, column=column + 1)

    def lower_all(self, nodes: Iterable[ast.AST | None]) -> list[Node]:
        out: list[Node] = []
        for node in nodes:
            if node is not None:
                out.extend(self.lower(node))
        return out

    def lower(self, node: ast.AST) -> list[Node]:
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            return [self._lower_function(node)]
        if isinstance(node, ast.ClassDef):
            return [self._lower_class(node)]
        if isinstance(node, ast.Lambda):
            return self.lower(node.body)
        if isinstance(node, ast.Call):
            return [self._lower_call(node)]
        if isinstance(node, ast.Assert):
            return [
                AssertStatement(
                    location=self.location(node),
                    children=tuple(self.lower_all([node.test, node.msg])),
                )
            ]
        return self.lower_all(ast.iter_child_nodes(node))

    def _lower_function(self, node: ast.FunctionDef | ast.AsyncFunctionDef) -> FunctionDecl:
        scope = self.scope_by_node[node]
        symbol = require_not_none(
            self.resolver.functions.get(scope.qual),
            reason="function lowered without being indexed",
            qual=scope.qual,
        )
        self.scopes.append(scope)
        body = tuple(self.lower_all(node.body))
        self.scopes.pop()
        module = self.resolver.module
        qualname = scope.qual[len(module) + 1 :] if module else scope.qual
        decl = FunctionDecl(
            symbol=symbol,
            name=node.name,
            qualname=qualname,
            location=self.name_location(node),
            body=body,
            is_abstract=self.resolver.is_abstract(symbol),
        )
        self.resolver.bind_declaration(decl)
        return decl

    def _lower_class(self, node: ast.ClassDef) -> TypeDecl:
        scope = self.scope_by_node[node]
        self.scopes.append(scope)
        body = tuple(self.lower_all(node.body))
        self.scopes.pop()
        module = self.resolver.module
        return TypeDecl(
            name=node.name,
            qualname=scope.qual[len(module) + 1 :] if module else scope.qual,
            location=self.location(node),
            body=body,
        )

    def _lower_call(self, node: ast.Call) -> Node:
        func = node.func
        symbol = self.resolve_callee(func)
        children: list[Node] = []
        if isinstance(func, ast.Attribute):
            children.extend(self.lower(func.value))
        elif not isinstance(func, ast.Name):
            children.extend(self.lower(func))
        for arg in node.args:
            children.extend(self._lower_argument(arg))
        for keyword in node.keywords:
            children.extend(self._lower_argument(keyword.value))
        location = self.location(node)
        if symbol.kind is SymbolKind.CONSTRUCTOR:
            return Construction(symbol=symbol, location=location, children=tuple(children))
        return Invocation(
            name=_call_name(func),
            symbol=symbol,
            location=location,
            children=tuple(children),
        )

    def _lower_argument(self, arg: ast.expr) -> list[Node]:
        if isinstance(arg, (ast.Name, ast.Attribute)) and isinstance(arg.ctx, ast.Load):
            symbol = self._reference_symbol(arg)
            if symbol is not None:
                children = self.lower(arg.value) if isinstance(arg, ast.Attribute) else []
                return [
                    Reference(
                        name=self._reference_name(arg, symbol),
                        symbol=symbol,
                        location=self.location(arg),
                        children=tuple(children),
                    )
                ]
        return self.lower(arg)

    def _reference_name(self, arg: ast.Name | ast.Attribute, symbol: Symbol) -> str | None:
        # imported lowercase names may be plain values such as ``expected_rows``
        if symbol.kind is SymbolKind.FUNCTION and symbol.key not in self.resolver.functions:
            return None
        return _call_name(arg) or symbol.name

    def _reference_symbol(self, arg: ast.Name | ast.Attribute) -> Symbol | None:
        symbol = self.resolve_callee(arg, reference=True)
        if not symbol.is_resolved:
            return None
        if symbol.kind is not SymbolKind.METHOD or symbol.owner is None:
            return symbol
        if symbol.key in self.resolver.functions:
            decorators = {deco.name for deco in self.resolver.decorators(symbol)}
            return None if decorators & _PROPERTY_DECORATORS else symbol
        if self.resolver.is_data_attribute(symbol.owner, symbol.name):
            return None
        return symbol

    # name resolution

    def _function_scope(self) -> _Scope | None:
        for scope in reversed(self.scopes):
            if scope.kind == "function":
                return scope
        return None

    def _lookup_prefixes(self) -> list[str]:
        prefixes: list[str] = []
        for index in range(len(self.scopes) - 1, -1, -1):
            scope = self.scopes[index]
            if scope.kind == "function" or index == len(self.scopes) - 1:
                prefixes.append(scope.qual)
        prefixes.append(self.resolver.module)
        return prefixes

    def _local_candidate(self, name: str) -> str | None:
        for prefix in self._lookup_prefixes():
            candidate = f"{prefix}.{name}" if prefix else name
            if candidate in self.resolver.functions or candidate in self.resolver.classes:
                return candidate
        return None

    def local_class(self, dotted: str) -> str | None:
        head, _, tail = dotted.partition(".")
        candidate = self._local_candidate(head)
        if candidate is None or candidate not in self.resolver.classes:
            return None
        qual = f"{candidate}.{tail}" if tail else candidate
        return qual if qual in self.resolver.classes else None

    def lookup_name(self, name: str, *, reference: bool = False) -> Symbol:
        candidate = self._local_candidate(name)
        if candidate is not None:
            if reference and candidate in self.closures:
                # a nested function passed on runs in its own frame
                return Symbol.unresolved(name)
            if candidate in self.resolver.functions:
                return self.resolver.functions[candidate]
            return self.resolver.constructor_symbol(candidate)
        fqn = self.resolver.imports.get(name)
        if fqn is not None:
            return Symbol.external(fqn, constructor=_looks_like_class(fqn.rpartition(".")[2]))
        builtin = getattr(builtins, name, None)
        if builtin is not None and callable(builtin):
            return Symbol.external(f"builtins.{name}", constructor=isinstance(builtin, type))
        return Symbol.unresolved(name)

    def _member(self, class_qual: str, name: str) -> Symbol:
        nested = f"{class_qual}.{name}"
        if nested in self.resolver.classes:
            return self.resolver.constructor_symbol(nested)
        found = self.resolver.lookup_method(class_qual, name)
        if found is not None:
            return found
        return Symbol(key=nested, name=name, owner=class_qual, kind=SymbolKind.METHOD)

    def resolve_callee(self, func: ast.expr, *, reference: bool = False) -> Symbol:
        if isinstance(func, ast.Name):
            return self.lookup_name(func.id, reference=reference)
        if not isinstance(func, ast.Attribute):
            return Symbol.unresolved("<expr>")
        value = func.value
        scope = self._function_scope()
        if (
            isinstance(value, ast.Name)
            and scope is not None
            and scope.class_qual is not None
            and value.id == scope.self_name
        ):
            return self._member(scope.class_qual, func.attr)
        if (
            isinstance(value, ast.Call)
            and isinstance(value.func, ast.Name)
            and value.func.id == "super"
            and scope is not None
            and scope.class_qual is not None
        ):
            inherited = self.resolver.lookup_method(
                scope.class_qual, func.attr, inherited_only=True
            )
            if inherited is not None:
                return inherited
            return Symbol(
                key=f"{scope.class_qual}.{func.attr}",
                name=func.attr,
                owner=scope.class_qual,
                kind=SymbolKind.METHOD,
            )
        dotted = dotted_name(value)
        if dotted is not None:
            class_qual = self.local_class(dotted)
            if class_qual is not None:
                return self._member(class_qual, func.attr)
            if dotted.partition(".")[0] in self.resolver.imports:
                fqn = f"{self.resolver.resolve_dotted(dotted)}.{func.attr}"
                return Symbol.external(fqn, constructor=_looks_like_class(func.attr))
        return Symbol.unresolved(func.attr)


def _call_name(func: ast.expr) -> str | None:
    if isinstance(func, ast.Name):
        return func.id
    if isinstance(func, ast.Attribute):
        return func.attr
    return None


def _resolve_bases(resolver: ModuleResolver, indexer: _DeclarationIndexer, lowerer: _Lowerer) -> None:
    for qual, bases, scopes in indexer.pending_bases:
        lowerer.scopes = list(scopes)
        resolved: list[str] = []
        for base in bases:
            local = lowerer.local_class(base)
            resolved.append(local if local is not None else resolver.resolve_dotted(base))
        resolver.classes[qual].bases = resolved
    lowerer.scopes = []


def lower_module(tree: ast.Module, *, path: str, module: str, source: str = "") -> AnalysisUnit:
    resolver = ModuleResolver(module, collect_imports(tree, module))
    indexer = _DeclarationIndexer(resolver)
    indexer.visit(tree)
    lowerer = _Lowerer(resolver, indexer, path=path, lines=source.splitlines())
    _resolve_bases(resolver, indexer, lowerer)
    nodes = tuple(lowerer.lower_all(tree.body))
    return AnalysisUnit(path=path, module=module, nodes=nodes, resolution=resolver)


def lower_source(source: str, *, path: str = "<string>", module: str = "") -> AnalysisUnit:
    tree = ast.parse(source, filename=path)
    return lower_module(tree, path=path, module=module, source=source)


def ingest_python_file(path: Path, *, project_root: Path | None = None) -> AnalysisUnit:
    """Parse one file into an analysis unit.

    ``SyntaxError``, ``OSError`` and ``RecursionError`` (deeply nested
    expressions) propagate; the run driver turns them into
    unit failures.
    """
    source = path.read_text(encoding="utf-8")
    return lower_source(
        source,
        path=display_path(path, project_root),
        module=module_name(path, project_root),
    )

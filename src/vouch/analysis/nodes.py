"""Closed node variant walked by the scope engine.

Front-ends lower their syntax trees to these nodes. Only the shapes the
engine cares about survive lowering: function-like declarations, type
declarations that group them, the three call shapes and ``assert``
statements. Everything else is flattened into the ``children`` of the
nearest surviving node.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TypeAlias

from vouch.analysis.symbols import Location, Symbol, SymbolResolution


@dataclass(frozen=True)
class FunctionDecl:
    symbol: Symbol
    name: str
    qualname: str
    location: Location
    body: tuple[Node, ...]
    is_abstract: bool = False


@dataclass(frozen=True)
class TypeDecl:
    name: str
    qualname: str
    location: Location
    body: tuple[Node, ...]


@dataclass(frozen=True)
class Invocation:
    name: str | None
    symbol: Symbol
    location: Location
    children: tuple[Node, ...] = ()


@dataclass(frozen=True)
class Reference:
    name: str | None
    symbol: Symbol
    location: Location
    children: tuple[Node, ...] = ()


@dataclass(frozen=True)
class Construction:
    symbol: Symbol
    location: Location
    children: tuple[Node, ...] = ()


@dataclass(frozen=True)
class AssertStatement:
    location: Location
    children: tuple[Node, ...] = ()


Node: TypeAlias = (
    FunctionDecl | TypeDecl | Invocation | Reference | Construction | AssertStatement
)


@dataclass(frozen=True)
class AnalysisUnit:
    path: str
    module: str
    nodes: tuple[Node, ...]
    resolution: SymbolResolution = field(compare=False, repr=False)

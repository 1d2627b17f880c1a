"""Symbols, findings and the resolution contract consumed by the engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from vouch.analysis.nodes import FunctionDecl


class SymbolKind(StrEnum):
    FUNCTION = "function"
    METHOD = "method"
    CONSTRUCTOR = "constructor"
    UNRESOLVED = "unresolved"


CONSTRUCTOR_NAME = "__init__"


@dataclass(frozen=True)
class Location:
    path: str
    line: int
    column: int

    def render(self) -> str:
        return f"{self.path}:{self.line}:{self.column}"


@dataclass(frozen=True)
class Symbol:
    """Opaque handle to a resolved (or unresolvable) callable.

    ``owner`` is the declaring class for methods and constructors and the
    declaring module for functions. It is ``None`` when the front-end could
    not tell where the callable comes from.
    """

    key: str
    name: str
    owner: str | None
    kind: SymbolKind

    @classmethod
    def unresolved(cls, name: str) -> Symbol:
        return cls(key=f"?.{name}", name=name, owner=None, kind=SymbolKind.UNRESOLVED)

    @classmethod
    def external(cls, fqn: str, *, constructor: bool = False) -> Symbol:
        if constructor:
            return cls(
                key=f"{fqn}.{CONSTRUCTOR_NAME}",
                name=CONSTRUCTOR_NAME,
                owner=fqn,
                kind=SymbolKind.CONSTRUCTOR,
            )
        owner, _, name = fqn.rpartition(".")
        return cls(key=fqn, name=name, owner=owner or None, kind=SymbolKind.FUNCTION)

    @property
    def is_resolved(self) -> bool:
        return self.kind is not SymbolKind.UNRESOLVED


@dataclass(frozen=True)
class DecoratorValue:
    name: str | None
    value: str


@dataclass(frozen=True)
class Finding:
    location: Location
    message: str
    test_name: str = ""

    def render(self) -> str:
        suffix = f" [{self.test_name}]" if self.test_name else ""
        return f"{self.location.render()}: {self.message}{suffix}"


@runtime_checkable
class SymbolResolution(Protocol):
    def declaration(self, symbol: Symbol) -> FunctionDecl | None: ...

    def overridden_symbol(self, symbol: Symbol) -> Symbol | None: ...

    def enclosing_type(self, symbol: Symbol) -> str | None: ...

    def is_subtype_of(self, type_name: str, supertype: str) -> bool: ...

    def decorator_values(
        self, symbol: Symbol, decorator: str
    ) -> tuple[DecoratorValue, ...] | None: ...

    def has_constructor(self, type_name: str) -> bool: ...


class FindingSink(Protocol):
    def report(self, location: Location, message: str, *, test_name: str = "") -> None: ...


@dataclass
class CollectingSink:
    findings: list[Finding] = field(default_factory=list)

    def report(self, location: Location, message: str, *, test_name: str = "") -> None:
        self.findings.append(Finding(location=location, message=message, test_name=test_name))

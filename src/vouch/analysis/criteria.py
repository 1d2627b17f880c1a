"""Type and name criteria used by call matchers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias

from vouch.analysis.symbols import Symbol, SymbolResolution


@dataclass(frozen=True)
class ExactType:
    name: str

    def matches(self, symbol: Symbol, resolution: SymbolResolution) -> bool:
        return symbol.owner is not None and symbol.owner == self.name


@dataclass(frozen=True)
class SubtypeOf:
    name: str

    def matches(self, symbol: Symbol, resolution: SymbolResolution) -> bool:
        if symbol.owner is None:
            return False
        return resolution.is_subtype_of(symbol.owner, self.name)


@dataclass(frozen=True)
class AnyType:
    def matches(self, symbol: Symbol, resolution: SymbolResolution) -> bool:
        return True


@dataclass(frozen=True)
class ExactName:
    name: str

    def matches(self, name: str) -> bool:
        return name == self.name


@dataclass(frozen=True)
class PrefixName:
    prefix: str

    def matches(self, name: str) -> bool:
        return name.startswith(self.prefix)


@dataclass(frozen=True)
class AnyName:
    def matches(self, name: str) -> bool:
        return True


TypeCriterion: TypeAlias = ExactType | SubtypeOf | AnyType
NameCriterion: TypeAlias = ExactName | PrefixName | AnyName

ANY_TYPE = AnyType()
ANY_NAME = AnyName()

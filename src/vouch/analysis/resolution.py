"""Symbol resolution over a single Python module.

The resolver only knows what one module declares: its imports, its classes
(with their bases) and its functions. Anything imported is an external name
with no declaration; the subtype test falls back to a small table of well
known framework hierarchies for those.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from vouch.analysis.nodes import FunctionDecl
from vouch.analysis.symbols import (
    CONSTRUCTOR_NAME,
    DecoratorValue,
    Symbol,
    SymbolKind,
)

KNOWN_SUPERTYPES: dict[str, tuple[str, ...]] = {
    "unittest.case.TestCase": ("unittest.TestCase",),
    "unittest.IsolatedAsyncioTestCase": ("unittest.TestCase",),
    "unittest.async_case.IsolatedAsyncioTestCase": ("unittest.TestCase",),
    "asynctest.TestCase": ("unittest.TestCase",),
    "twisted.trial.unittest.SynchronousTestCase": ("unittest.TestCase",),
    "twisted.trial.unittest.TestCase": ("twisted.trial.unittest.SynchronousTestCase",),
    "django.test.SimpleTestCase": ("unittest.TestCase",),
    "django.test.TransactionTestCase": ("django.test.SimpleTestCase",),
    "django.test.TestCase": ("django.test.TransactionTestCase",),
    "django.test.LiveServerTestCase": ("django.test.TransactionTestCase",),
    "rest_framework.test.APITestCase": ("django.test.TestCase",),
    "rest_framework.test.APISimpleTestCase": ("django.test.SimpleTestCase",),
    "unittest.mock.NonCallableMagicMock": ("unittest.mock.NonCallableMock",),
    "unittest.mock.Mock": ("unittest.mock.NonCallableMock",),
    "unittest.mock.MagicMock": ("unittest.mock.Mock",),
    "unittest.mock.AsyncMock": ("unittest.mock.Mock",),
}

ABSTRACT_DECORATORS = frozenset(
    {
        "abc.abstractmethod",
        "typing.overload",
        "typing_extensions.overload",
    }
)


@dataclass(frozen=True)
class Decorator:
    name: str
    values: tuple[DecoratorValue, ...] = ()


@dataclass
class ClassInfo:
    qual: str
    bases: list[str] = field(default_factory=list)
    methods: dict[str, Symbol] = field(default_factory=dict)


class ModuleResolver:
    def __init__(
        self,
        module: str,
        imports: dict[str, str] | None = None,
        *,
        known_supertypes: dict[str, tuple[str, ...]] | None = None,
    ) -> None:
        self.module = module
        self.imports = dict(imports or {})
        self.known_supertypes = KNOWN_SUPERTYPES if known_supertypes is None else known_supertypes
        self.classes: dict[str, ClassInfo] = {}
        self.functions: dict[str, Symbol] = {}
        self._declarations: dict[str, FunctionDecl] = {}
        self._decorators: dict[str, tuple[Decorator, ...]] = {}
        self.data_attributes: set[tuple[str, str]] = set()
        self.declaration_lookups = 0

    def qualify(self, qualname: str) -> str:
        return f"{self.module}.{qualname}" if self.module else qualname

    def register_class(self, qual: str) -> ClassInfo:
        info = self.classes.get(qual)
        if info is None:
            info = ClassInfo(qual=qual)
            self.classes[qual] = info
        return info

    def register_function(
        self,
        symbol: Symbol,
        decorators: tuple[Decorator, ...] = (),
    ) -> None:
        self.functions[symbol.key] = symbol
        self._decorators[symbol.key] = decorators
        if symbol.kind in (SymbolKind.METHOD, SymbolKind.CONSTRUCTOR) and symbol.owner:
            self.register_class(symbol.owner).methods[symbol.name] = symbol

    def bind_declaration(self, decl: FunctionDecl) -> None:
        self._declarations[decl.symbol.key] = decl

    def decorators(self, symbol: Symbol) -> tuple[Decorator, ...]:
        return self._decorators.get(symbol.key, ())

    def is_abstract(self, symbol: Symbol) -> bool:
        return any(deco.name in ABSTRACT_DECORATORS for deco in self.decorators(symbol))

    def resolve_dotted(self, dotted: str) -> str:
        head, _, tail = dotted.partition(".")
        fqn = self.imports.get(head)
        if fqn is None:
            return dotted
        return f"{fqn}.{tail}" if tail else fqn

    def iter_mro(self, class_qual: str) -> list[str]:
        order: list[str] = []
        seen: set[str] = set()
        pending = [class_qual]
        while pending:
            current = pending.pop(0)
            if current in seen:
                continue
            seen.add(current)
            order.append(current)
            info = self.classes.get(current)
            if info is not None:
                pending.extend(info.bases)
        return order

    def lookup_method(self, class_qual: str, name: str, *, inherited_only: bool = False) -> Symbol | None:
        for candidate in self.iter_mro(class_qual):
            if inherited_only and candidate == class_qual:
                continue
            info = self.classes.get(candidate)
            if info is not None and name in info.methods:
                return info.methods[name]
        return None

    def is_data_attribute(self, class_qual: str, name: str) -> bool:
        return any(
            (candidate, name) in self.data_attributes for candidate in self.iter_mro(class_qual)
        )

    def constructor_symbol(self, class_qual: str) -> Symbol:
        local = self.lookup_method(class_qual, CONSTRUCTOR_NAME)
        if local is not None:
            return local
        return Symbol.external(class_qual, constructor=True)

    # SymbolResolution

    def declaration(self, symbol: Symbol) -> FunctionDecl | None:
        self.declaration_lookups += 1
        return self._declarations.get(symbol.key)

    def overridden_symbol(self, symbol: Symbol) -> Symbol | None:
        if symbol.kind not in (SymbolKind.METHOD, SymbolKind.CONSTRUCTOR) or symbol.owner is None:
            return None
        if symbol.owner not in self.classes:
            return None
        return self.lookup_method(symbol.owner, symbol.name, inherited_only=True)

    def enclosing_type(self, symbol: Symbol) -> str | None:
        if symbol.kind in (SymbolKind.METHOD, SymbolKind.CONSTRUCTOR):
            return symbol.owner
        return None

    def is_subtype_of(self, type_name: str, supertype: str) -> bool:
        seen: set[str] = set()
        pending = [type_name]
        while pending:
            current = pending.pop()
            if current == supertype:
                return True
            if current in seen:
                continue
            seen.add(current)
            info = self.classes.get(current)
            if info is not None:
                pending.extend(info.bases)
            else:
                pending.extend(self.known_supertypes.get(current, ()))
        return False

    def decorator_values(
        self, symbol: Symbol, decorator: str
    ) -> tuple[DecoratorValue, ...] | None:
        for deco in self.decorators(symbol):
            if deco.name == decorator:
                return deco.values
        return None

    def has_constructor(self, type_name: str) -> bool:
        if type_name not in self.classes:
            return False
        return self.lookup_method(type_name, CONSTRUCTOR_NAME) is not None

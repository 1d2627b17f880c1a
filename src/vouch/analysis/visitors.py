from __future__ import annotations

import ast


class ImportVisitor(ast.NodeVisitor):
    """Bind local names to the fully qualified names they import."""

    def __init__(self, module_name: str) -> None:
        self.module = module_name
        self.imports: dict[str, str] = {}

    def visit_Import(self, node: ast.Import) -> None:
        for alias in node.names:
            if alias.asname:
                self.imports[alias.asname] = alias.name
            else:
                # ``import a.b`` binds ``a``
                head = alias.name.split(".")[0]
                self.imports[head] = head

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        package = resolve_from_package(self.module, node.module, node.level)
        if package is None:
            return
        bound = ((alias.asname or alias.name, alias.name) for alias in node.names)
        self.imports.update(
            (local, f"{package}.{name}" if package else name)
            for local, name in bound
            if name != "*"
        )


def resolve_from_package(module: str, target: str | None, level: int) -> str | None:
    """Absolute package named by ``from <dots><target> import ...`` inside ``module``."""
    if level == 0:
        return target or None
    anchor = module.split(".")
    if level > len(anchor):
        return None
    parts = anchor[: len(anchor) - level]
    if target:
        parts.append(target)
    return ".".join(parts)


def collect_imports(tree: ast.AST, module_name: str) -> dict[str, str]:
    visitor = ImportVisitor(module_name)
    visitor.visit(tree)
    return visitor.imports


def dotted_name(node: ast.AST) -> str | None:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        parts: list[str] = []
        current: ast.AST = node
        while isinstance(current, ast.Attribute):
            parts.append(current.attr)
            current = current.value
        if isinstance(current, ast.Name):
            parts.append(current.id)
            return ".".join(reversed(parts))
        return None
    return None


def decorator_name(node: ast.AST) -> str | None:
    if isinstance(node, ast.Call):
        return dotted_name(node.func)
    return dotted_name(node)


def base_identifier(node: ast.AST) -> str | None:
    if isinstance(node, ast.Subscript):
        return base_identifier(node.value)
    if isinstance(node, ast.Call):
        return base_identifier(node.func)
    return dotted_name(node)

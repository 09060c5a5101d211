"""
Source-module enhancer.

Adds import bindings, top-level statements and exports to a JavaScript/TypeScript
module. Imports are de-duplicated per module specifier: when a declaration for the
specifier exists, missing bindings are added to it instead of writing a second
import statement, which makes repeated runs no-ops. Statements and exports are
appended at the end of the module in the order given.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from blueprintflow.constants import ImportKind
from blueprintflow.exceptions import ModifierTransformError
from blueprintflow.modifiers.base import Modifier
from blueprintflow.modifiers.source import is_code_position

_IMPORT_DECLARATION = re.compile(
    r"""^[ \t]*import\s+
        (?:(?P<type>type)\s+)?
        (?:(?P<clause>[^'";]*?)\s+from\s+)?
        (?P<quote>['"])(?P<spec>[^'"\n]+)(?P=quote)
        [ \t]*(?P<semi>;?)""",
    re.MULTILINE | re.VERBOSE,
)
_NAMESPACE = re.compile(r"\*\s*as\s+(?P<name>[\w$]+)")
_DIRECTIVES = re.compile(r"""\A(?:[ \t]*(['"])use [a-z ]+\1;?[ \t]*(?:\r?\n|\Z))+""")


@dataclass
class ImportDeclaration:
    spec: str
    quote: str = "'"
    semi: str = ";"
    type_only: bool = False
    default: str | None = None
    namespace: str | None = None
    named: list[str] | None = None
    start: int | None = None
    end: int | None = None
    dirty: bool = field(default=False, compare=False)

    def render(self) -> str:
        parts = []
        if self.default:
            parts.append(self.default)
        if self.namespace:
            parts.append(f"* as {self.namespace}")
        if self.named:
            parts.append("{ " + ", ".join(self.named) + " }")
        keyword = "import type " if self.type_only else "import "
        source = f"{self.quote}{self.spec}{self.quote}"
        if not parts:
            return f"{keyword}{source}{self.semi}"
        return f"{keyword}{', '.join(parts)} from {source}{self.semi}"

    def has_binding(self, name: str) -> bool:
        imported, local = _split_binding(name)
        for entry in self.named or []:
            entry_imported, entry_local = _split_binding(entry)
            if entry_imported == imported and entry_local == local:
                return True
        return False

    def to_value_import(self) -> None:
        """Turn 'import type { A }' into 'import { type A }' so value bindings can join it."""
        if not self.type_only:
            return
        named = [entry if entry.startswith("type ") else f"type {entry}" for entry in self.named or []]
        if self.default:
            named.insert(0, f"type default as {self.default}")
            self.default = None
        self.named = named
        self.type_only = False
        self.dirty = True


def _split_binding(entry: str) -> tuple[str, str]:
    entry = " ".join(entry.split())
    if entry.startswith("type "):
        entry = entry[len("type ") :]
    imported, _, local = entry.partition(" as ")
    return imported.strip(), (local or imported).strip()


def parse_imports(text: str) -> list[ImportDeclaration]:
    """Static import declarations of a module, in source order."""
    declarations = []
    for match in _IMPORT_DECLARATION.finditer(text):
        if not is_code_position(text, match.start()):
            continue
        default = namespace = None
        named = None
        clause = (match.group("clause") or "").strip()
        if clause:
            head = clause
            brace = clause.find("{")
            if brace != -1:
                close = clause.rfind("}")
                if close < brace:
                    continue
                named = [" ".join(n.split()) for n in clause[brace + 1 : close].split(",") if n.strip()]
                head = clause[:brace]
            for part in (p.strip() for p in head.split(",")):
                if not part:
                    continue
                namespace_match = _NAMESPACE.match(part)
                if namespace_match:
                    namespace = namespace_match.group("name")
                else:
                    default = part
        declarations.append(
            ImportDeclaration(
                spec=match.group("spec"),
                quote=match.group("quote"),
                semi=match.group("semi"),
                type_only=bool(match.group("type")),
                default=default,
                namespace=namespace,
                named=named,
                start=match.start() + (len(match.group(0)) - len(match.group(0).lstrip())),
                end=match.end(),
            )
        )
    return declarations


def ensure_imports(text: str, requests: list[Mapping[str, Any]]) -> str:
    """
    Make sure every requested import binding exists, editing declarations in place.

    Each request is ``{"name": str | list[str], "from": str, "type": kind}`` where kind
    is 'import' (named), 'import type', 'import * as' (namespace) or 'default'.

    Raises:
        ModifierTransformError: If a binding cannot join the existing declaration (named
            bindings next to a namespace import).
    """
    declarations = parse_imports(text)
    pending: list[ImportDeclaration] = []
    quote = declarations[0].quote if declarations else "'"
    semi = declarations[0].semi if declarations else ";"

    for request in requests:
        kind = ImportKind(request.get("type", ImportKind.NAMED.value))
        names = request["name"] if isinstance(request["name"], list) else [request["name"]]
        spec = request["from"]
        candidates = [d for d in [*declarations, *pending] if d.spec == spec]

        if kind in (ImportKind.NAMED, ImportKind.TYPE):
            missing = [n for n in names if not any(d.has_binding(n) for d in candidates)]
            if not missing:
                continue
            if not candidates:
                pending.append(
                    ImportDeclaration(spec, quote, semi, type_only=kind is ImportKind.TYPE, named=missing)
                )
                continue
            target = _named_target(kind, candidates, spec)
            entries = missing
            if kind is ImportKind.TYPE and not target.type_only:
                entries = [f"type {n}" for n in missing]
            target.named = [*(target.named or []), *entries]
            target.dirty = True

        elif kind is ImportKind.DEFAULT:
            name = names[0]
            existing_default = next((d.default for d in candidates if d.default), None)
            if existing_default == name:
                continue
            if existing_default:
                raise ModifierTransformError(
                    f"'{spec}' already has default import '{existing_default}', cannot add '{name}'"
                )
            if not candidates:
                pending.append(ImportDeclaration(spec, quote, semi, default=name))
                continue
            target = candidates[0]
            target.to_value_import()
            target.default = name
            target.dirty = True

        else:  # namespace
            name = names[0]
            if any(d.namespace for d in candidates):
                continue
            if not candidates:
                pending.append(ImportDeclaration(spec, quote, semi, namespace=name))
                continue
            target = next((d for d in candidates if not d.named and not d.type_only), None)
            if target is None:
                raise ModifierTransformError(
                    f"Cannot add namespace import '{name}' next to the named imports of '{spec}'"
                )
            target.namespace = name
            target.dirty = True

    return _render_imports(text, declarations, pending)


def _named_target(kind: ImportKind, candidates: list[ImportDeclaration], spec: str) -> ImportDeclaration:
    braced = [d for d in candidates if d.namespace is None]
    if not braced:
        raise ModifierTransformError(f"Cannot add named imports next to the namespace import of '{spec}'")
    if kind is ImportKind.TYPE:
        return next((d for d in braced if d.type_only), braced[0])
    target = next((d for d in braced if not d.type_only), None)
    if target is None:
        target = braced[0]
        target.to_value_import()
    return target


def _render_imports(text: str, declarations: list[ImportDeclaration], pending: list[ImportDeclaration]) -> str:
    edits: list[tuple[int, int, str]] = [(d.start, d.end, d.render()) for d in declarations if d.dirty]

    if pending:
        block = "\n".join(d.render() for d in pending)
        if declarations:
            position = max(d.end for d in declarations)
            edits.append((position, position, "\n" + block))
        else:
            directives = _DIRECTIVES.match(text)
            position = directives.end() if directives else 0
            if directives and not text[:position].endswith("\n"):
                block = "\n" + block
            rest = text[position:]
            insertion = ("\n" if directives else "") + block + "\n"
            if rest.strip() and not rest.startswith("\n"):
                insertion += "\n"
            edits.append((position, position, insertion))

    for start, end, replacement in sorted(edits, key=lambda e: e[0], reverse=True):
        text = text[:start] + replacement + text[end:]
    return text


def append_block(text: str, block: str) -> str:
    """Append a block at the end of a module, separated by a blank line."""
    block = block.strip("\n")
    if not block:
        return text
    if not text.strip():
        return block + "\n"
    return text.rstrip("\n") + "\n\n" + block + "\n"


def as_export(content: str) -> str:
    content = content.strip()
    if content.startswith("export"):
        return content
    if not content.endswith((";", "}")):
        content += ";"
    return f"export {content}"


class ModuleEnhancerModifier(Modifier):
    """
    Adds imports, statements and exports to a JavaScript/TypeScript module.

    Params:
        imports: list of ``{"name": str | list[str], "from": str, "type": kind}``.
        statements: list of strings (or ``{"content": str}``) appended at module end.
        exports: list of strings (or ``{"content": str}``) appended as ``export ...``.
    """

    name = "module-enhancer"
    description = "Add imports (de-duplicated per module), statements and exports to a JS/TS module"

    PARAM_ALIASES = {"imports": "importsToAdd", "statements": "statementsToAppend", "exports": "exportsToAdd"}

    def _param(self, params: Mapping[str, Any], key: str) -> list[Any]:
        value = params.get(key, params.get(self.PARAM_ALIASES[key], []))
        return value if value is not None else []

    def validate_parameters(self, params: Any) -> bool:
        if not isinstance(params, Mapping):
            return False
        imports = self._param(params, "imports")
        if not isinstance(imports, list):
            return False
        for entry in imports:
            if not isinstance(entry, Mapping) or not isinstance(entry.get("from"), str) or not entry["from"]:
                return False
            names = entry.get("name")
            if isinstance(names, list):
                if not names or not all(isinstance(n, str) and n.strip() for n in names):
                    return False
            elif not isinstance(names, str) or not names.strip():
                return False
            try:
                kind = ImportKind(entry.get("type", ImportKind.NAMED.value))
            except ValueError:
                return False
            if kind in (ImportKind.DEFAULT, ImportKind.NAMESPACE) and isinstance(names, list) and len(names) != 1:
                return False
        for key in ("statements", "exports"):
            items = self._param(params, key)
            if not isinstance(items, list) or not all(_content_of(item) is not None for item in items):
                return False
        return True

    def transform(self, existing: str | None, params: Mapping[str, Any]) -> str:
        text = existing or ""
        imports = self._param(params, "imports")
        if imports:
            text = ensure_imports(text, imports)
        for statement in self._param(params, "statements"):
            text = append_block(text, _content_of(statement))
        for export in self._param(params, "exports"):
            text = append_block(text, as_export(_content_of(export)))
        return text


def _content_of(item: Any) -> str | None:
    if isinstance(item, str):
        return item
    if isinstance(item, Mapping) and isinstance(item.get("content"), str):
        return item["content"]
    return None

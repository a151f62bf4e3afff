"""TypeScript declaration generator for inferred type catalogs."""

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Optional

from .catalog import ParserOutput, RecordType, TypeKind
from .reference import ReferenceMatcher

logger = logging.getLogger("typeatlas.generator")

_PKG_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_TEMPLATE_PATH = os.path.join(_PKG_DIR, "templates", "interface.ts")
DEFAULT_OUTPUT_NAME = "generated-interfaces.ts"

_FALLBACK_INTERFACE_TEMPLATE = "export interface {{name}}{{extends}} {\n{{fields}}\n}"
_TYPE_TEMPLATE = "export type {{name}} = {{values}};"
_ENUM_TEMPLATE = "export enum {{name}} {\n{{values}}\n}"

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


@dataclass
class GeneratedCode:
    """Rendered source plus the logical file names it covers."""
    code: str
    files: list[str] = field(default_factory=list)


def _fill(template: str, **values) -> str:
    out = template
    for key, val in values.items():
        out = out.replace("{{" + key + "}}", val)
    return out


def _quote(value: str) -> str:
    """Single-quoted TypeScript string literal."""
    escaped = str(value).replace("\\", "\\\\").replace("'", "\\'").replace("\n", "\\n")
    return f"'{escaped}'"


def _property_key(name: str) -> str:
    return name if _IDENTIFIER_RE.match(name) else _quote(name)


def _comment(text: str) -> str:
    return "/** " + str(text).replace("*/", "*\\/") + " */"


def _base_names(type_ref: str):
    """Bare type names in a union or array expression."""
    for part in type_ref.split("|"):
        part = part.strip()
        while part.endswith("[]"):
            part = part[:-2]
        yield part


class TypeScriptGenerator:
    """Renders parser output as TypeScript interfaces, aliases and enums."""

    def __init__(
        self,
        template_path: Optional[str] = None,
        references: Optional[ReferenceMatcher] = None,
        storybook: bool = False,
    ):
        self.references = references or ReferenceMatcher()
        self.storybook = storybook
        self.interface_template = self._load_template(template_path or DEFAULT_TEMPLATE_PATH)

    @staticmethod
    def _load_template(path: str) -> str:
        if not os.path.exists(path):
            logger.warning("Template %s not found, using built-in interface template", path)
            return _FALLBACK_INTERFACE_TEMPLATE
        with open(path, "r") as f:
            return f.read().strip()

    def generate(self, output: ParserOutput) -> GeneratedCode:
        chunks = []
        files = []

        imports = self.generate_imports(output.types)
        if imports:
            chunks.append(imports)

        for t in output.types:
            code = self.generate_type(t)
            if code:
                chunks.append(code)
                files.append(f"{t.name}.ts")

        if self.storybook:
            chunks.append("// Storybook documentation types\n" + self.generate_storybook_types(output))
            files.append("storybook.types.ts")

        logger.info("Generated %d TypeScript declarations", len(files))
        return GeneratedCode(code="\n\n".join(chunks) + "\n", files=files)

    def generate_imports(self, types) -> str:
        """Import lines for reference types that declare a module."""
        used = []
        for t in types:
            for f in t.fields:
                for base in _base_names(f.type_ref):
                    schema = self.references.get(base)
                    if schema and schema.module and schema.name not in used:
                        used.append(schema.name)
        if not used:
            return ""
        lines = ["// Reference type imports"]
        for name in used:
            lines.append(f"import {{ {name} }} from {_quote(self.references.get(name).module)};")
        return "\n".join(lines)

    def generate_type(self, t: RecordType) -> str:
        if t.kind is TypeKind.RECORD:
            return self.generate_interface(t)
        if t.kind is TypeKind.ALIAS:
            return self.generate_alias(t)
        if t.kind is TypeKind.ENUMERATION:
            return self.generate_enum(t)
        return ""

    def generate_interface(self, t: RecordType) -> str:
        lines = []
        for f in t.fields:
            optional = "" if f.required else "?"
            if f.description:
                lines.append(f"  {_comment(f.description)}")
            lines.append(f"  {_property_key(f.name)}{optional}: {self.resolve_type(f.type_ref)};")

        extends = ""
        if t.parents:
            extends = " extends " + ", ".join(self.resolve_type(p) for p in sorted(t.parents))

        description = _comment(t.description) if t.description else ""
        return _fill(
            self.interface_template,
            name=t.name,
            extends=extends,
            fields="\n".join(lines),
            description=description,
        ).strip()

    def generate_alias(self, t: RecordType) -> str:
        values = " | ".join(_quote(v) if " " in v else v for v in t.alternatives) or "unknown"
        return _fill(_TYPE_TEMPLATE, name=t.name, values=values)

    def generate_enum(self, t: RecordType) -> str:
        values = ",\n".join(f"  {v}" for v in t.alternatives)
        return _fill(_ENUM_TEMPLATE, name=t.name, values=values)

    def resolve_type(self, type_ref: str) -> str:
        """Map a type expression to TypeScript, honouring reference overrides."""
        type_ref = type_ref.strip()
        schema = self.references.get(type_ref)
        if schema is not None:
            return schema.ts_type or type_ref
        if type_ref.endswith("[]"):
            return f"{self.resolve_type(type_ref[:-2])}[]"
        if "|" in type_ref:
            return " | ".join(self.resolve_type(part) for part in type_ref.split("|"))
        return type_ref

    @staticmethod
    def generate_storybook_types(output: ParserOutput) -> str:
        lines = [
            "// Auto-generated Storybook documentation types",
            "export interface StorybookTypeDoc {",
            "  name: string;",
            "  description?: string;",
            "  type: string;",
            "  extends?: string[];",
            "  properties?: StorybookPropertyDoc[];",
            "  example?: any;",
            "}",
            "",
            "export interface StorybookPropertyDoc {",
            "  name: string;",
            "  type: string;",
            "  required: boolean;",
            "  description?: string;",
            "  example?: any;",
            "}",
            "",
            "export const storybookDocs: Record<string, StorybookTypeDoc> = {",
        ]
        for t in output.types:
            if t.kind is not TypeKind.RECORD:
                continue
            lines.append(f"  {_quote(t.name)}: {{")
            lines.append(f"    name: {_quote(t.name)},")
            lines.append("    type: 'interface',")
            if t.description:
                lines.append(f"    description: {_quote(t.description)},")
            if t.parents:
                parents = ", ".join(_quote(p) for p in sorted(t.parents))
                lines.append(f"    extends: [{parents}],")
            lines.append("    properties: [")
            for f in t.fields:
                lines.append("      {")
                lines.append(f"        name: {_quote(f.name)},")
                lines.append(f"        type: {_quote(f.type_ref)},")
                lines.append(f"        required: {'true' if f.required else 'false'},")
                if f.description:
                    lines.append(f"        description: {_quote(f.description)},")
                lines.append("      },")
            lines.append("    ],")
            lines.append("  },")
        lines.append("};")
        return "\n".join(lines)

    def write(self, path: str, generated: GeneratedCode) -> str:
        """Write the consolidated source. A directory path gets the default file name."""
        if os.path.isdir(path) or path.endswith(os.sep):
            path = os.path.join(path, DEFAULT_OUTPUT_NAME)
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(path, "w") as f:
            f.write(generated.code)
        return path

"""HCL text helpers shared by all resource handlers.

Output is built as text rather than as a JSON document so that references
stay unquoted and placeholder comments can sit next to the value they
replace.
"""

import json
import re
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Sequence, Tuple

_RESOURCE_NAME = re.compile(r'^\s*resource\s+"[^"]+"\s+"([^"]+)"', re.MULTILINE)
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")


@dataclass(frozen=True)
class HclExpression:
    """A raw HCL expression with an optional trailing line comment."""

    expression: str
    comment: str = ""

    @classmethod
    def from_text(cls, text: str) -> "HclExpression":
        """Split ``<expr> # comment`` into its two parts."""
        expression, sep, comment = text.partition(" #")
        if sep:
            return cls(expression.strip(), "#" + comment)
        return cls(text.strip())

    def render(self, suffix: str = "") -> str:
        """Render with ``suffix`` (e.g. a comma) placed before the comment."""
        text = f"{self.expression}{suffix}"
        if self.comment:
            text += f" {self.comment}"
        return text

    def __str__(self) -> str:
        return self.render()


def quote_string(value: str) -> str:
    """Quote a string as an HCL literal, escaping template sequences."""
    quoted = json.dumps(value, ensure_ascii=False)
    return quoted.replace("${", "$${").replace("%{", "%%{")


def format_number(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return repr(value)


def format_scalar(value: Any) -> str:
    if isinstance(value, HclExpression):
        return value.render()
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return format_number(value)
    return quote_string(str(value))


def format_json_value(value: Any, indent: int = 0) -> str:
    """Render JSON data as an HCL object/tuple literal for ``jsonencode()``.

    Keys are sorted and quoted; entries are comma separated. HclExpression
    leaves are written raw, with any comment after the comma.

    Args:
        value: Decoded JSON value (may contain HclExpression leaves)
        indent: Column of the line the literal starts on

    Returns:
        Literal text; nested lines carry their own indentation
    """
    pad = " " * indent

    if isinstance(value, dict):
        if not value:
            return "{}"
        lines = ["{"]
        keys = sorted(value)
        for i, key in enumerate(keys):
            comma = "," if i < len(keys) - 1 else ""
            item = value[key]
            if isinstance(item, HclExpression):
                rendered = item.render(comma)
            else:
                rendered = format_json_value(item, indent + 2) + comma
            lines.append(f"{pad}  {quote_string(str(key))} = {rendered}")
        lines.append(f"{pad}}}")
        return "\n".join(lines)

    if isinstance(value, list):
        if not value:
            return "[]"
        lines = ["["]
        for i, item in enumerate(value):
            comma = "," if i < len(value) - 1 else ""
            if isinstance(item, HclExpression):
                rendered = item.render(comma)
            else:
                rendered = format_json_value(item, indent + 2) + comma
            lines.append(f"{pad}  {rendered}")
        lines.append(f"{pad}]")
        return "\n".join(lines)

    return format_scalar(value)


def format_hcl_value(value: Any, indent: int = 0) -> str:
    """Render a value as a native HCL expression (not for jsonencode)."""
    pad = " " * indent
    if isinstance(value, dict):
        if not value:
            return "{}"
        lines = ["{"]
        for key, item in value.items():
            key_text = key if _IDENTIFIER.match(key) else quote_string(key)
            lines.append(f"{pad}  {key_text} = {format_hcl_value(item, indent + 2)}")
        lines.append(f"{pad}}}")
        return "\n".join(lines)

    if isinstance(value, list):
        if not value:
            return "[]"
        if all(not isinstance(item, (dict, list)) for item in value):
            return "[" + ", ".join(format_scalar(item) for item in value) + "]"
        lines = ["["]
        for item in value:
            lines.append(f"{pad}  {format_hcl_value(item, indent + 2)},")
        lines.append(f"{pad}]")
        return "\n".join(lines)

    return format_scalar(value)


class HclWriter:
    """Line-oriented builder for one or more HCL blocks.

    Usage:
        writer = HclWriter()
        with writer.block('resource "pingone_davinci_flow" "main"'):
            writer.attributes([("name", quote_string("Main"))])
        text = writer.render()
    """

    INDENT = "  "

    def __init__(self) -> None:
        self._lines: List[str] = []
        self._depth = 0

    @property
    def column(self) -> int:
        return self._depth * len(self.INDENT)

    def line(self, text: str = "") -> None:
        if text:
            self._lines.append(f"{self.INDENT * self._depth}{text}")
        else:
            self._lines.append("")

    def blank(self) -> None:
        """Add an empty line, collapsing repeats and skipping after an opener."""
        if self._lines and self._lines[-1] != "" and not self._lines[-1].endswith(
            ("{", "[")
        ):
            self._lines.append("")

    def attribute(self, key: str, value: str) -> None:
        self.line(f"{key} = {value}")

    def attributes(self, pairs: Sequence[Tuple[str, str]]) -> None:
        """Write attributes with their ``=`` signs aligned."""
        if not pairs:
            return
        width = max(len(key) for key, _ in pairs)
        for key, value in pairs:
            self.line(f"{key.ljust(width)} = {value}")

    def json_attribute(self, key: str, value: Any) -> None:
        """Write ``key = jsonencode(<literal>)``."""
        self.line(f"{key} = jsonencode({format_json_value(value, self.column)})")

    def hcl_attribute(self, key: str, value: Any) -> None:
        self.line(f"{key} = {format_hcl_value(value, self.column)}")

    @contextmanager
    def block(
        self, header: str, opener: str = "{", closer: str = "}"
    ) -> Iterator[None]:
        self.line(f"{header} {opener}" if header else opener)
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1
            self.line(closer)

    def render(self) -> str:
        return "\n".join(self._lines) + "\n"


def resource_header(terraform_type: str, name: str) -> str:
    return f'resource "{terraform_type}" "{name}"'


def extract_resource_name(block: str) -> Optional[str]:
    """Name of the first ``resource`` block in the text, if any."""
    match = _RESOURCE_NAME.search(block)
    return match.group(1) if match else None


def sort_blocks(blocks: Sequence[str]) -> str:
    """Sort resource blocks by name, case-insensitively, and join them.

    Blocks without a resource header sort first, keeping their input order.
    Trailing whitespace is trimmed and blocks are separated by one blank line.
    """
    keyed = [
        ((extract_resource_name(block) or "").lower(), index, block.rstrip())
        for index, block in enumerate(blocks)
        if block.strip()
    ]
    keyed.sort(key=lambda item: (item[0], item[1]))
    return "\n\n".join(block for _, _, block in keyed)

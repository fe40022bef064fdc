"""
XLSX template rendering.

Template syntax (string cell values only):

  {{ Sections.Application.FirmName }}   value placeholder (absolute path)
  {{ .Country }}                        field of the current #each item
  {{#each Collections.Citizenships}}    directive, always at the start of column A
  {{#if Flags.UsedOtherNames}}
  {{#unless Flags.HasProposedStartDate}}
  {{/each}} {{/if}} {{/unless}}         block close

A directive followed by other content in the row applies to that row only
(the row is repeated per item / kept or dropped). A row holding nothing but a
directive opens a block that runs to the matching close row; control rows are
not emitted.

Unknown paths and unbalanced braces are collected over the whole workbook and
raised together as TemplateSyntaxError.
"""

from __future__ import annotations

import logging
import re
from copy import copy
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from openpyxl import load_workbook
from openpyxl.worksheet.worksheet import Worksheet

from ..contracts.canonical import CanonicalDocument
from ..core.errors import TemplateNotFound, TemplateSyntaxError
from .styles import apply_print_setup

logger = logging.getLogger(__name__)

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

PLACEHOLDER_RE = re.compile(r"\{\{\s*([^{}]*?)\s*\}\}")
DIRECTIVE_RE = re.compile(r"^\s*\{\{\s*#(each|if|unless)\s+(\.?[A-Za-z_][\w.]*)\s*\}\}")
CLOSE_RE = re.compile(r"^\s*\{\{\s*/(each|if|unless)\s*\}\}\s*$")
PATH_RE = re.compile(r"^\.?[A-Za-z_][\w]*(\.[A-Za-z_][\w]*)*$|^\.$")

_MISSING = object()


@dataclass(frozen=True)
class TemplateHandle:
    name: str
    data: bytes
    source: str = "file"


def load_template(templates_path: Union[str, Path], document_type: str) -> TemplateHandle:
    """
    {templates_path}/{document_type}.xlsx, falling back to the built-in layout
    for known document types.
    """
    path = Path(templates_path) / f"{document_type}.xlsx"
    if path.exists():
        return TemplateHandle(name=document_type, data=path.read_bytes(), source=str(path))

    from .default_template import BUILTIN_TEMPLATES

    builder = BUILTIN_TEMPLATES.get(document_type)
    if builder is None:
        raise TemplateNotFound(f"Template not found: {path}")
    logger.info("Template file %s missing, using built-in layout for %s", path, document_type)
    return TemplateHandle(name=document_type, data=builder(), source="built-in")


# ----------------------------
# Template structure
# ----------------------------

@dataclass(frozen=True)
class _Directive:
    kind: str
    path: str


@dataclass
class _Row:
    index: int
    directives: List[_Directive]
    # column A text with the leading directives removed
    lead_text: Optional[str]


@dataclass
class _Block:
    index: int
    directive: _Directive
    children: List[Union["_Row", "_Block"]] = field(default_factory=list)


def _split_directives(text: str) -> tuple[List[_Directive], str]:
    directives: List[_Directive] = []
    rest = text
    while True:
        m = DIRECTIVE_RE.match(rest)
        if not m:
            break
        directives.append(_Directive(kind=m.group(1), path=m.group(2)))
        rest = rest[m.end():]
    return directives, rest


def _row_is_blank_after(ws: Worksheet, r: int) -> bool:
    for c in range(2, (ws.max_column or 1) + 1):
        v = ws.cell(row=r, column=c).value
        if v is not None and not (isinstance(v, str) and v.strip() == ""):
            return False
    return True


def _format(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return value


def _truthy(value: Any) -> bool:
    if value is _MISSING:
        return False
    return bool(value)


class _SheetPass:
    """One worksheet: parse into row/block tree, then emit into a fresh sheet."""

    def __init__(self, src: Worksheet, out: Worksheet, data: Dict[str, Any], problems: List[str]) -> None:
        self.src = src
        self.out = out
        self.data = data
        self.problems = problems
        self.next_row = 1
        self.row_targets: Dict[int, List[int]] = {}

    def _problem(self, where: str, what: str) -> None:
        self.problems.append(f"{self.src.title}!{where}: {what}")

    # -- parse --

    def parse(self) -> List[Union[_Row, _Block]]:
        root: List[Union[_Row, _Block]] = []
        stack: List[_Block] = []

        for r in range(1, (self.src.max_row or 0) + 1):
            lead = self.src.cell(row=r, column=1).value
            target = stack[-1].children if stack else root

            if isinstance(lead, str):
                close = CLOSE_RE.match(lead)
                if close:
                    if not stack or stack[-1].directive.kind != close.group(1):
                        self._problem(f"A{r}", f"unbalanced '{{{{/{close.group(1)}}}}}'")
                    else:
                        stack.pop()
                    continue

                directives, rest = _split_directives(lead)
                if directives:
                    if rest.strip() == "" and len(directives) == 1 and _row_is_blank_after(self.src, r):
                        block = _Block(index=r, directive=directives[0])
                        target.append(block)
                        stack.append(block)
                        continue
                    target.append(_Row(index=r, directives=directives, lead_text=rest))
                    continue

            target.append(_Row(index=r, directives=[], lead_text=None))

        for block in stack:
            self._problem(f"A{block.index}", f"'{{{{#{block.directive.kind} {block.directive.path}}}}}' is never closed")
        return root

    # -- resolve --

    def resolve(self, path: str, scope: Any, where: str) -> Any:
        if not PATH_RE.match(path):
            self._problem(where, f"invalid placeholder '{path}'")
            return _MISSING

        if path.startswith("."):
            if scope is _MISSING:
                self._problem(where, f"item placeholder '{path}' outside #each")
                return _MISSING
            if path == ".":
                return scope
            current: Any = scope
            segments = path[1:].split(".")
        else:
            current = self.data
            segments = path.split(".")

        for seg in segments:
            if current is None:
                # gated-off optional group: reads as empty
                return None
            if not isinstance(current, dict) or seg not in current:
                self._problem(where, f"unknown path '{path}'")
                return _MISSING
            current = current[seg]
        return current

    def expand(self, directive: _Directive, scope: Any, where: str) -> List[Any]:
        value = self.resolve(directive.path, scope, where)
        if value is _MISSING:
            return []
        if directive.kind == "if":
            return [scope] if _truthy(value) else []
        if directive.kind == "unless":
            return [] if _truthy(value) else [scope]
        # each
        if value is None:
            return []
        if not isinstance(value, list):
            self._problem(where, f"#each target '{directive.path}' is not a collection")
            return []
        return list(value)

    def render_text(self, text: str, scope: Any, where: str) -> Any:
        if "{{" not in text and "}}" not in text:
            return text

        leftover = PLACEHOLDER_RE.sub("", text)
        if "{{" in leftover or "}}" in leftover:
            self._problem(where, f"unbalanced braces in '{text}'")
            return text

        matches = list(PLACEHOLDER_RE.finditer(text))
        for m in matches:
            if m.group(1).startswith(("#", "/")):
                self._problem(where, f"directive '{m.group(0)}' must start column A")
                return text

        # a cell that is exactly one placeholder keeps the value type
        if len(matches) == 1 and matches[0].group(0) == text.strip():
            value = self.resolve(matches[0].group(1), scope, where)
            return None if value is _MISSING else _format(value)

        def _sub(m: re.Match) -> str:
            value = self.resolve(m.group(1), scope, where)
            if value is _MISSING:
                return ""
            return str(_format(value))

        return PLACEHOLDER_RE.sub(_sub, text)

    # -- emit --

    def emit(self, nodes: List[Union[_Row, _Block]], scope: Any) -> None:
        for node in nodes:
            if isinstance(node, _Block):
                for item in self.expand(node.directive, scope, f"A{node.index}"):
                    self.emit(node.children, item)
                continue

            scopes = [scope]
            for d in node.directives:
                scopes = [s for current in scopes for s in self.expand(d, current, f"A{node.index}")]
            for s in scopes:
                self.copy_row(node, s)

    def copy_row(self, row: _Row, scope: Any) -> None:
        t = self.next_row
        self.next_row += 1
        self.row_targets.setdefault(row.index, []).append(t)

        for src_cell in next(self.src.iter_rows(min_row=row.index, max_row=row.index)):
            col = src_cell.column
            value = src_cell.value
            if col == 1 and row.lead_text is not None:
                value = row.lead_text or None
            if isinstance(value, str):
                value = self.render_text(value, scope, f"{src_cell.coordinate}")

            dst = self.out.cell(row=t, column=col)
            dst.value = value
            if src_cell.has_style:
                dst._style = copy(src_cell._style)

        height = self.src.row_dimensions[row.index].height
        if height is not None:
            self.out.row_dimensions[t].height = height

    def finish(self) -> None:
        for key, dim in self.src.column_dimensions.items():
            if dim.width:
                self.out.column_dimensions[key].width = dim.width

        for rng in self.src.merged_cells.ranges:
            span = rng.max_row - rng.min_row
            if span == 0:
                for t in self.row_targets.get(rng.min_row, []):
                    self.out.merge_cells(start_row=t, start_column=rng.min_col, end_row=t, end_column=rng.max_col)
                continue

            targets = [self.row_targets.get(r, []) for r in range(rng.min_row, rng.max_row + 1)]
            if all(len(ts) == 1 for ts in targets) and targets[-1][0] - targets[0][0] == span:
                self.out.merge_cells(
                    start_row=targets[0][0],
                    start_column=rng.min_col,
                    end_row=targets[-1][0],
                    end_column=rng.max_col,
                )
            else:
                logger.debug("Dropping multi-row merge %s (rows repeated or removed)", rng.coord)

        self.out.freeze_panes = self.src.freeze_panes
        apply_print_setup(self.out)


class XlsxTemplateRenderer:
    """Renders a CanonicalDocument into an XLSX template. Pure: bytes in, bytes out."""

    content_type = XLSX_CONTENT_TYPE
    extension = "xlsx"

    def render(self, template: TemplateHandle, document: CanonicalDocument) -> bytes:
        try:
            wb = load_workbook(BytesIO(template.data))
        except Exception as e:  # noqa: BLE001
            raise TemplateSyntaxError(f"Template {template.name} is not a readable XLSX workbook: {e}") from e

        data = document.template_data()
        problems: List[str] = []

        for src in list(wb.worksheets):
            index = wb.index(src)
            title = src.title
            out = wb.create_sheet(title=f"{title[:28]}__r", index=index)

            sheet = _SheetPass(src, out, data, problems)
            tree = sheet.parse()
            sheet.emit(tree, _MISSING)
            sheet.finish()

            wb.remove(src)
            out.title = title

        if problems:
            unmatched = list(dict.fromkeys(problems))
            raise TemplateSyntaxError(
                f"Template {template.name} does not match the document: {len(unmatched)} problem(s)",
                unmatched=unmatched,
            )

        wb.active = 0
        buf = BytesIO()
        wb.save(buf)
        rendered = buf.getvalue()
        logger.info("Rendered template %s (%d bytes)", template.name, len(rendered))
        return rendered

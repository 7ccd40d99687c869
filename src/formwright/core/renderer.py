"""
Structural HTML renderer for FormAST.

Produces an unstyled form skeleton for previews and for the signing client.
Every piece of author text goes through ``markupsafe`` so labels, options,
descriptions and conditions can never inject markup.

Conditional blocks are emitted hidden with two descriptors: ``data-condition``
(human readable) and ``data-condition-json`` (``{field, operator, value}``),
so the client can evaluate visibility without re-parsing the string form.
"""

from __future__ import annotations

import json
import re
from typing import Any

from markupsafe import Markup, escape

from . import ir

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")

_INPUT_TYPES = {
    ir.FieldType.TEXT: "text",
    ir.FieldType.EMAIL: "email",
    ir.FieldType.NUMBER: "number",
    ir.FieldType.CURRENCY: "number",
    ir.FieldType.DATE: "date",
    ir.FieldType.TIME: "time",
    ir.FieldType.DATETIME: "datetime-local",
}


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def _attr(name: str, value: Any) -> Markup:
    return Markup(' {}="{}"').format(Markup(name), value)


def _selected_values(field: ir.FormField) -> set[str]:
    if field.chip_value is None:
        return set()
    if isinstance(field.chip_value, list | tuple | set):
        return {str(item) for item in field.chip_value}
    return {str(field.chip_value)}


class TemplateRenderer:
    """Render a FormAST to HTML. Stateless; one instance can be shared."""

    def render(self, ast: ir.FormAST) -> str:
        parts: list[Markup] = [
            Markup('<form class="form-template" data-title="{}">').format(ast.title)
        ]
        if ast.title:
            parts.append(Markup('<h1 class="form-title">{}</h1>').format(ast.title))
        if ast.description:
            parts.append(Markup('<p class="form-description">{}</p>').format(ast.description))

        for page_index, page in enumerate(ast.pages):
            parts.append(
                Markup('<div class="form-page" data-page="{}" id="{}">').format(page_index, page.id)
            )
            parts.extend(self.render_section(section) for section in page.sections)
            parts.append(Markup("</div>"))

        parts.append(Markup("</form>"))
        return str(Markup("").join(parts))

    def render_section(self, section: ir.Section) -> Markup:
        parts = [Markup('<div class="form-section" data-section="{}">').format(section.id)]
        if section.title:
            parts.append(Markup('<h2 class="section-title">{}</h2>').format(section.title))
        if section.description:
            for paragraph in _PARAGRAPH_BREAK.split(section.description):
                if paragraph.strip():
                    parts.append(
                        Markup('<p class="section-description">{}</p>').format(paragraph.strip())
                    )
        parts.extend(self.render_container(container) for container in section.fields)
        parts.append(Markup("</div>"))
        return Markup("").join(parts)

    def render_container(
        self, container: ir.FormField | ir.ConditionalBlock | ir.Divider
    ) -> Markup:
        if isinstance(container, ir.Divider):
            return Markup('<hr class="form-divider" />')
        if isinstance(container, ir.ConditionalBlock):
            return self.render_conditional(container)
        return self.render_field(container)

    def render_conditional(self, block: ir.ConditionalBlock) -> Markup:
        descriptor = json.dumps(block.condition.to_descriptor(), separators=(",", ":"))
        parts = [
            Markup(
                '<div class="form-conditional" data-condition="{}" '
                'data-condition-json="{}" style="display: none;">'
            ).format(block.condition.describe(), descriptor)
        ]
        parts.extend(self.render_container(child) for child in block.children)
        parts.append(Markup("</div>"))
        return Markup("").join(parts)

    def render_field(self, field: ir.FormField) -> Markup:
        parts = [
            Markup('<div class="form-field" data-field="{}" data-type="{}">').format(
                field.id, field.type.value
            ),
            Markup('<label for="{}" class="field-label">{}').format(field.id, field.label),
        ]
        if field.required:
            parts.append(Markup('<span class="required-indicator">*</span>'))
        parts.append(Markup("</label>"))

        if field.description:
            parts.append(Markup('<p class="field-description">{}</p>').format(field.description))

        parts.append(self.render_input(field))

        if field.help_text:
            parts.append(Markup('<small class="field-help">{}</small>').format(field.help_text))

        parts.append(Markup("</div>"))
        return Markup("").join(parts)

    def render_input(self, field: ir.FormField) -> Markup:
        if field.type == ir.FieldType.SIGNATURE:
            return self._render_signature(field)
        if field.type == ir.FieldType.SELECT:
            return self._render_select(field)
        if field.type in (ir.FieldType.RADIO, ir.FieldType.CHECKBOX):
            return self._render_option_group(field)
        if field.type == ir.FieldType.TEXTAREA:
            return self._render_textarea(field)
        return self._render_text_input(field)

    # -- input kinds ---------------------------------------------------------

    def _common_attrs(self, field: ir.FormField) -> Markup:
        attrs = _attr("id", field.id) + _attr("name", field.id)
        if field.required:
            attrs += Markup(" required")
        if field.placeholder:
            attrs += _attr("placeholder", field.placeholder)
        return attrs

    def _render_text_input(self, field: ir.FormField) -> Markup:
        attrs = self._common_attrs(field) + Markup(' class="field-input"')
        if field.min_length:
            attrs += _attr("minlength", field.min_length)
        if field.max_length:
            attrs += _attr("maxlength", field.max_length)
        if field.pattern:
            attrs += _attr("pattern", field.pattern)
        if field.type in ir.NUMERIC_TYPES:
            for name in ("min", "max", "step"):
                bound = getattr(field, name)
                if bound is not None:
                    attrs += _attr(name, _format_number(bound))
        if field.chip_value is not None:
            attrs += _attr("value", field.chip_value)
        return Markup('<input type="{}"{} />').format(_INPUT_TYPES.get(field.type, "text"), attrs)

    def _render_textarea(self, field: ir.FormField) -> Markup:
        attrs = self._common_attrs(field) + Markup(' class="field-input"')
        if field.max_length:
            attrs += _attr("maxlength", field.max_length)
        content = "" if field.chip_value is None else field.chip_value
        return Markup("<textarea{}>{}</textarea>").format(attrs, content)

    def _render_select(self, field: ir.FormField) -> Markup:
        selected = _selected_values(field)
        options = [Markup('<option value="">Select...</option>')]
        for option in field.options:
            marker = Markup(" selected") if option.value in selected else Markup("")
            options.append(
                Markup('<option value="{}"{}>{}</option>').format(
                    option.value, marker, option.label
                )
            )
        attrs = self._common_attrs(field) + Markup(' class="field-input"')
        if field.multiple:
            attrs += Markup(" multiple")
        return Markup("<select{}>{}</select>").format(attrs, Markup("").join(options))

    def _render_option_group(self, field: ir.FormField) -> Markup:
        selected = _selected_values(field)
        required = Markup("")
        if field.required and field.type == ir.FieldType.RADIO:
            required = Markup(" required")
        labels = []
        for option in field.options:
            marker = Markup(" checked") if option.value in selected else Markup("")
            labels.append(
                Markup(
                    '<label class="option-label">'
                    '<input type="{}" name="{}" value="{}"{}{} /> {}</label>'
                ).format(field.type.value, field.id, option.value, required, marker, option.label)
            )
        return Markup('<div class="field-options" id="{}">{}</div>').format(
            field.id, Markup("").join(labels)
        )

    def _render_signature(self, field: ir.FormField) -> Markup:
        timestamp = Markup("")
        if field.capture_timestamp:
            timestamp = Markup(' data-capture-timestamp="true" data-timestamp-format="{}"').format(
                field.timestamp_format or ""
            )
        return Markup(
            '<div class="signature-field" data-signatory="{signatory}"{timestamp}>'
            '<div class="signature-canvas-container">'
            '<canvas id="{id}-canvas" class="signature-canvas" width="400" height="150"></canvas>'
            '<button type="button" class="clear-signature">Clear</button>'
            "</div>"
            '<div class="signature-typed-container" style="display: none;">'
            '<input type="text" id="{id}-typed" placeholder="Type your name" '
            'class="signature-typed-input" />'
            '<label class="signature-agreement">'
            '<input type="checkbox" id="{id}-agreement" required /> I agree this is my signature'
            "</label>"
            "</div>"
            '<div class="signature-mode-toggle">'
            '<button type="button" class="signature-mode-draw">Draw Signature</button>'
            '<button type="button" class="signature-mode-type">Type Name</button>'
            "</div>"
            '<input type="hidden" id="{id}" name="{id}" required />'
            "</div>"
        ).format(id=field.id, signatory=field.signatory or "", timestamp=timestamp)


_renderer = TemplateRenderer()


def render_form(ast: ir.FormAST) -> str:
    """
    Render a form to HTML.

    Example:
        >>> from formwright.core.parser import compile_template
        >>> html = render_form(compile_template("# Intake\\n## Details\\n### Name").ast)
        >>> '<h1 class="form-title">Intake</h1>' in html
        True
    """
    return _renderer.render(ast)

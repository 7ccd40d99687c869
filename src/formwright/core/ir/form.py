"""
Document structure types for formwright IR.

A compiled template is a tree: FormAST -> Page -> Section -> FieldContainer,
where a FieldContainer is a tagged union of a field, a conditional block
(which nests further containers) or a divider.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .conditions import Condition
from .fields import FormField


class Divider(BaseModel):
    """A horizontal rule between fields (``---``)."""

    kind: Literal["divider"] = "divider"
    line: int = 0

    model_config = ConfigDict(frozen=True)


class ConditionalBlock(BaseModel):
    """
    A group of containers shown only while ``condition`` holds.

    Visibility of anything nested is the logical AND of every enclosing
    block's condition.
    """

    kind: Literal["conditional"] = "conditional"
    condition: Condition
    children: list[FieldContainer] = Field(default_factory=list)
    line: int = 0

    model_config = ConfigDict(frozen=True)


FieldContainer = Annotated[FormField | ConditionalBlock | Divider, Field(discriminator="kind")]

ConditionalBlock.model_rebuild()


class Section(BaseModel):
    """A ``##`` section and the containers under it."""

    id: str
    title: str | None = None
    description: str | None = None
    fields: list[FieldContainer] = Field(default_factory=list)
    line: int = 0

    model_config = ConfigDict(frozen=True)


class Page(BaseModel):
    """A page of sections, delimited by ``---page-break---``."""

    id: str
    sections: list[Section] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class FormConfig(BaseModel):
    """Form-level configuration from the leading frontmatter block."""

    auto_submit_on_signature: bool | None = None
    submit_trigger: str | None = None

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class FormMetadata(BaseModel):
    """Compilation metadata attached to a FormAST."""

    version: int = 1
    chip_references: list[str] = Field(default_factory=list)
    form_config: FormConfig | None = None

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class FormAST(BaseModel):
    """
    Complete compiled form.

    Invariant: at least one page, and every page has at least one section
    (the parser synthesizes ``section-default`` when a page has none).
    """

    title: str = ""
    description: str | None = None
    pages: list[Page] = Field(default_factory=list)
    metadata: FormMetadata = Field(default_factory=FormMetadata)

    model_config = ConfigDict(frozen=True)

    @property
    def sections(self) -> list[Section]:
        """All sections across every page, in document order."""
        return [section for page in self.pages for section in page.sections]

    def to_json_dict(self) -> dict:
        """Serialize with camelCase keys, the shape cached alongside template text."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

"""
Domain models for msg templates.

An :class:`Entry` is one retrievable template.  Its payload is a
tagged union keyed by the entry's :class:`Category`: text categories
(responses, escalations, workflows) carry a :class:`TextContent`,
link categories (dashboards, analytics, service info, resources)
carry a :class:`LinkContent`.  The category table below is the single
place that ties a category to its id prefix, base file, JSON content
field and display colour.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Category(str, Enum):
    RESPONSE = "response"
    ESCALATE = "escalate"
    WORKFLOW = "workflow"
    GRAFANA = "grafana"
    DATALENS = "datalens"
    NPC = "npc"
    URL = "url"

    @property
    def spec(self) -> "CategorySpec":
        return CATEGORY_SPECS[self]


@dataclass(frozen=True)
class CategorySpec:
    label: str
    prefix: str
    filename: str
    content_field: str
    kind: str  # "text" or "link"
    colour: str


CATEGORY_SPECS: Dict[Category, CategorySpec] = {
    Category.RESPONSE: CategorySpec("Response", "rsp", "response.json", "response", "text", "green"),
    Category.ESCALATE: CategorySpec("Escalate", "esc", "escalate.json", "message", "text", "red"),
    Category.WORKFLOW: CategorySpec("Workflow", "wf", "workflow.json", "steps", "text", "cyan"),
    Category.GRAFANA: CategorySpec("Grafana", "graf", "grafana.json", "grafana_url", "link", "yellow"),
    Category.DATALENS: CategorySpec("DataLens", "dl", "datalens.json", "datalens_url", "link", "magenta"),
    Category.NPC: CategorySpec("Npc", "npc", "npc.json", "service_url", "link", "blue"),
    Category.URL: CategorySpec("Url", "url", "url.json", "url", "link", "white"),
}

# Canonical category order; used for flags, listings and base load order.
CATEGORY_ORDER: List[Category] = list(Category)

CONTENT_FIELDS: Dict[str, Category] = {s.content_field: c for c, s in CATEGORY_SPECS.items()}


def category_for_name(name: str) -> Optional[Category]:
    """Map ``response``, ``Response`` or ``response.json`` to a Category."""
    key = str(name).strip().lower()
    if key.endswith(".json"):
        key = key[: -len(".json")]
    for cat, spec in CATEGORY_SPECS.items():
        if key in {cat.value, spec.label.lower()}:
            return cat
    return None


# ---------------------------
# Payload union
# ---------------------------

class TextContent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    source_field: str
    text: str


class LinkContent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["link"] = "link"
    source_field: str
    url: str = Field(min_length=1)


Content = Annotated[Union[TextContent, LinkContent], Field(discriminator="kind")]


def make_content(category: Category, value: str) -> Union[TextContent, LinkContent]:
    spec = category.spec
    if spec.kind == "text":
        return TextContent(source_field=spec.content_field, text=value)
    return LinkContent(source_field=spec.content_field, url=value.strip())


# ---------------------------
# Entry
# ---------------------------

class Entry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    description: str
    tags: Tuple[str, ...] = Field(min_length=1)
    category: Category
    content: Content

    @field_validator("id")
    @classmethod
    def _strip_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("id must not be blank")
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _clean_tags(cls, value):
        """Trim tags, drop blanks and duplicates while preserving order."""
        if isinstance(value, str) or not isinstance(value, (list, tuple)):
            raise ValueError("tags must be a list of strings")
        out: List[str] = []
        seen = set()
        for tag in value:
            if not isinstance(tag, str):
                raise ValueError(f"tag {tag!r} is not a string")
            tag = tag.strip()
            if tag and tag.lower() not in seen:
                seen.add(tag.lower())
                out.append(tag)
        return tuple(out)

    @model_validator(mode="after")
    def _content_matches_category(self) -> "Entry":
        spec = self.category.spec
        if self.content.kind != spec.kind or self.content.source_field != spec.content_field:
            raise ValueError(
                f"content field {self.content.source_field!r} does not belong to category {spec.label}"
            )
        return self

    @property
    def key(self) -> str:
        """Case-folded id used for every lookup and tie-break."""
        return self.id.lower()

    @property
    def payload(self) -> str:
        return self.content.text if isinstance(self.content, TextContent) else self.content.url

    def to_record(self) -> Dict[str, object]:
        """Return the validated JSON form of the entry, as found in source files."""
        return {
            "id": self.id,
            "description": self.description,
            "tags": list(self.tags),
            self.content.source_field: self.payload,
        }


# ---------------------------
# Query descriptor
# ---------------------------

@dataclass
class QueryDescriptor:
    """Parsed representation of one invocation."""

    identifiers: List[str] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)
    limit: Optional[int] = None
    categories: List[Category] = field(default_factory=lambda: [Category.RESPONSE])
    list_mode: bool = False
    raw: bool = False

"""Schemas for content pages and MCP resources."""

from pydantic import BaseModel, ConfigDict, Field


class ContentResource(BaseModel):
    """A catalog entry for a logical resource identifier."""

    model_config = ConfigDict(frozen=True)

    uri: str = Field(description="Logical identifier, e.g. gospel-library://...")
    name: str
    description: str | None = None
    mime_type: str = Field(default="text/plain")


class ResourceText(BaseModel):
    """Text payload of a read resource."""

    uri: str
    mime_type: str = Field(default="text/plain")
    text: str


class ResourceContents(BaseModel):
    """Result of reading a resource."""

    contents: list[ResourceText] = Field(default_factory=list)


class FootnoteRef(BaseModel):
    """Cross reference inside a footnote."""

    href: str
    text: str


class Footnote(BaseModel):
    """Footnote of a content page."""

    marker: str
    content: str
    refs: list[FootnoteRef] = Field(default_factory=list)


class ContentPage(BaseModel):
    """A content page passed through with its HTML body."""

    uri: str = Field(description="Content path, e.g. /scriptures/bofm/1-ne/1")
    title: str | None = None
    body_html: str | None = Field(default=None, description="Raw HTML body")
    text: str | None = Field(
        default=None, description="Plain text of the body, filled on request"
    )
    meta: dict[str, str] = Field(
        default_factory=dict,
        description="Page metadata (contentType, publication, audioUrl, ...)",
    )
    footnotes: list[Footnote] = Field(default_factory=list)


class StructureEntry(BaseModel):
    """A child page found below a browsed content path."""

    uri: str = Field(description="Content path of the child")
    title: str
    children: list["StructureEntry"] = Field(default_factory=list)


class StructureListing(BaseModel):
    """Children of a content path, optionally nested."""

    uri: str
    title: str | None = None
    entries: list[StructureEntry] = Field(default_factory=list)

"""Processed source material: documents and web pages converted to Markdown."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field

from contentwizard.utils.ids import generate_id
from contentwizard.utils.text import count_words, estimate_read_time, truncate


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FileType(str, Enum):
    """Source document formats known to the wizard."""

    TXT = "txt"
    DOCX = "docx"
    PDF = "pdf"
    RTF = "rtf"
    ODT = "odt"
    HTML = "html"
    MD = "md"

    @property
    def label(self) -> str:
        match self:
            case FileType.TXT:
                return "Plain Text"
            case FileType.DOCX:
                return "Microsoft Word"
            case FileType.PDF:
                return "PDF Document"
            case FileType.RTF:
                return "Rich Text Format"
            case FileType.ODT:
                return "OpenDocument Text"
            case FileType.HTML:
                return "HTML Document"
            case FileType.MD:
                return "Markdown"

    @property
    def mime_type(self) -> str:
        match self:
            case FileType.TXT:
                return "text/plain"
            case FileType.DOCX:
                return "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
            case FileType.PDF:
                return "application/pdf"
            case FileType.RTF:
                return "application/rtf"
            case FileType.ODT:
                return "application/vnd.oasis.opendocument.text"
            case FileType.HTML:
                return "text/html"
            case FileType.MD:
                return "text/markdown"

    @classmethod
    def from_extension(cls, extension: str) -> Optional["FileType"]:
        """Resolve a file extension (with or without dot, any case)."""
        ext = extension.lower().lstrip(".")
        aliases = {"markdown": "md", "htm": "html", "text": "txt"}
        ext = aliases.get(ext, ext)
        try:
            return cls(ext)
        except ValueError:
            return None


class ProcessingProvider(str, Enum):
    """What performed the conversion to Markdown."""

    PANDOC = "pandoc"
    NATIVE = "native"
    PDFTOTEXT = "pdftotext"
    AI_VISION = "ai_vision"
    CUSTOM = "custom"


class DocumentMetadata(BaseModel):
    """Metadata extracted while processing a document."""

    title: Optional[str] = Field(default=None, description="Document title")
    author: Optional[str] = Field(default=None, description="Document author")
    created_date: Optional[str] = Field(default=None, description="Creation date as found in source")
    language: Optional[str] = Field(default=None, description="Language code")
    headings: list[str] = Field(default_factory=list, description="Headings in document order")
    custom_properties: dict[str, Any] = Field(default_factory=dict, description="Other properties")

    model_config = {"frozen": True}

    def with_title(self, title: str) -> "DocumentMetadata":
        return self.model_copy(update={"title": title})

    def with_custom_property(self, key: str, value: Any) -> "DocumentMetadata":
        return self.model_copy(update={"custom_properties": {**self.custom_properties, key: value}})

    def is_empty(self) -> bool:
        return not (
            self.title
            or self.author
            or self.created_date
            or self.language
            or self.headings
            or self.custom_properties
        )


class ProcessedDocument(BaseModel):
    """A source document after conversion to Markdown."""

    id: str = Field(..., description="Document identifier")
    file_id: Optional[str] = Field(default=None, description="Reference to the uploaded file")
    file_name: str = Field(..., description="Original file name")
    file_type: FileType = Field(..., description="Detected source format")
    markdown_content: str = Field(default="", description="Converted content")
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    provider: ProcessingProvider = Field(default=ProcessingProvider.NATIVE)
    processed_at: datetime = Field(default_factory=_utcnow)

    model_config = {"frozen": True}

    @classmethod
    def create(
        cls,
        file_name: str,
        file_type: FileType,
        markdown_content: str,
        metadata: Optional[DocumentMetadata] = None,
        provider: ProcessingProvider = ProcessingProvider.NATIVE,
        file_id: Optional[str] = None,
    ) -> "ProcessedDocument":
        return cls(
            id=generate_id("doc", 16),
            file_id=file_id,
            file_name=file_name,
            file_type=file_type,
            markdown_content=markdown_content,
            metadata=metadata or DocumentMetadata(),
            provider=provider,
        )

    @property
    def display_title(self) -> str:
        return self.metadata.title or self.file_name

    @property
    def word_count(self) -> int:
        return count_words(self.markdown_content)

    @property
    def character_count(self) -> int:
        return len(self.markdown_content)

    def estimated_read_time(self, words_per_minute: int = 200) -> int:
        return estimate_read_time(self.word_count, words_per_minute)

    def has_content(self) -> bool:
        return bool(self.markdown_content.strip())

    def summary(self, max_length: int = 200) -> str:
        return truncate(self.markdown_content.strip(), max_length)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProcessedDocument":
        return cls.model_validate(data)


class ProcessedWebpage(BaseModel):
    """A fetched web page after cleaning and conversion to Markdown."""

    id: str = Field(..., description="Webpage identifier")
    url: str = Field(..., description="Source URL")
    title: str = Field(default="", description="Page title")
    markdown_content: str = Field(default="", description="Converted content")
    processed_at: datetime = Field(default_factory=_utcnow)
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @classmethod
    def create(
        cls,
        url: str,
        title: str,
        markdown_content: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> "ProcessedWebpage":
        return cls(
            id=generate_id("webpage"),
            url=url,
            title=title,
            markdown_content=markdown_content,
            metadata=metadata or {},
        )

    @property
    def word_count(self) -> int:
        return count_words(self.markdown_content)

    @property
    def domain(self) -> str:
        return urlparse(self.url).netloc

    def has_content(self) -> bool:
        return bool(self.markdown_content.strip())

    def summary(self, max_length: int = 200) -> str:
        return truncate(self.markdown_content.strip(), max_length)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProcessedWebpage":
        return cls.model_validate(data)

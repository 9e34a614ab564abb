"""Source extraction: turn uploaded files and URLs into Markdown sources.

Processors are registered with a ProcessorRegistry and resolved per file by
weight; the first processor whose can_process() accepts the file wins.
Webpage extractors work the same way through an ExtractorRegistry. Heavy
converters (pandoc, pdftotext, HTML scraping) plug in as further entries.
"""

import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Optional
from urllib.parse import urlparse

import httpx
import yaml

from contentwizard.models.config import WizardConfig
from contentwizard.models.document import (
    DocumentMetadata,
    FileType,
    ProcessedDocument,
    ProcessedWebpage,
    ProcessingProvider,
)
from contentwizard.services.events import DocumentProcessed, EventDispatcher, WebpageProcessed
from contentwizard.services.exceptions import DocumentProcessingError
from contentwizard.utils.logging import get_logger


logger = get_logger(__name__)

_FRONT_MATTER_RE = re.compile(r"\A---\s*\n(.*?)\n---\s*(?:\n|\Z)", re.DOTALL)
_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+?)\s*#*\s*$", re.MULTILINE)


class DocumentProcessor(ABC):
    """A converter from one or more file types to Markdown."""

    processor_id: str = ""
    label: str = ""
    weight: int = 0
    supported_extensions: tuple[str, ...] = ()
    provider: ProcessingProvider = ProcessingProvider.NATIVE

    def can_process(self, path: Path) -> bool:
        return path.suffix.lower().lstrip(".") in self.supported_extensions

    def check_requirements(self) -> list[str]:
        """Missing requirements (external tools, libraries); empty when usable."""
        return []

    def is_available(self) -> bool:
        return not self.check_requirements()

    @abstractmethod
    def process(self, path: Path) -> ProcessedDocument:
        """
        Convert the file.

        Raises:
            DocumentProcessingError: If the file cannot be converted
        """
        pass

    def _read_text(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise DocumentProcessingError(
                path.name, f"File is not valid UTF-8 text ({e.reason})", self.processor_id
            ) from e
        except OSError as e:
            raise DocumentProcessingError(
                path.name, f"Cannot read file ({e.strerror})", self.processor_id
            ) from e


class PlainTextProcessor(DocumentProcessor):
    """Plain text files; the first non-empty line becomes the title."""

    processor_id = "plain_text"
    label = "Plain text"
    weight = 10
    supported_extensions = ("txt", "text")

    def process(self, path: Path) -> ProcessedDocument:
        text = self._read_text(path)
        title = next((line.strip() for line in text.splitlines() if line.strip()), None)
        return ProcessedDocument.create(
            file_name=path.name,
            file_type=FileType.TXT,
            markdown_content=text.strip(),
            metadata=DocumentMetadata(title=title),
            provider=self.provider,
        )


class MarkdownProcessor(DocumentProcessor):
    """Markdown files, with optional YAML front matter."""

    processor_id = "markdown"
    label = "Markdown"
    weight = 5
    supported_extensions = ("md", "markdown")

    def process(self, path: Path) -> ProcessedDocument:
        text = self._read_text(path)
        front_matter, body = self._split_front_matter(text, path.name)
        headings = [match.group(2) for match in _HEADING_RE.finditer(body)]

        title = front_matter.pop("title", None) or (headings[0] if headings else None)
        metadata = DocumentMetadata(
            title=str(title) if title is not None else None,
            author=_optional_str(front_matter.pop("author", None)),
            created_date=_optional_str(front_matter.pop("date", None)),
            language=_optional_str(front_matter.pop("lang", front_matter.pop("language", None))),
            headings=headings,
            custom_properties=front_matter,
        )
        return ProcessedDocument.create(
            file_name=path.name,
            file_type=FileType.MD,
            markdown_content=body.strip(),
            metadata=metadata,
            provider=self.provider,
        )

    def _split_front_matter(self, text: str, file_name: str) -> tuple[dict, str]:
        match = _FRONT_MATTER_RE.match(text)
        if not match:
            return {}, text
        try:
            data = yaml.safe_load(match.group(1)) or {}
        except yaml.YAMLError as e:
            raise DocumentProcessingError(
                file_name, f"Invalid YAML front matter ({e})", self.processor_id
            ) from e
        if not isinstance(data, dict):
            data = {}
        return data, text[match.end():]


def _optional_str(value: object) -> Optional[str]:
    return None if value is None else str(value)


class ProcessorRegistry:
    """Registered processors, resolved by weight (lowest first)."""

    def __init__(self, processors: Optional[Iterable[DocumentProcessor]] = None):
        self._processors: list[DocumentProcessor] = []
        for processor in processors or ():
            self.register(processor)

    @classmethod
    def with_defaults(cls) -> "ProcessorRegistry":
        return cls([MarkdownProcessor(), PlainTextProcessor()])

    def register(self, processor: DocumentProcessor) -> None:
        self._processors.append(processor)

    def processors(self) -> list[DocumentProcessor]:
        return sorted(self._processors, key=lambda p: p.weight)

    def get(self, processor_id: str) -> Optional[DocumentProcessor]:
        return next((p for p in self._processors if p.processor_id == processor_id), None)

    def processors_for(self, path: Path) -> list[DocumentProcessor]:
        return [p for p in self.processors() if p.is_available() and p.can_process(path)]

    def best_processor_for(self, path: Path) -> Optional[DocumentProcessor]:
        candidates = self.processors_for(path)
        return candidates[0] if candidates else None

    def supported_extensions(self) -> list[str]:
        extensions: set[str] = set()
        for processor in self._processors:
            if processor.is_available():
                extensions.update(processor.supported_extensions)
        return sorted(extensions)


def is_valid_url(url: str) -> bool:
    """True for absolute http(s) URLs with a host."""
    parsed = urlparse(url.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class WebpageExtractor(ABC):
    """Fetches a URL and converts its main content to Markdown."""

    extractor_id: str = ""
    label: str = ""
    weight: int = 0

    def can_extract(self, url: str) -> bool:
        return is_valid_url(url)

    def check_requirements(self) -> list[str]:
        """Missing requirements; empty when usable."""
        return []

    def is_available(self) -> bool:
        return not self.check_requirements()

    @abstractmethod
    def extract(self, url: str) -> ProcessedWebpage:
        """
        Fetch and convert the page.

        Raises:
            DocumentProcessingError: If the page cannot be fetched or converted
        """
        pass


class TextWebpageExtractor(WebpageExtractor):
    """Pages served as plain text or Markdown, fetched with httpx.

    HTML is rejected; cleaning markup needs a dedicated extractor.
    """

    extractor_id = "text_webpage"
    label = "Plain text / Markdown URL"
    weight = 10
    content_types = ("text/plain", "text/markdown", "text/x-markdown")

    def __init__(self, client: Optional[httpx.Client] = None, timeout: float = 30.0):
        self._client = client
        self.timeout = timeout

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout, follow_redirects=True)
        return self._client

    def extract(self, url: str) -> ProcessedWebpage:
        try:
            response = self.client.get(url, headers={"Accept": ", ".join(self.content_types)})
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise DocumentProcessingError(
                url, f"HTTP error {e.response.status_code} when fetching URL", self.extractor_id
            ) from e
        except httpx.HTTPError as e:
            raise DocumentProcessingError(url, f"Cannot fetch URL ({e})", self.extractor_id) from e

        content_type = response.headers.get("content-type", "").split(";")[0].strip().lower()
        if content_type not in self.content_types:
            raise DocumentProcessingError(
                url, f"Unsupported content type '{content_type or 'unknown'}'", self.extractor_id
            )

        text = response.text.strip()
        headings = [match.group(2) for match in _HEADING_RE.finditer(text)]
        title = headings[0] if headings else urlparse(url).path.rstrip("/").rsplit("/", 1)[-1]
        return ProcessedWebpage.create(
            url=url,
            title=title or urlparse(url).netloc,
            markdown_content=text,
            metadata={"content_type": content_type, "status_code": response.status_code},
        )


class ExtractorRegistry:
    """Registered webpage extractors, resolved by weight (lowest first)."""

    def __init__(self, extractors: Optional[Iterable[WebpageExtractor]] = None):
        self._extractors: list[WebpageExtractor] = list(extractors or ())

    @classmethod
    def with_defaults(cls) -> "ExtractorRegistry":
        return cls([TextWebpageExtractor()])

    def register(self, extractor: WebpageExtractor) -> None:
        self._extractors.append(extractor)

    def extractors(self) -> list[WebpageExtractor]:
        return sorted(self._extractors, key=lambda e: e.weight)

    def best_extractor_for(self, url: str) -> Optional[WebpageExtractor]:
        return next(
            (e for e in self.extractors() if e.is_available() and e.can_extract(url)), None
        )


class DocumentProcessingService:
    """Validates and converts source files and URLs, one at a time or as a batch."""

    def __init__(
        self,
        registry: Optional[ProcessorRegistry] = None,
        dispatcher: Optional[EventDispatcher] = None,
        config: Optional[WizardConfig] = None,
        extractors: Optional[ExtractorRegistry] = None,
    ):
        self.registry = registry or ProcessorRegistry.with_defaults()
        self.extractors = extractors or ExtractorRegistry.with_defaults()
        self.dispatcher = dispatcher or EventDispatcher()
        self.config = config or WizardConfig()

    def validate(self, path: Path) -> list[str]:
        """Reasons the file cannot be processed; empty when it can."""
        errors = []
        extension = path.suffix.lower().lstrip(".")
        if not path.is_file():
            return [f"File not found: {path.name}"]
        if extension not in self.config.allowed_extensions:
            errors.append(f"File type '.{extension}' is not allowed")
        elif self.registry.best_processor_for(path) is None:
            errors.append(f"No processor available for '.{extension}' files")
        size = path.stat().st_size
        if size == 0:
            errors.append("File is empty")
        elif size > self.config.max_file_size:
            errors.append(
                f"File exceeds the maximum size of {self.config.max_file_size} bytes"
            )
        return errors

    def process(self, path: Path) -> ProcessedDocument:
        """
        Convert one file.

        Raises:
            DocumentProcessingError: If validation or conversion fails
        """
        errors = self.validate(path)
        processor = self.registry.best_processor_for(path) if path.is_file() else None
        processor_id = processor.processor_id if processor else None
        if errors:
            logger.warning("document_rejected", file_name=path.name, errors=errors)
            raise DocumentProcessingError(path.name, "; ".join(errors), processor_id)

        logger.info("document_processing", file_name=path.name, processor=processor_id)
        document = processor.process(path)
        if not document.has_content():
            raise DocumentProcessingError(path.name, "No text could be extracted", processor_id)

        logger.info(
            "document_processed",
            file_name=path.name,
            processor=processor_id,
            word_count=document.word_count,
        )
        self.dispatcher.dispatch(DocumentProcessed(document, processor_id))
        return document

    def process_all(
        self, paths: Iterable[Path]
    ) -> tuple[list[ProcessedDocument], list[DocumentProcessingError]]:
        """
        Convert a batch, collecting per-file failures.

        Raises:
            DocumentProcessingError: Only when every file fails (the last failure is raised)
        """
        documents: list[ProcessedDocument] = []
        failures: list[DocumentProcessingError] = []
        paths = list(paths)
        for path in paths:
            try:
                documents.append(self.process(path))
            except DocumentProcessingError as e:
                logger.warning("document_failed", file_name=e.file_name, error=str(e))
                failures.append(e)

        if paths and not documents:
            logger.error("document_batch_failed", count=len(failures))
            raise failures[-1]
        return documents, failures

    def process_url(self, url: str) -> ProcessedWebpage:
        """
        Fetch and convert one web page.

        Raises:
            DocumentProcessingError: If the URL is invalid, no extractor
                accepts it, or extraction fails
        """
        url = url.strip()
        if not is_valid_url(url):
            logger.warning("webpage_rejected", url=url)
            raise DocumentProcessingError(url, "Invalid URL format")

        extractor = self.extractors.best_extractor_for(url)
        if extractor is None:
            raise DocumentProcessingError(url, "No extractor available for this URL")

        logger.info("webpage_processing", url=url, extractor=extractor.extractor_id)
        webpage = extractor.extract(url)
        if not webpage.has_content():
            raise DocumentProcessingError(url, "No text could be extracted", extractor.extractor_id)

        logger.info(
            "webpage_processed",
            url=url,
            extractor=extractor.extractor_id,
            word_count=webpage.word_count,
        )
        self.dispatcher.dispatch(WebpageProcessed(webpage, extractor.extractor_id))
        return webpage

    def process_urls(
        self, urls: Iterable[str]
    ) -> tuple[list[ProcessedWebpage], list[DocumentProcessingError]]:
        """
        Convert a batch of URLs, collecting per-URL failures.

        Raises:
            DocumentProcessingError: Only when every URL fails (the last failure is raised)
        """
        webpages: list[ProcessedWebpage] = []
        failures: list[DocumentProcessingError] = []
        urls = list(urls)
        for url in urls:
            try:
                webpages.append(self.process_url(url))
            except DocumentProcessingError as e:
                logger.warning("webpage_failed", url=e.file_name, error=str(e))
                failures.append(e)

        if urls and not webpages:
            logger.error("webpage_batch_failed", count=len(failures))
            raise failures[-1]
        return webpages, failures

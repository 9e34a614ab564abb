"""Unit tests for source document processing."""

from pathlib import Path
from unittest.mock import Mock

import httpx
import pytest

from contentwizard.models.config import WizardConfig
from contentwizard.models.document import FileType, ProcessedDocument, ProcessedWebpage
from contentwizard.services.document_processing import (
    DocumentProcessingService,
    DocumentProcessor,
    ExtractorRegistry,
    MarkdownProcessor,
    PlainTextProcessor,
    ProcessorRegistry,
    TextWebpageExtractor,
    WebpageExtractor,
    is_valid_url,
)
from contentwizard.services.events import DocumentProcessed, EventDispatcher, WebpageProcessed
from contentwizard.services.exceptions import DocumentProcessingError


class UnavailableProcessor(DocumentProcessor):
    processor_id = "pandoc"
    weight = 0
    supported_extensions = ("md", "docx")

    def check_requirements(self):
        return ["pandoc binary not found"]

    def process(self, path: Path) -> ProcessedDocument:
        raise AssertionError("should never be selected")


class TestMarkdownProcessor:
    """Test Markdown conversion."""

    def test_title_from_first_heading(self, tmp_path):
        path = tmp_path / "guide.md"
        path.write_text("# Guide\n\nIntro text.\n\n## Details\n\nMore.\n")

        document = MarkdownProcessor().process(path)

        assert document.file_type is FileType.MD
        assert document.metadata.title == "Guide"
        assert document.metadata.headings == ["Guide", "Details"]
        assert document.markdown_content.startswith("# Guide")

    def test_front_matter(self, tmp_path):
        path = tmp_path / "post.md"
        path.write_text("---\ntitle: From Front Matter\nauthor: Alice\ntags: [a, b]\n---\n# Heading\n\nBody.\n")

        document = MarkdownProcessor().process(path)

        assert document.metadata.title == "From Front Matter"
        assert document.metadata.author == "Alice"
        assert document.metadata.custom_properties == {"tags": ["a", "b"]}
        assert document.markdown_content == "# Heading\n\nBody."

    def test_invalid_front_matter(self, tmp_path):
        path = tmp_path / "bad.md"
        path.write_text("---\ntitle: [unclosed\n---\nBody\n")

        with pytest.raises(DocumentProcessingError, match="Invalid YAML front matter") as exc_info:
            MarkdownProcessor().process(path)
        assert exc_info.value.processor_id == "markdown"

    def test_non_utf8_file(self, tmp_path):
        path = tmp_path / "latin.md"
        path.write_bytes(b"caf\xe9")

        with pytest.raises(DocumentProcessingError, match="not valid UTF-8"):
            MarkdownProcessor().process(path)


class TestPlainTextProcessor:
    """Test plain text conversion."""

    def test_first_line_is_title(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("\n\nMeeting notes\nWe agreed on things.\n")

        document = PlainTextProcessor().process(path)

        assert document.file_type is FileType.TXT
        assert document.metadata.title == "Meeting notes"
        assert document.markdown_content == "Meeting notes\nWe agreed on things."


class TestProcessorRegistry:
    """Test processor resolution."""

    def test_lowest_weight_available_processor_wins(self):
        registry = ProcessorRegistry([PlainTextProcessor(), MarkdownProcessor(), UnavailableProcessor()])

        assert registry.best_processor_for(Path("a.md")).processor_id == "markdown"
        assert registry.best_processor_for(Path("a.TXT")).processor_id == "plain_text"
        assert registry.best_processor_for(Path("a.docx")) is None

    def test_supported_extensions_skip_unavailable(self):
        registry = ProcessorRegistry.with_defaults()
        registry.register(UnavailableProcessor())
        assert registry.supported_extensions() == ["markdown", "md", "text", "txt"]

    def test_get(self):
        registry = ProcessorRegistry.with_defaults()
        assert isinstance(registry.get("markdown"), MarkdownProcessor)
        assert registry.get("missing") is None


class TestDocumentProcessingService:
    """Test validation, events and batch handling."""

    def test_process_dispatches_event(self, tmp_path):
        dispatcher = EventDispatcher()
        listener = Mock()
        dispatcher.subscribe(DocumentProcessed, listener)
        path = tmp_path / "a.md"
        path.write_text("# A\n\nText")

        document = DocumentProcessingService(dispatcher=dispatcher).process(path)

        event = listener.call_args.args[0]
        assert event.document is document
        assert event.processor_id == "markdown"

    def test_validate_reports_problems(self, tmp_path):
        service = DocumentProcessingService(config=WizardConfig(max_file_size=5))
        big = tmp_path / "big.txt"
        big.write_text("far too long")
        empty = tmp_path / "empty.md"
        empty.write_text("")
        binary = tmp_path / "image.png"
        binary.write_bytes(b"\x89PNG")

        assert service.validate(tmp_path / "missing.txt") == ["File not found: missing.txt"]
        assert service.validate(big) == ["File exceeds the maximum size of 5 bytes"]
        assert service.validate(empty) == ["File is empty"]
        assert service.validate(binary) == ["File type '.png' is not allowed"]

    def test_process_rejects_invalid_file(self, tmp_path):
        path = tmp_path / "empty.txt"
        path.write_text("")

        with pytest.raises(DocumentProcessingError, match="File is empty: empty.txt") as exc_info:
            DocumentProcessingService().process(path)
        assert exc_info.value.file_name == "empty.txt"

    def test_whitespace_only_file_has_no_content(self, tmp_path):
        path = tmp_path / "blank.txt"
        path.write_text("   \n\n  ")

        with pytest.raises(DocumentProcessingError, match="No text could be extracted"):
            DocumentProcessingService().process(path)

    def test_batch_collects_failures(self, tmp_path):
        good = tmp_path / "good.md"
        good.write_text("# Good")
        bad = tmp_path / "bad.pdf"
        bad.write_bytes(b"%PDF")

        documents, failures = DocumentProcessingService().process_all([good, bad])

        assert [d.file_name for d in documents] == ["good.md"]
        assert [f.file_name for f in failures] == ["bad.pdf"]

    def test_batch_raises_when_all_fail(self, tmp_path):
        with pytest.raises(DocumentProcessingError, match="second.txt"):
            DocumentProcessingService().process_all([tmp_path / "first.txt", tmp_path / "second.txt"])

    def test_empty_batch(self):
        assert DocumentProcessingService().process_all([]) == ([], [])


class StaticExtractor(WebpageExtractor):
    extractor_id = "static"
    weight = 0

    def __init__(self, pages):
        self.pages = pages

    def extract(self, url: str) -> ProcessedWebpage:
        if url not in self.pages:
            raise DocumentProcessingError(url, "HTTP error 404 when fetching URL", self.extractor_id)
        return ProcessedWebpage.create(url=url, title="Page", markdown_content=self.pages[url])


def fetched(text, content_type="text/markdown; charset=utf-8", status_code=200):
    url = "https://example.com/docs/guide.md"
    return httpx.Response(
        status_code,
        text=text,
        headers={"content-type": content_type},
        request=httpx.Request("GET", url),
    )


class TestTextWebpageExtractor:
    """Test fetching plain text and Markdown URLs."""

    def extractor(self, response=None, error=None):
        client = Mock()
        if error is not None:
            client.get.side_effect = error
        else:
            client.get.return_value = response
        return TextWebpageExtractor(client=client)

    def test_markdown_page(self):
        extractor = self.extractor(fetched("# Guide\n\nInstall it.\n"))
        webpage = extractor.extract("https://example.com/docs/guide.md")

        assert webpage.title == "Guide"
        assert webpage.markdown_content == "# Guide\n\nInstall it."
        assert webpage.metadata == {"content_type": "text/markdown", "status_code": 200}
        assert webpage.domain == "example.com"

    def test_plain_text_title_from_path(self):
        extractor = self.extractor(fetched("Just words.", content_type="text/plain"))
        webpage = extractor.extract("https://example.com/docs/notes.txt")
        assert webpage.title == "notes.txt"

    def test_html_rejected(self):
        extractor = self.extractor(fetched("<html></html>", content_type="text/html"))
        with pytest.raises(DocumentProcessingError, match="Unsupported content type 'text/html'") as exc_info:
            extractor.extract("https://example.com/")
        assert exc_info.value.processor_id == "text_webpage"

    def test_http_error_status(self):
        extractor = self.extractor(fetched("gone", status_code=404))
        with pytest.raises(DocumentProcessingError, match="HTTP error 404"):
            extractor.extract("https://example.com/docs/guide.md")

    def test_network_error(self):
        extractor = self.extractor(error=httpx.ConnectError("Connection refused"))
        with pytest.raises(DocumentProcessingError, match="Cannot fetch URL") as exc_info:
            extractor.extract("https://example.com/docs/guide.md")
        assert exc_info.value.file_name == "https://example.com/docs/guide.md"


class TestWebpageProcessing:
    """Test URL validation and processing through the service."""

    @pytest.mark.parametrize(
        "url,valid",
        [
            ("https://example.com/page", True),
            ("http://localhost:8000", True),
            ("ftp://example.com/file", False),
            ("example.com", False),
            ("https://", False),
        ],
    )
    def test_is_valid_url(self, url, valid):
        assert is_valid_url(url) is valid

    def test_process_url_dispatches_event(self):
        dispatcher = EventDispatcher()
        listener = Mock()
        dispatcher.subscribe(WebpageProcessed, listener)
        extractors = ExtractorRegistry([StaticExtractor({"https://example.com/a": "Some words here"})])
        service = DocumentProcessingService(dispatcher=dispatcher, extractors=extractors)

        webpage = service.process_url(" https://example.com/a ")

        assert webpage.url == "https://example.com/a"
        assert webpage.word_count == 3
        event = listener.call_args.args[0]
        assert event.webpage is webpage
        assert event.extractor_id == "static"

    def test_invalid_url_rejected(self):
        service = DocumentProcessingService(extractors=ExtractorRegistry([StaticExtractor({})]))
        with pytest.raises(DocumentProcessingError, match="Invalid URL format: mailto:me@example.com"):
            service.process_url("mailto:me@example.com")

    def test_empty_page_rejected(self):
        extractors = ExtractorRegistry([StaticExtractor({"https://example.com/blank": "   "})])
        service = DocumentProcessingService(extractors=extractors)
        with pytest.raises(DocumentProcessingError, match="No text could be extracted") as exc_info:
            service.process_url("https://example.com/blank")
        assert exc_info.value.processor_id == "static"

    def test_no_extractor_available(self):
        service = DocumentProcessingService(extractors=ExtractorRegistry())
        with pytest.raises(DocumentProcessingError, match="No extractor available"):
            service.process_url("https://example.com/a")

    def test_batch_collects_failures(self):
        extractors = ExtractorRegistry([StaticExtractor({"https://example.com/a": "Hello"})])
        service = DocumentProcessingService(extractors=extractors)

        webpages, failures = service.process_urls(["https://example.com/a", "https://example.com/missing"])

        assert [w.url for w in webpages] == ["https://example.com/a"]
        assert [f.file_name for f in failures] == ["https://example.com/missing"]

    def test_batch_raises_when_all_fail(self):
        service = DocumentProcessingService(extractors=ExtractorRegistry([StaticExtractor({})]))
        with pytest.raises(DocumentProcessingError, match="404"):
            service.process_urls(["https://example.com/missing"])

"""Unit tests for EventDispatcher."""

from unittest.mock import Mock

from contentwizard.services.events import DocumentProcessed, EventDispatcher, PagePublished


class TestEventDispatcher:
    """Test subscription and delivery."""

    def test_dispatch_by_event_type(self, document):
        dispatcher = EventDispatcher()
        on_document = Mock()
        on_page = Mock()
        dispatcher.subscribe(DocumentProcessed, on_document)
        dispatcher.subscribe(PagePublished, on_page)

        event = DocumentProcessed(document, "markdown")
        dispatcher.dispatch(event)

        on_document.assert_called_once_with(event)
        on_page.assert_not_called()

    def test_listeners_called_in_subscription_order(self, document):
        dispatcher = EventDispatcher()
        calls = []
        dispatcher.subscribe(DocumentProcessed, lambda e: calls.append("first"))
        dispatcher.subscribe(DocumentProcessed, lambda e: calls.append("second"))

        dispatcher.dispatch(DocumentProcessed(document, "markdown"))

        assert calls == ["first", "second"]

    def test_failing_listener_is_isolated(self, document):
        dispatcher = EventDispatcher()
        after = Mock()
        dispatcher.subscribe(DocumentProcessed, Mock(side_effect=RuntimeError("boom")))
        dispatcher.subscribe(DocumentProcessed, after)

        dispatcher.dispatch(DocumentProcessed(document, "markdown"))

        after.assert_called_once()

    def test_unsubscribe(self, document):
        dispatcher = EventDispatcher()
        listener = Mock()
        dispatcher.subscribe(DocumentProcessed, listener)
        assert dispatcher.listener_count(DocumentProcessed) == 1

        dispatcher.unsubscribe(DocumentProcessed, listener)
        dispatcher.unsubscribe(DocumentProcessed, listener)
        dispatcher.dispatch(DocumentProcessed(document, "markdown"))

        listener.assert_not_called()
        assert dispatcher.listener_count() == 0

    def test_dispatch_without_listeners(self, document):
        EventDispatcher().dispatch(DocumentProcessed(document, "markdown"))

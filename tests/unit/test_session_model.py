"""Unit tests for WizardSession."""

from datetime import datetime, timedelta, timezone

from contentwizard.models.context import AIContext
from contentwizard.models.document import FileType, ProcessedDocument, ProcessedWebpage
from contentwizard.models.session import WizardSession
from contentwizard.models.wizard_step import WizardStep


class TestWizardSessionDefaults:
    """Test a freshly created session."""

    def test_new_session_starts_at_upload(self):
        session = WizardSession(user_id="alice")
        assert session.current_step is WizardStep.UPLOAD
        assert session.processed_documents == {}
        assert session.content_plan is None
        assert session.template_id is None
        assert session.id

    def test_sessions_get_distinct_ids(self):
        assert WizardSession(user_id="a").id != WizardSession(user_id="a").id


class TestWizardSessionMutators:
    """Test mutators and the updated_at bookkeeping."""

    def test_mutators_refresh_updated_at(self, document):
        session = WizardSession(user_id="alice")
        stale = datetime(2020, 1, 1, tzinfo=timezone.utc)
        session.updated_at = stale

        session.add_processed_document(document)

        assert session.updated_at > stale

    def test_add_document_records_file_id_once(self):
        session = WizardSession(user_id="alice")
        doc = ProcessedDocument.create("a.txt", FileType.TXT, "text", file_id="file-1")
        again = ProcessedDocument.create("a.txt", FileType.TXT, "text", file_id="file-1")

        session.add_processed_document(doc)
        session.add_processed_document(again)

        assert len(session.processed_documents) == 2
        assert session.uploaded_file_ids == ["file-1"]

    def test_remove_document(self, document):
        session = WizardSession(user_id="alice")
        session.add_processed_document(document)

        assert session.remove_processed_document(document.id) is True
        assert session.remove_processed_document(document.id) is False
        assert not session.has_sources()

    def test_set_uploaded_file_ids_deduplicates(self):
        session = WizardSession(user_id="alice")
        session.set_uploaded_file_ids(["a", "b", "a"])
        assert session.uploaded_file_ids == ["a", "b"]

    def test_clear_content_plan(self, nested_plan):
        session = WizardSession(user_id="alice")
        session.set_content_plan(nested_plan)
        session.clear_content_plan()
        assert session.content_plan is None


class TestCanProceed:
    """Test step prerequisites."""

    def test_upload_requires_sources_and_template(self, document):
        session = WizardSession(user_id="alice")
        assert not session.can_proceed()
        assert session.missing_prerequisites() == [
            "at least one processed document",
            "a selected template",
        ]

        session.add_processed_document(document)
        assert not session.can_proceed()

        session.set_template_id("landing")
        assert session.can_proceed()
        assert session.missing_prerequisites() == []

    def test_upload_accepts_webpage_as_source(self):
        session = WizardSession(user_id="alice", template_id="landing")
        session.add_processed_webpage(
            ProcessedWebpage.create("https://example.com/about", "About", "About us")
        )
        assert session.can_proceed()

    def test_plan_requires_content_plan(self, nested_plan):
        session = WizardSession(user_id="alice", current_step=WizardStep.PLAN)
        assert not session.can_proceed()
        assert session.missing_prerequisites() == ["a content plan"]

        session.set_content_plan(nested_plan)
        assert session.can_proceed()

    def test_create_always_can_proceed(self):
        session = WizardSession(user_id="alice", current_step=WizardStep.CREATE)
        assert session.can_proceed()


class TestExpiry:
    """Test inactivity expiry."""

    def test_is_expired_after_timeout(self):
        now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
        session = WizardSession(user_id="alice")
        session.touch(now - timedelta(seconds=3601))

        assert session.is_expired(3600, now=now)
        assert not session.is_expired(7200, now=now)


class TestSessionSerialization:
    """Test the storage shape."""

    def test_round_trip_preserves_state(self, document, nested_plan):
        session = WizardSession(user_id="alice", template_id="landing")
        session.add_processed_document(document)
        session.set_content_plan(nested_plan)
        session.set_selected_contexts([AIContext.create("brand_voice", "Voice", "Friendly")])
        session.current_step = WizardStep.PLAN

        restored = WizardSession.from_dict(session.to_dict())

        assert restored == session
        assert restored.current_step is WizardStep.PLAN
        assert restored.content_plan.refinement_count == 1

    def test_to_dict_uses_plain_values(self):
        data = WizardSession(user_id="alice").to_dict()
        assert data["current_step"] == 1
        assert isinstance(data["created_at"], str)

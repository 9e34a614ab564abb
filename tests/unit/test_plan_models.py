"""Unit tests for content plan models."""

import pytest

from contentwizard.models.plan import ContentPlan, PlanSection, PlanStatus, RefinementEntry


class TestPlanStatus:
    """Test PlanStatus behavior methods."""

    @pytest.mark.parametrize("status", [PlanStatus.DRAFT, PlanStatus.READY, PlanStatus.APPROVED])
    def test_refinable_statuses(self, status):
        assert status.can_refine()

    @pytest.mark.parametrize(
        "status",
        [PlanStatus.GENERATING, PlanStatus.REFINING, PlanStatus.CREATING, PlanStatus.COMPLETED, PlanStatus.FAILED],
    )
    def test_non_refinable_statuses(self, status):
        assert not status.can_refine()

    def test_can_create_only_ready_or_approved(self):
        creatable = {s for s in PlanStatus if s.can_create()}
        assert creatable == {PlanStatus.READY, PlanStatus.APPROVED}

    def test_terminal_and_processing(self):
        assert PlanStatus.COMPLETED.is_terminal()
        assert PlanStatus.FAILED.is_terminal()
        assert not PlanStatus.READY.is_terminal()
        assert PlanStatus.GENERATING.is_processing()
        assert not PlanStatus.APPROVED.is_processing()

    def test_labels(self):
        assert PlanStatus.READY.label == "Ready for Review"
        assert PlanStatus.CREATING.label == "Creating Content"

    def test_completed_allows_no_transition(self):
        assert PlanStatus.COMPLETED.allowed_transitions() == frozenset()


class TestPlanSection:
    """Test PlanSection value semantics."""

    def test_with_methods_return_new_instances(self):
        section = PlanSection(id="s1", title="Title", content="Body")
        updated = section.with_content("New body")

        assert updated is not section
        assert section.content == "Body"
        assert updated.content == "New body"
        assert updated.id == "s1"

    def test_section_is_frozen(self):
        section = PlanSection(id="s1", title="Title")
        with pytest.raises(Exception):
            section.title = "Changed"

    def test_with_component_config_merges(self):
        section = PlanSection(id="s1", component_config={"heading_level": 2, "style": "bold"})
        updated = section.with_component_config({"heading_level": 3})
        assert updated.component_config == {"heading_level": 3, "style": "bold"}

    def test_with_child_appends(self):
        section = PlanSection(id="s1").with_child(PlanSection(id="c1")).with_child(PlanSection(id="c2"))
        assert [c.id for c in section.children] == ["c1", "c2"]
        assert section.has_children()

    def test_flatten_orders_children_by_order(self):
        section = PlanSection(
            id="root",
            children=[
                PlanSection(id="second", order=2),
                PlanSection(id="first", order=1, children=[PlanSection(id="grandchild", order=1)]),
            ],
        )
        assert [s.id for s in section.flatten()] == ["root", "first", "grandchild", "second"]

    def test_create_generates_prefixed_id(self):
        section = PlanSection.create("Title", "Body")
        assert section.id.startswith("section_")
        assert len(section.id) == len("section_") + 12

    def test_word_counts(self):
        section = PlanSection(
            id="s1",
            content="## Hello **world**",
            children=[PlanSection(id="c1", content="one two three")],
        )
        assert section.word_count == 2
        assert section.total_word_count == 5

    def test_from_dict_requires_keys(self):
        with pytest.raises(ValueError, match="component_type"):
            PlanSection.from_dict({"id": "s1", "title": "T", "content": "", "order": 1})

    def test_from_dict_rebuilds_children(self):
        data = PlanSection(id="s1", children=[PlanSection(id="c1", title="Child")]).to_dict()
        rebuilt = PlanSection.from_dict(data)
        assert rebuilt.children[0].title == "Child"


class TestContentPlan:
    """Test ContentPlan aggregate behavior."""

    def test_derived_counts(self, nested_plan):
        assert nested_plan.total_section_count == 5
        assert nested_plan.refinement_count == 1
        # 4 + 5 + 3 + 4 + 2 words of content
        assert nested_plan.total_word_count == 18

    def test_flatten_is_stable(self, nested_plan):
        first = [s.id for s in nested_plan.flatten_sections()]
        second = [s.id for s in nested_plan.flatten_sections()]
        assert first == second == ["intro", "setup", "setup_install", "setup_config", "faq"]

    def test_flatten_sorts_top_level_by_order(self):
        plan = ContentPlan(
            id="p",
            title="T",
            sections=[PlanSection(id="b", order=2), PlanSection(id="a", order=1), PlanSection(id="c", order=2)],
        )
        assert [s.id for s in plan.flatten_sections()] == ["a", "b", "c"]

    def test_duplicate_section_ids_rejected(self):
        with pytest.raises(ValueError, match="Duplicate section id"):
            ContentPlan(
                id="p",
                title="T",
                sections=[PlanSection(id="x"), PlanSection(id="y", children=[PlanSection(id="x")])],
            )

    def test_with_title_keeps_identity(self, nested_plan):
        retitled = nested_plan.with_title("New Title")
        assert retitled.title == "New Title"
        assert retitled.id == nested_plan.id
        assert nested_plan.title == "Getting Started Guide"

    def test_with_refinement_appends(self, nested_plan):
        entry = RefinementEntry.create("Shorter", "Shortened sections")
        refined = nested_plan.with_refinement(entry)
        assert refined.refinement_count == 2
        assert nested_plan.refinement_count == 1
        assert refined.refinement_history[-1] == entry

    def test_with_status_allows_refine_cycle(self, nested_plan):
        approved = nested_plan.with_status(PlanStatus.APPROVED)
        refining = approved.with_status(PlanStatus.REFINING)
        assert refining.with_status(PlanStatus.READY).status is PlanStatus.READY

    def test_with_status_rejects_backwards_move(self, nested_plan):
        creating = nested_plan.with_status(PlanStatus.CREATING)
        with pytest.raises(ValueError, match="Cannot change plan status"):
            creating.with_status(PlanStatus.READY)

    def test_with_status_same_status_is_noop(self, nested_plan):
        assert nested_plan.with_status(PlanStatus.READY) is nested_plan

    def test_find_section(self, nested_plan):
        assert nested_plan.find_section("setup_config").title == "Configure"
        assert nested_plan.find_section("missing") is None

    def test_suggested_path(self, nested_plan):
        assert nested_plan.suggested_path() == "/getting-started-guide"

    def test_round_trip(self, nested_plan):
        assert ContentPlan.from_dict(nested_plan.to_dict()) == nested_plan


class TestRefinementEntry:
    """Test RefinementEntry helpers."""

    def test_summary_truncates(self):
        entry = RefinementEntry.create("x" * 150, "done")
        summary = entry.summary()
        assert len(summary) == 100
        assert summary.endswith("...")

    def test_short_summary_unchanged(self):
        assert RefinementEntry.create("Short", "done").summary() == "Short"

    def test_affected_sections(self):
        entry = RefinementEntry.create("Edit", "done", affected_sections=["a", "b"])
        assert entry.affected_section("a")
        assert not entry.affected_section("c")
        assert entry.affected_section_count == 2
        assert entry.id.startswith("refinement_")

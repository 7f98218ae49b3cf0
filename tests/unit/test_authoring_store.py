"""Tests for authoring edits, history and selection."""

import logging

import pytest

from formflow.authoring import AuthoringStore, apply, template_names
from formflow.authoring.defaults import DEFAULT_LABELS
from formflow.authoring.edits import AddField, MovePage, RemoveField, UpdateMetadata
from formflow.authoring.templates import PHQ9_SCORE_FIELD, TEMPLATE_BLOCKS
from formflow.config.settings import EngineSettings
from formflow.exceptions import SchemaNotFoundError
from formflow.schemas.form import (
    CalculateScoreAction,
    ConditionalAlertAction,
    FieldType,
    FormField,
    LayoutWidth,
    SchemaStatus,
    ValidationKind,
)
from formflow.schemas.issues import DanglingReferenceWarning
from formflow.storage import InMemoryStorage


@pytest.fixture
def store(two_page_schema):
    return AuthoringStore(two_page_schema)


class TestReducers:
    """apply() is pure and returns values, never raises."""

    def test_input_schema_untouched(self, two_page_schema):
        result = apply(two_page_schema, AddField(page_id="p1", field_type=FieldType.EMAIL))
        assert result.ok
        assert len(two_page_schema.pages[0].fields) == 1
        assert len(result.form_schema.pages[0].fields) == 2

    def test_rejection_returns_original(self, two_page_schema):
        result = apply(two_page_schema, AddField(page_id="nope", field_type=FieldType.EMAIL))
        assert not result.ok
        assert result.form_schema is two_page_schema
        assert "nope" in result.error

    def test_default_field_per_type(self, two_page_schema):
        result = apply(two_page_schema, AddField(page_id="p1", field_type=FieldType.SINGLE_CHOICE))
        field = result.form_schema.pages[0].fields[-1]
        assert field.label == DEFAULT_LABELS[FieldType.SINGLE_CHOICE]
        assert [o.value for o in field.options] == ["option1", "option2"]
        assert field.options[0].id == f"{field.id}_option1"

        result = apply(two_page_schema, AddField(page_id="p1", field_type=FieldType.NUMBER))
        kinds = [r.kind for r in result.form_schema.pages[0].fields[-1].validation_rules]
        assert kinds == [ValidationKind.MIN, ValidationKind.MAX]

    def test_default_layout_width_from_settings(self, two_page_schema):
        settings = EngineSettings(default_layout_width=LayoutWidth.HALF)
        result = apply(two_page_schema, AddField(page_id="p1", field_type=FieldType.EMAIL), settings)
        assert result.form_schema.pages[0].fields[-1].layout_width == LayoutWidth.HALF

    def test_duplicate_field_id_rejected(self, two_page_schema):
        field = FormField(id="age", type=FieldType.NUMBER, label="Again")
        result = apply(two_page_schema, AddField(page_id="p1", field_type=FieldType.NUMBER, field=field))
        assert not result.ok

    def test_move_page_out_of_range(self, two_page_schema):
        result = apply(two_page_schema, MovePage(page_id="p1", target_index=5))
        assert not result.ok

    def test_move_page_renumbers(self, two_page_schema):
        result = apply(two_page_schema, MovePage(page_id="p2", target_index=0))
        assert [(p.id, p.order) for p in result.form_schema.pages] == [("p2", 0), ("p1", 1)]

    def test_remove_referenced_field_warns(self, two_page_schema, make_rule):
        schema = two_page_schema.model_copy(update={
            "conditional_rules": [make_rule("r1", "age", "greater_than", 17, "show_field", "name")],
        })
        result = apply(schema, RemoveField(field_id="age"))

        assert result.ok
        assert result.warnings == [DanglingReferenceWarning(
            field_id="age",
            rule_ids=["r1"],
            message="Removed field 'age' is still referenced (rules: r1)",
        )]
        # Rules are left for the author to repair
        assert [r.id for r in result.form_schema.conditional_rules] == ["r1"]

    def test_update_metadata_rejects_structure(self, two_page_schema):
        result = apply(two_page_schema, UpdateMetadata(changes={"pages": []}))
        assert not result.ok
        assert "pages" in result.error

    def test_update_metadata(self, two_page_schema):
        result = apply(two_page_schema, UpdateMetadata(changes={"title": "Renamed", "status": "published"}))
        assert result.form_schema.title == "Renamed"
        assert result.form_schema.status == SchemaStatus.PUBLISHED


class TestHistory:
    """Undo/redo over schema snapshots."""

    def test_new_store_has_one_page(self):
        store = AuthoringStore()
        assert len(store.schema.pages) == 1
        assert not store.can_undo
        assert not store.is_dirty

    def test_undo_then_redo_is_identity(self, store):
        before = store.schema
        store.add_field("p1", FieldType.EMAIL)
        after = store.schema

        assert store.undo()
        assert store.schema == before
        assert store.redo()
        assert store.schema == after

    def test_undo_redo_over_mixed_edits(self, store):
        edits = [
            lambda: store.add_field("p1", FieldType.EMAIL),
            lambda: store.move_field("age", "p1", 0),
            lambda: store.add_page("Third"),
            lambda: store.move_page("p1", 2),
            lambda: store.remove_field("name"),
            lambda: store.update_metadata(title="Renamed"),
            lambda: store.insert_template("personal_info"),
        ]
        snapshots = [store.schema]
        for edit in edits:
            assert edit().ok
            snapshots.append(store.schema)

        for expected in reversed(snapshots[:-1]):
            assert store.undo()
            assert store.schema == expected
        assert not store.can_undo

        for expected in snapshots[1:]:
            assert store.redo()
            assert store.schema == expected
        assert not store.can_redo

    def test_undo_at_start_is_noop(self, store):
        assert store.undo() is False
        assert store.history_index == 0

    def test_new_edit_truncates_redo(self, store):
        store.add_page("Third")
        store.undo()
        assert store.can_redo
        store.update_page("p1", title="Renamed")
        assert not store.can_redo
        assert len(store.history) == 2

    def test_history_limit(self, two_page_schema):
        store = AuthoringStore(two_page_schema, EngineSettings(history_limit=3))
        for n in range(5):
            store.update_page("p1", title=f"Title {n}")

        assert len(store.history) == 3
        assert store.schema.pages[0].title == "Title 4"
        store.undo()
        store.undo()
        assert not store.can_undo
        assert store.schema.pages[0].title == "Title 2"

    def test_rejected_edit_not_recorded(self, store):
        result = store.remove_field("ghost")
        assert not result.ok
        assert len(store.history) == 1
        assert not store.is_dirty

    def test_undo_clears_selection_and_marks_dirty(self, store):
        store.add_field("p1", FieldType.EMAIL)
        assert store.selected_field_id is not None
        store.undo()
        assert store.selected_field_id is None
        assert store.is_dirty


class TestFieldEdits:
    def test_add_field_selects_it(self, store):
        result = store.add_field("p2", FieldType.DATE, index=0)
        assert result.ok
        assert store.selected_field.type == FieldType.DATE
        assert store.schema.pages[1].fields[0].id == store.selected_field_id

    def test_update_field(self, store):
        store.update_field("name", label="Full name", required=False)
        field = store.schema.get_field("name")
        assert field.label == "Full name"
        assert field.required is False

    def test_update_field_cannot_change_id(self, store):
        result = store.update_field("name", id="other")
        assert not result.ok
        assert store.schema.get_field("name") is not None

    def test_update_field_invalid_type(self, store):
        result = store.update_field("name", required="maybe")
        assert not result.ok

    def test_move_field_between_pages(self, store):
        result = store.move_field("age", "p1", 0)
        assert result.ok
        assert [f.id for f in store.schema.pages[0].fields] == ["age", "name"]
        assert store.schema.pages[1].fields == []

    def test_move_referenced_field_warns(self, store, make_rule, caplog):
        store.add_rule(make_rule("r1", "name", "is_not_empty", None, "show_field", "age"))
        with caplog.at_level(logging.WARNING, logger="formflow.authoring.store"):
            result = store.move_field("age", "p1", 1)

        assert result.ok
        assert [w.rule_ids for w in result.warnings] == [["r1"]]
        assert "rules: r1" in caplog.text

    def test_duplicate_field(self, store):
        result = store.duplicate_field("name")
        fields = store.schema.pages[0].fields
        assert result.ok
        assert fields[1].label == "Name (Copy)"
        assert fields[1].id != "name"
        assert store.selected_field_id == fields[1].id

    def test_remove_selected_field_clears_selection(self, store):
        store.select_field("age")
        store.remove_field("age")
        assert store.selected_field_id is None


class TestRulesAndActions:
    def test_add_rule_with_unknown_field_warns(self, store, make_rule):
        result = store.add_rule(make_rule("r1", "ghost", "is_empty", None, "hide_field", "age"))
        assert result.ok
        assert [w.field_id for w in result.warnings] == ["ghost"]

    def test_duplicate_rule_id_rejected(self, store, make_rule):
        store.add_rule(make_rule("r1", "name", "is_empty", None, "hide_field", "age"))
        result = store.add_rule(make_rule("r1", "name", "is_empty", None, "hide_field", "age"))
        assert not result.ok

    def test_remove_rule(self, store, make_rule):
        store.add_rule(make_rule("r1", "name", "is_empty", None, "hide_field", "age"))
        assert store.remove_rule("r1").ok
        assert store.schema.conditional_rules == []
        assert not store.remove_rule("r1").ok

    def test_score_result_may_not_shadow_field(self, store):
        action = CalculateScoreAction(source_field_ids=["age"], aggregator="sum", result_field_id="name")
        assert not store.add_completion_action(action).ok

    def test_add_and_remove_completion_action(self, store):
        action = CalculateScoreAction(source_field_ids=["age"], aggregator="sum", result_field_id="total")
        assert store.add_completion_action(action).ok
        assert not store.remove_completion_action(3).ok
        assert store.remove_completion_action(0).ok
        assert store.schema.completion_actions == []


class TestPagesAndTemplates:
    def test_add_page_selects_it(self, store):
        store.add_page("Third")
        page = store.schema.pages[-1]
        assert page.title == "Third"
        assert page.order == 2
        assert store.selected_page_id == page.id
        assert store.selected_field_id is None

    def test_remove_page_warns_for_referenced_fields(self, store, make_rule):
        store.add_rule(make_rule("r1", "age", "greater_than", 17, "show_field", "name"))
        result = store.remove_page("p2")
        assert result.ok
        assert [w.field_id for w in result.warnings] == ["age"]
        assert [p.order for p in store.schema.pages] == [0]

    def test_template_names(self):
        assert set(template_names()) == {"personal_info", "medical_history", "insurance_info", "phq9"}

    def test_insert_phq9_template(self, store):
        result = store.insert_template("phq9")
        assert result.ok

        page = store.schema.pages[-1]
        assert page.id == "phq9"
        assert len(page.fields) == 9
        score, alert = store.schema.completion_actions
        assert score.result_field_id == PHQ9_SCORE_FIELD
        assert score.source_field_ids == [f"phq9_q{n}" for n in range(1, 10)]
        assert alert.condition.field_id == PHQ9_SCORE_FIELD

    def test_insert_template_twice_renames(self, store):
        store.insert_template("phq9")
        result = store.insert_template("phq9")
        assert result.ok

        page = store.schema.pages[-1]
        assert page.id == "phq9_2"
        assert page.fields[0].id == "phq9_q1_2"
        assert page.fields[0].options[0].id == "phq9_q1_2_0"
        score, alert = store.schema.completion_actions[2:]
        assert isinstance(score, CalculateScoreAction)
        assert score.result_field_id == "phq9_score_2"
        assert score.source_field_ids[0] == "phq9_q1_2"
        assert isinstance(alert, ConditionalAlertAction)
        assert alert.condition.field_id == "phq9_score_2"
        assert store.validate() == []

    def test_unknown_template(self, store):
        assert not store.insert_template("tax_return").ok

    def test_template_blocks_untouched_by_insert(self, store):
        store.insert_template("personal_info")
        store.insert_template("personal_info")
        assert TEMPLATE_BLOCKS["personal_info"].fields[0].id == "first_name"


class TestSelection:
    def test_field_and_page_selection_exclusive(self, store):
        store.select_field("name")
        store.select_page("p2")
        assert store.selected_field_id is None
        assert store.selected_page_id == "p2"
        store.select_field("age")
        assert store.selected_page_id is None
        assert store.selected_field.label == "Age"


class TestExchange:
    def test_export_then_import(self, store):
        text = store.export_json()
        other = AuthoringStore()
        result = other.import_json(text)
        assert result.ok
        assert other.schema == store.schema
        assert other.is_dirty

    def test_failed_import_keeps_schema(self, store):
        before = store.schema
        result = store.import_json("{}")
        assert not result.ok
        assert store.schema is before

    def test_new_schema_resets(self, store):
        store.add_page()
        store.new_schema("Fresh")
        assert store.schema.title == "Fresh"
        assert not store.can_undo
        assert not store.is_dirty

    @pytest.mark.asyncio
    async def test_save_and_load(self, store):
        storage = InMemoryStorage()
        store.update_metadata(title="Saved form")
        assert store.is_dirty

        schema_id = await store.save(storage)
        assert schema_id == "two_pages"
        assert not store.is_dirty

        other = AuthoringStore()
        loaded = await other.load(storage, schema_id)
        assert loaded.title == "Saved form"
        assert other.schema == store.schema

    @pytest.mark.asyncio
    async def test_failed_save_leaves_state(self, store):
        class BrokenStorage(InMemoryStorage):
            async def save_schema(self, schema):
                raise OSError("disk full")

        store.update_field("name", label="Full name")
        before = store.schema
        history_index = store.history_index

        with pytest.raises(OSError, match="disk full"):
            await store.save(BrokenStorage())

        assert store.schema is before
        assert store.history_index == history_index
        assert store.is_dirty

    @pytest.mark.asyncio
    async def test_load_missing_schema(self, store):
        with pytest.raises(SchemaNotFoundError):
            await store.load(InMemoryStorage(), "missing")

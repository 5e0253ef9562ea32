"""Tests for the draft reducer and the editor that dispatches into it."""

from survey_studio.surveys import actions as a
from survey_studio.surveys.schema import DEFAULT_OPTIONS, Section, make_question
from survey_studio.surveys.state import FEEDBACK_OPEN, IDLE, SELECTING, DraftEditor, EditorState, apply


def q(text: str, kind: str = "short_answer", **kwargs):
    return make_question(kind, text, **kwargs)


def _texts(state: EditorState, section_index: int = 0):
    return [question.text for question in state.sections[section_index].questions]


def _editor(*sections: Section) -> DraftEditor:
    return DraftEditor(EditorState.initial(sections))


def test_add_delete_undo_scenario() -> None:
    editor = DraftEditor()
    q1, q2, q3 = q("Q1"), q("Q2"), q("Q3")

    editor.dispatch(a.AddSection("Demographics", [q1, q2]))
    editor.dispatch(a.AddQuestionsToSection(0, [q3]))
    assert _texts(editor.state) == ["Q1", "Q2", "Q3"]

    editor.dispatch(a.DeleteQuestion(0, 1))
    assert _texts(editor.state) == ["Q1", "Q3"]

    editor.undo()
    assert _texts(editor.state) == ["Q1", "Q2", "Q3"]
    assert all(question.section_name == "Demographics" for question in editor.state.sections[0].questions)


def test_undo_redo_inverse_law() -> None:
    editor = DraftEditor()
    steps = [
        a.AddSection("A", [q("a1"), q("a2")]),
        a.AddSection("B", [q("b1")]),
        a.AddQuestionsToSection(0, [q("a3")]),
        a.UpdateQuestionType(0, 0, "checkbox"),
        a.DeleteQuestion(1, 0),
        a.RenameSection(0, "A2"),
        a.SaveFeedback(0, 1, "too vague"),
    ]
    for step in steps:
        before = editor.state.sections
        editor.dispatch(step)
        assert editor.state.sections != before
    final = editor.state.sections

    for _ in steps:
        editor.undo()
    assert editor.state.sections == ()
    assert not editor.state.can_undo

    for _ in steps:
        editor.redo()
    assert editor.state.sections == final
    assert not editor.state.can_redo


def test_new_action_after_undo_truncates_redo() -> None:
    editor = DraftEditor()
    editor.dispatch(a.AddSection("S1"))
    editor.dispatch(a.AddSection("S2"))
    editor.undo()

    editor.dispatch(a.AddSection("S2b"))
    before = editor.state
    editor.redo()

    assert editor.state is before
    assert editor.state.section_names() == ["S1", "S2b"]


def test_deleting_last_question_prunes_the_section() -> None:
    editor = _editor(
        Section(name="Solo", questions=[q("only")]),
        Section(name="Pair", questions=[q("p1"), q("p2")]),
    )

    editor.dispatch(a.DeleteQuestion(1, 0))
    assert editor.state.section_names() == ["Solo", "Pair"]
    assert _texts(editor.state, 1) == ["p2"]

    editor.dispatch(a.DeleteQuestion(0, 0))
    assert editor.state.section_names() == ["Pair"]


def test_update_question_type_keeps_kind_options_invariant() -> None:
    editor = _editor(Section(name="S", questions=[q("Q")]))

    for kind in ("multiple_choice", "paragraph", "dropdown", "short_answer", "checkbox"):
        editor.dispatch(a.UpdateQuestionType(0, 0, kind))
        question = editor.state.sections[0].questions[0]
        assert question.type == kind
        if kind in ("short_answer", "paragraph"):
            assert getattr(question, "options", None) is None
        else:
            assert question.options == list(DEFAULT_OPTIONS)


def test_update_question_type_with_explicit_options() -> None:
    editor = _editor(Section(name="S", questions=[q("Colour?")]))

    editor.dispatch(a.UpdateQuestionType(0, 0, "multiple_choice", ["Red", "Green"]))

    assert editor.state.sections[0].questions[0].options == ["Red", "Green"]


def test_stale_indices_leave_state_untouched() -> None:
    state = EditorState.initial([Section(name="S", questions=[q("Q")])])

    for action in (
        a.DeleteQuestion(0, 5),
        a.DeleteQuestion(3, 0),
        a.UpdateQuestionType(1, 0, "checkbox"),
        a.AddQuestionsToSection(2, [q("x")]),
        a.ToggleFeedback(0, 9),
        a.RenameSection(4, "Nope"),
    ):
        assert apply(state, action) is state


def test_duplicate_section_name_is_ignored() -> None:
    editor = DraftEditor()
    editor.dispatch(a.AddSection("Intro", [q("Hi")]))
    history = editor.state.history

    editor.dispatch(a.AddSection("Intro", [q("Again")]))

    assert len(editor.state.sections) == 1
    assert editor.state.history is history


def test_remove_and_clear_sections() -> None:
    editor = _editor(Section(name="A", questions=[q("a")]), Section(name="B", questions=[q("b")]))

    editor.dispatch(a.RemoveSection("A"))
    assert editor.state.section_names() == ["B"]

    editor.dispatch(a.ClearSections())
    assert editor.state.is_empty
    editor.undo()
    assert editor.state.section_names() == ["B"]


def test_rename_section_restamps_questions() -> None:
    editor = _editor(Section(name="Old", questions=[q("a", section_name="Old")]), Section(name="Other"))

    editor.dispatch(a.StartEditSectionName(0))
    assert editor.state.edited_section_name == "Old"
    editor.dispatch(a.SetEditedSectionName("  New  "))
    editor.dispatch(a.SaveSectionName())

    assert editor.state.section_names() == ["New", "Other"]
    assert editor.state.sections[0].questions[0].section_name == "New"
    assert editor.state.editing_section_index is None


def test_rename_section_refuses_blank_or_taken_names() -> None:
    state = EditorState.initial([Section(name="A"), Section(name="B")])

    assert apply(state, a.RenameSection(0, "   ")) is state
    assert apply(state, a.RenameSection(0, "B")) is state


def test_edit_buffer_round_trip() -> None:
    editor = _editor(Section(name="S", questions=[q("Name?", section_name="S")]))

    editor.dispatch(a.StartEditQuestion(0, 0))
    editor.dispatch(a.UpdateEditedQuestion(text="Favourite colour?", kind="dropdown", required=False))
    assert editor.state.edited_question.options == DEFAULT_OPTIONS

    editor.dispatch(a.UpdateEditedOption(0, "Red"))
    editor.dispatch(a.AddEditedOption())
    editor.dispatch(a.UpdateEditedOption(2, "Blue"))
    editor.dispatch(a.RemoveEditedOption(1))
    assert editor.state.sections[0].questions[0].text == "Name?"

    editor.dispatch(a.SaveEditedQuestion())
    question = editor.state.sections[0].questions[0]
    assert question.type == "dropdown"
    assert question.text == "Favourite colour?"
    assert question.options == ["Red", "Blue"]
    assert question.required is False
    assert editor.state.editing_question is None


def test_edit_buffer_keeps_at_least_one_option() -> None:
    editor = _editor(Section(name="S", questions=[q("Q", "checkbox", options=["only"])]))
    editor.dispatch(a.StartEditQuestion(0, 0))

    editor.dispatch(a.RemoveEditedOption(0))

    assert editor.state.edited_question.options == ("only",)


def test_cancel_edit_discards_buffer() -> None:
    editor = _editor(Section(name="S", questions=[q("Q")]))
    editor.dispatch(a.StartEditQuestion(0, 0))
    editor.dispatch(a.UpdateEditedQuestion(text="changed"))

    editor.dispatch(a.CancelEditQuestion())

    assert editor.state.edited_question is None
    assert _texts(editor.state) == ["Q"]


def test_feedback_panel_and_batch_selection() -> None:
    editor = _editor(Section(name="S", questions=[q("Q0"), q("Q1"), q("Q2")]))
    assert editor.state.feedback_mode == IDLE

    editor.dispatch(a.ToggleFeedback(0, 0))
    assert editor.state.feedback_mode == FEEDBACK_OPEN
    editor.dispatch(a.SaveFeedback(0, 0, "make it shorter"))

    # Selecting is only possible from an open panel.
    editor.dispatch(a.ToggleQuestionSelection(0, 1))
    assert editor.state.selection == ()

    editor.dispatch(a.StartBatchSelection())
    assert editor.state.feedback_mode == SELECTING
    assert editor.state.source_feedback == "make it shorter"

    editor.dispatch(a.ToggleQuestionSelection(0, 0))
    editor.dispatch(a.ToggleQuestionSelection(0, 2))
    editor.dispatch(a.ToggleQuestionSelection(0, 1))
    assert editor.state.selection == ((0, 2), (0, 1))

    editor.dispatch(a.ToggleQuestionSelection(0, 2))
    assert editor.state.selection == ((0, 1),)

    editor.dispatch(a.CancelBatchSelection())
    assert editor.state.feedback_mode == IDLE
    assert editor.state.selection == ()


def test_toggle_feedback_switches_between_questions() -> None:
    editor = _editor(Section(name="S", questions=[q("Q0"), q("Q1")]))

    editor.dispatch(a.ToggleFeedback(0, 0))
    editor.dispatch(a.ToggleFeedback(0, 1))
    assert editor.state.showing_feedback == (0, 1)

    editor.dispatch(a.ToggleFeedback(0, 1))
    assert editor.state.showing_feedback is None


def test_delete_question_closes_feedback_in_that_section() -> None:
    editor = _editor(Section(name="S", questions=[q("Q0"), q("Q1"), q("Q2")]))
    editor.dispatch(a.ToggleFeedback(0, 2))

    editor.dispatch(a.DeleteQuestion(0, 0))

    assert editor.state.feedback_mode == IDLE


def test_undo_closes_feedback_panel() -> None:
    editor = _editor(Section(name="S", questions=[q("Q0")]))
    editor.dispatch(a.SaveFeedback(0, 0, "note"))
    editor.dispatch(a.ToggleFeedback(0, 0))

    editor.undo()

    assert editor.state.showing_feedback is None
    assert editor.state.sections[0].questions[0].feedback is None


def test_apply_refined_question_keeps_feedback() -> None:
    editor = _editor(Section(name="S", questions=[q("Old", feedback="be concrete")]))

    editor.dispatch(a.ApplyRefinedQuestion(0, 0, q("New", "multiple_choice", options=["y", "n"])))

    question = editor.state.sections[0].questions[0]
    assert question.text == "New"
    assert question.feedback == "be concrete"
    assert question.section_name == "S"


def test_form_actions_do_not_touch_history() -> None:
    editor = DraftEditor()

    editor.dispatch(a.SetDescription("A survey about coffee"))
    editor.dispatch(a.SetSectionName("Habits"))
    editor.dispatch(a.SetQuestionCount(0))
    editor.dispatch(a.SetUploadedDocument("notes.txt", "raw text"))

    state = editor.state
    assert state.description == "A survey about coffee"
    assert state.question_count is None
    assert state.document_name == "notes.txt"
    assert len(state.history) == 1

    editor.dispatch(a.ResetGenerationForm())
    assert editor.state.description == ""
    assert editor.state.document_name is None


def test_dialog_forms() -> None:
    editor = _editor(Section(name="S", questions=[q("Q")]))

    editor.dispatch(a.OpenAddSectionDialog())
    editor.dispatch(a.UpdateAddSectionForm(title="Extra", question_count=4))
    editor.dispatch(a.UpdateAddSectionForm(clear_question_count=True))
    assert editor.state.add_section.open
    assert editor.state.add_section.title == "Extra"
    assert editor.state.add_section.question_count is None

    editor.dispatch(a.OpenMoreQuestionsDialog(0))
    editor.dispatch(a.UpdateMoreQuestionsForm(description="more", question_count=3))
    assert editor.state.more_questions.section_index == 0
    assert editor.state.more_questions.question_count == 3

    editor.dispatch(a.ResetMoreQuestionsForm())
    assert not editor.state.more_questions.open


def test_subscribers_see_each_change_once() -> None:
    editor = DraftEditor()
    seen = []
    unsubscribe = editor.subscribe(lambda old, new: seen.append((old.section_names(), new.section_names())))

    editor.dispatch(a.AddSection("A"))
    editor.dispatch(a.AddSection("A"))
    unsubscribe()
    editor.dispatch(a.AddSection("B"))

    assert seen == [([], ["A"])]


def test_from_record_seeds_history() -> None:
    class Record:
        id = "draft-1"
        language = "en"
        sections = [{"name": "Intro", "questions": [{"question": "Hi?", "type": "paragraph"}]}]

    editor = DraftEditor.from_record(Record())

    assert editor.state.draft_id == "draft-1"
    assert editor.state.language == "en"
    assert editor.state.section_names() == ["Intro"]
    assert not editor.state.can_undo


def test_pruning_a_section_ends_section_name_edit() -> None:
    editor = _editor(
        Section(name="A", questions=[q("a1")]),
        Section(name="B", questions=[q("b1")]),
        Section(name="C", questions=[q("c1")]),
    )
    editor.dispatch(a.StartEditSectionName(1))
    editor.dispatch(a.SetEditedSectionName("B renamed"))

    editor.dispatch(a.DeleteQuestion(0, 0))
    assert editor.state.editing_section_index is None

    editor.dispatch(a.SaveSectionName())
    assert editor.state.section_names() == ["B", "C"]


def test_undo_ends_question_edit() -> None:
    editor = _editor(Section(name="A", questions=[q("q1"), q("q2")]))
    editor.dispatch(a.DeleteQuestion(0, 0))
    editor.dispatch(a.StartEditQuestion(0, 0))
    editor.dispatch(a.UpdateEditedQuestion(text="q2 edited"))

    editor.undo()
    assert editor.state.editing_question is None
    assert editor.state.edited_question is None

    editor.dispatch(a.SaveEditedQuestion())
    assert _texts(editor.state) == ["q1", "q2"]


def test_redo_ends_section_name_edit() -> None:
    editor = _editor(Section(name="A", questions=[q("a1")]), Section(name="B", questions=[q("b1")]))
    editor.dispatch(a.RemoveSection("A"))
    editor.undo()
    editor.dispatch(a.StartEditSectionName(1))

    editor.redo()

    assert editor.state.editing_section_index is None
    assert editor.state.edited_section_name == ""


def test_section_shifts_close_more_questions_dialog() -> None:
    editor = _editor(
        Section(name="A", questions=[q("a1")]),
        Section(name="B", questions=[q("b1")]),
        Section(name="C", questions=[q("c1")]),
    )

    editor.dispatch(a.OpenMoreQuestionsDialog(1))
    editor.dispatch(a.DeleteQuestion(0, 0))
    assert not editor.state.more_questions.open
    assert editor.state.more_questions.section_index is None

    editor.dispatch(a.OpenMoreQuestionsDialog(1))
    editor.dispatch(a.RemoveSection("B"))
    assert editor.state.more_questions.section_index is None


def test_deleting_inside_another_section_keeps_edits() -> None:
    editor = _editor(
        Section(name="A", questions=[q("a1"), q("a2")]),
        Section(name="B", questions=[q("b1")]),
    )
    editor.dispatch(a.StartEditQuestion(1, 0))
    editor.dispatch(a.OpenMoreQuestionsDialog(1))

    editor.dispatch(a.DeleteQuestion(0, 0))

    assert editor.state.editing_question == (1, 0)
    assert editor.state.more_questions.section_index == 1

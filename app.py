"""
PhysLab - Physics Exercise Player

Streamlit application where students work through collections of physics
exercises. Progress is saved after every answer, reveal and navigation.

Usage:
    streamlit run app.py
"""

import logging

import streamlit as st

from physlab import config
from physlab.classroom import (
    AccessGate,
    AssignmentAvailability,
    AssignmentController,
    ClassroomLoader,
    CollectionNavigator,
    ProgressStore,
    RequestContext,
    option_labels,
)
from physlab.errors import ExhaustedVariations, PhysLabError
from physlab.schemas import QuestionType


# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s"
)

st.set_page_config(
    page_title="PhysLab",
    page_icon="🧪",
    layout="wide",
    initial_sidebar_state="expanded",
)


# -----------------------------------------------------------------------------
# Session State Initialization
# -----------------------------------------------------------------------------

def init_session_state():
    """Initialize session state variables."""
    if "loader" not in st.session_state:
        db_path = config.classroom_db_path()
        st.session_state.loader = ClassroomLoader(db_path) if db_path.exists() else None

    if "controller" not in st.session_state and st.session_state.loader:
        loader = st.session_state.loader
        store = ProgressStore()
        st.session_state.controller = AssignmentController(loader, store, AccessGate(loader))
        st.session_state.navigator = CollectionNavigator(loader, store)

    if "student_id" not in st.session_state:
        st.session_state.student_id = "student"

    if "session" not in st.session_state:
        st.session_state.session = None  # CollectionSession of the open collection


def current_context() -> RequestContext:
    """A fresh context for this script run; nothing carries over between runs."""
    return RequestContext(
        student_id=st.session_state.student_id,
        headers=dict(st.context.headers),
    )


# -----------------------------------------------------------------------------
# Sidebar: Collections
# -----------------------------------------------------------------------------

def render_sidebar():
    """Render the sidebar with identity and collection list."""
    st.sidebar.title("🧪 PhysLab")

    if not st.session_state.loader:
        st.sidebar.error("Database not found. Please compile a course first.")
        return

    st.session_state.student_id = st.sidebar.text_input(
        "Student", value=st.session_state.student_id
    )
    classroom_id = st.sidebar.text_input("Classroom", value="physics-9a")

    st.sidebar.divider()
    st.sidebar.subheader("Collections")

    nav = st.session_state.navigator
    for collection in nav.list_collections(classroom_id):
        summary = nav.get_collection_summary(st.session_state.student_id, collection.id)
        label = f"{collection.title} ({round(summary.progress_percent)}%)"
        if st.sidebar.button(label, key=f"collection_{collection.id}", use_container_width=True):
            open_collection(collection.id)


def open_collection(collection_id: str):
    try:
        st.session_state.session = st.session_state.navigator.start_session(
            st.session_state.student_id, collection_id
        )
    except PhysLabError as e:
        st.sidebar.error(e.message)
        return
    st.rerun()


# -----------------------------------------------------------------------------
# Main Content: Collection Player
# -----------------------------------------------------------------------------

def render_collection_view():
    """Render the open collection and its current assignment."""
    session = st.session_state.session
    if session is None:
        st.info("Select a collection from the sidebar to begin.")
        return

    nav = st.session_state.navigator
    collection = st.session_state.loader.get_collection(session.collection_id)
    summary = nav.get_collection_summary(st.session_state.student_id, collection.id)

    if session.celebrate:
        st.balloons()
        st.success(f"Collection completed! You finished all exercises in {collection.title}.")
        session.celebrate = False

    st.title(collection.title)
    st.progress(summary.progress_percent / 100)

    cols = st.columns(session.total)
    for index, col in enumerate(cols):
        availability = session.availability(index, summary)
        with col:
            if st.button(
                f"{index + 1}",
                key=f"goto_{index}",
                disabled=availability == AssignmentAvailability.LOCKED,
                type="primary" if index == session.current_index else "secondary",
                use_container_width=True,
            ):
                session.go_to(index)
                st.rerun()

    st.divider()
    assignment = collection.assignments[session.current_index]
    render_assignment(assignment.id)


def render_assignment(assignment_id: str):
    """Render the active question of an assignment."""
    controller = st.session_state.controller
    ctx = current_context()

    try:
        view = controller.open_assignment(ctx, assignment_id)
    except PhysLabError as e:
        st.error(e.message)
        return

    assignment = view.assignment
    session = st.session_state.session
    review = view.review_mode or session.review_mode

    st.subheader(assignment.title)
    if review:
        st.caption("Review mode - answers are checked but not saved.")
    if view.exhausted:
        st.error(ExhaustedVariations(
            assignment.id,
            completed=len(view.record.completed_question_indices),
            required=assignment.required_variations_count,
            total=assignment.total_questions,
        ).message)
        return

    index = view.active_index
    question = assignment.questions[index]
    if assignment.is_variation_mode:
        st.markdown(
            f"Variations passed: {len(view.record.completed_question_indices)}"
            f" / {assignment.required_variations_count}"
        )
    else:
        st.markdown(f"Question {index + 1} of {assignment.total_questions}")
    st.markdown(question.latex_text)

    revealed = index in view.record.revealed_question_indices
    if revealed and question.solution_text:
        st.info(question.solution_text)

    render_answer_form(assignment_id, index, question, review)
    if not review and not revealed and question.has_solution:
        render_reveal(assignment_id, index)
    render_navigation(assignment_id, view, review)


def render_answer_form(assignment_id: str, index: int, question, review: bool):
    if question.type == QuestionType.NUMERICAL:
        candidate = st.text_input("Your answer (e.g. 1/2, 2^3)", key=f"answer_{assignment_id}_{index}")
    else:
        labels = option_labels(question)
        for label, option in zip(labels, question.options):
            st.markdown(f"**{label}.** {option}")
        candidate = st.radio("Your choice", labels, key=f"answer_{assignment_id}_{index}", horizontal=True)

    if st.button("Check", key=f"check_{assignment_id}_{index}"):
        try:
            result = st.session_state.controller.submit_answer(
                current_context(), assignment_id, index, candidate, review=review
            )
        except PhysLabError as e:
            st.error(e.message)
            return
        if result.correct:
            st.success("Correct!")
        else:
            st.warning("Incorrect. Try again.")


def render_reveal(assignment_id: str, index: int):
    confirmed = st.checkbox(
        "I understand that this question will no longer count once I see the solution",
        key=f"confirm_{assignment_id}_{index}",
    )
    if st.button("Show solution", key=f"reveal_{assignment_id}_{index}", disabled=not confirmed):
        try:
            st.session_state.controller.reveal_solution(
                current_context(), assignment_id, index, confirmed=confirmed
            )
        except PhysLabError as e:
            st.error(e.message)
            return
        st.rerun()


def render_navigation(assignment_id: str, view, review: bool):
    controller = st.session_state.controller
    nav = st.session_state.navigator
    session = st.session_state.session

    col1, col2 = st.columns(2)
    with col1:
        if not view.review_mode and st.button("Next →", key=f"next_{assignment_id}"):
            try:
                controller.next_question(current_context(), assignment_id, unrestricted=review)
            except PhysLabError as e:
                st.error(e.message)
                return
            st.rerun()
    with col2:
        if view.review_mode and st.button("Continue", key=f"finish_{assignment_id}", type="primary"):
            try:
                nav.finish_assignment(st.session_state.student_id, session)
            except PhysLabError as e:
                st.error(e.message)
                return
            st.rerun()


# -----------------------------------------------------------------------------
# Main App
# -----------------------------------------------------------------------------

def main():
    """Main application entry point."""
    init_session_state()
    render_sidebar()
    if st.session_state.loader:
        render_collection_view()
    else:
        st.error("Database not found. Please compile a course first.")
        st.code("python scripts/compile_classroom.py mechanics")


if __name__ == "__main__":
    main()

"""
Chat interface service - handles chat UI components and interactions.
Everything stateful lives in the ConversationManager; this module only renders
it and forwards user actions through the background event loop.
"""

from typing import List, Optional

import streamlit as st

from config.app_config import AppConfig, get_config
from services.ai_service.llm_client import CompletionClient
from services.auth_service.auth_manager import AuthError, AuthService
from services.chat_service.conversation_manager import ConversationManager
from services.chat_service.models import Message
from services.chat_service.personas import PERSONAS, get_persona
from services.quiz_service.quiz_manager import QuizSession, get_quiz, quiz_feedback
from services.ui_service.async_runner import AsyncRunner
from utils.logging_config import get_logger, log_user_interaction

QUIZ_SESSION_KEY = "quiz_session"


class ChatInterface:
    """
    Service for chat interface components and interactions.
    Handles the conversation sidebar, message rendering, quiz panel and settings.
    """

    def __init__(
        self,
        manager: ConversationManager,
        runner: AsyncRunner,
        completion_client: CompletionClient,
        auth_service: Optional[AuthService] = None,
        config: Optional[AppConfig] = None
    ):
        self.logger = get_logger(__name__)
        self.config = config or get_config()
        self.manager = manager
        self.runner = runner
        self.completion_client = completion_client
        self.auth_service = auth_service

    @property
    def requires_sign_in(self) -> bool:
        """Guests see only the sign-in form when guest mode is turned off"""
        return (
            not self.config.auth.allow_guest_mode
            and self.auth_service is not None
            and not self.auth_service.is_authenticated
        )

    def render(self):
        """Render the whole page for one script run"""
        if self.requires_sign_in:
            with st.sidebar:
                st.markdown(f"# {self.config.ui.app_title}")
                self._render_auth_section()
            st.info("Sign in to start chatting.")
            return

        self.render_conversation_sidebar()
        self.render_header()

        if self.manager.is_quiz_open:
            self.render_quiz()
        else:
            self.render_chat_messages(self.manager.messages)

        prompt = st.chat_input(f"Ask {self.manager.persona.display_name} anything...")
        if prompt:
            with st.spinner(self.config.ui.thinking_text):
                self._dispatch(self.manager.send_message(prompt))
            st.rerun()

    def _dispatch(self, coro):
        """Run a manager operation and wait for its persistence to settle"""
        return self.runner.run(self._settle(coro))

    async def _settle(self, coro):
        result = await coro
        await self.manager.flush()
        return result

    def render_header(self):
        persona = self.manager.persona
        col_title, col_quiz = st.columns([4, 1])
        with col_title:
            st.markdown(f"## {persona.icon} {persona.display_name}")
            st.caption(persona.description)
        with col_quiz:
            if not self.manager.is_quiz_open and st.button("📝 Take quiz", use_container_width=True):
                st.session_state[QUIZ_SESSION_KEY] = QuizSession.start(persona.id)
                self._dispatch(self.manager.start_quiz())
                st.rerun()

    def render_conversation_sidebar(self):
        """Render the conversation sidebar"""
        with st.sidebar:
            st.markdown(f"# {self.config.ui.app_title}")
            self._render_auth_section()

            st.divider()
            if st.button("➕ New Conversation", use_container_width=True, type="secondary",
                         disabled=self.manager.is_loading):
                self._dispatch(self.manager.new_chat())
                st.rerun()

            st.markdown("## 💬 Conversations")
            history = self.manager.chat_history
            st.caption(f"📊 {len(history)} conversation{'s' if len(history) != 1 else ''}")

            for item in history:
                col_select, col_delete = st.columns([5, 1])
                with col_select:
                    label = f"{'✅' if item.selected else '💬'} {item.title}"
                    if st.button(label, key=f"select_{item.id}", use_container_width=True,
                                 help=item.date, type="primary" if item.selected else "secondary"):
                        if not item.selected:
                            self._dispatch(self.manager.select_chat(item.id))
                            st.rerun()
                with col_delete:
                    if st.button("🗑️", key=f"delete_{item.id}", help="Delete conversation"):
                        self._dispatch(self.manager.delete_chat(item.id))
                        st.rerun()

            st.divider()
            self._render_persona_selector()
            self._render_settings()
            self._render_quiz_history()

    def _render_persona_selector(self):
        st.markdown("### 🌍 Persona")
        options = list(PERSONAS.keys())
        current = self.manager.current_persona
        selected = st.selectbox(
            "Choose your guide:",
            options,
            index=options.index(current),
            format_func=lambda persona_type: f"{PERSONAS[persona_type].icon} {PERSONAS[persona_type].display_name}",
            help=PERSONAS[current].description
        )
        if selected != current:
            self._dispatch(self.manager.change_persona(selected))
            st.rerun()

    def _render_settings(self):
        with st.expander("⚙️ Settings"):
            providers = list(self.config.llm.providers.keys())
            current_provider = self.completion_client.get_provider()
            with st.form("api_settings"):
                provider = st.selectbox("Provider", providers, index=providers.index(current_provider))
                api_key = st.text_input("API key", type="password",
                                        help="Stored on this machine and used instead of the configured key")
                if st.form_submit_button("Save"):
                    self.completion_client.save_credentials(api_key, provider)
                    log_user_interaction(self.logger, "save_api_settings", provider=provider)
                    st.success("Settings saved")

    def _render_quiz_history(self):
        if not self.manager.is_authenticated or self.manager.quiz_service is None:
            return

        with st.expander("📝 Quiz history"):
            history = self.runner.run(self.manager.quiz_history())
            if not history:
                st.caption("No quizzes taken yet")
            for entry in history:
                st.markdown(f"**{entry.get('persona', 'Quiz')}**: {entry.get('score')}/{entry.get('total_questions')}")

    def _render_auth_section(self):
        if self.auth_service is None or not self.config.auth.enabled:
            return

        session = self.auth_service.session
        if session is not None:
            st.caption(f"👤 {session.email or 'Signed in'}")
            if st.button("Sign out", use_container_width=True):
                self._run_auth_action(self.auth_service.sign_out())
            return

        with st.expander("🔐 Sign in to sync your conversations"):
            with st.form("auth_form"):
                email = st.text_input("Email")
                password = st.text_input("Password", type="password")
                col_in, col_up = st.columns(2)
                sign_in = col_in.form_submit_button("Sign in")
                sign_up = col_up.form_submit_button("Sign up")

            if sign_in or sign_up:
                if len(password) < self.config.auth.password_min_length:
                    st.error(f"Password must be at least {self.config.auth.password_min_length} characters")
                    return
                action = self.auth_service.sign_in if sign_in else self.auth_service.sign_up
                self._run_auth_action(action(email, password))

    def _run_auth_action(self, coro):
        try:
            self.runner.run(coro)
        except AuthError as e:
            st.error(str(e))
            return
        with st.spinner("Syncing conversations..."):
            self.runner.run(self._sync_auth_state())
        st.rerun()

    async def _sync_auth_state(self):
        await self.manager.set_authenticated(self.auth_service.is_authenticated)
        await self.manager.flush()

    def render_chat_messages(self, messages: List[Message]):
        """Render chat messages in the main interface"""
        for message in messages:
            if message.sender == "user":
                with st.chat_message("user"):
                    st.markdown(message.content)
                continue

            persona = get_persona(message.persona)
            with st.chat_message("assistant", avatar=persona.icon):
                if message.is_placeholder:
                    st.caption(message.content)
                else:
                    st.markdown(message.content)

    def render_quiz(self):
        """Render the quiz panel for the current persona"""
        session: Optional[QuizSession] = st.session_state.get(QUIZ_SESSION_KEY)
        if session is None:
            session = QuizSession.start(self.manager.current_persona)
            st.session_state[QUIZ_SESSION_KEY] = session

        quiz = get_quiz(session.persona)
        st.markdown(f"### {quiz.title}")
        st.caption(quiz.description)

        if session.answers:
            last = session.answers[-1]
            answered = next(q for q in session.questions if q.id == last.question_id)
            if last.is_correct:
                st.success(f"Correct! {answered.explanation}")
            else:
                st.error(f"Not quite. {answered.explanation}")

        if session.is_complete:
            st.markdown(f"**Score: {session.score}/{session.total}**")
            st.info(quiz_feedback(session.score, session.total))
            if st.button("Back to chat", type="primary"):
                st.session_state.pop(QUIZ_SESSION_KEY, None)
                self._dispatch(self.manager.complete_quiz(session.score, session.total))
                st.rerun()
            return

        question = session.current_question
        st.progress(len(session.answers) / session.total)
        with st.form(f"quiz_{question.id}"):
            st.markdown(f"**{question.question}**")
            choice = st.radio("Your answer", range(len(question.options)),
                              format_func=lambda index: question.options[index])
            if st.form_submit_button("Submit answer"):
                result = session.answer(choice)
                self.runner.run(self.manager.record_quiz_answer(
                    result.question_id, question.options[choice], result.is_correct
                ))
                st.rerun()

        if st.button("Cancel quiz"):
            st.session_state.pop(QUIZ_SESSION_KEY, None)
            self._dispatch(self.manager.cancel_quiz())
            st.rerun()

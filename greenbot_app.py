import streamlit as st

from config.environments import get_environment_config
from infrastructure.external.supabase_client import SupabaseClientProvider
from infrastructure.storage.key_value_store import is_valid_session_token, new_session_token, open_session_store
from services.session_factory import build_session
from services.ui_service import ChatInterface, get_async_runner
from utils.logging_config import get_logger, initialize_logging

# Get configuration for the current APP_ENV
config = get_environment_config()

# Initialize logging and error tracking
error_tracker = initialize_logging(config)
logger = get_logger(__name__)

for config_error in config.validate():
    logger.warning(f"Configuration error: {config_error}")

SESSION_KEY = "greenbot_session"
BROWSER_TOKEN_PARAM = "sid"


def get_browser_token() -> str:
    """Token naming this browser's private store, kept in the page URL"""
    token = st.query_params.get(BROWSER_TOKEN_PARAM)
    if not is_valid_session_token(token):
        token = new_session_token()
        st.query_params[BROWSER_TOKEN_PARAM] = token
    return token


async def open_session(store):
    client = None
    if config.auth.enabled:
        try:
            client = await SupabaseClientProvider(config).get_client()
        except Exception as e:
            error_tracker.track_error(e, "supabase_initialization")

    return await build_session(config, store, client=client, error_tracker=error_tracker)


def main_app():
    """Main application content"""
    st.set_page_config(page_title=config.ui.app_title, page_icon="🌱", layout="wide")
    runner = get_async_runner()

    if SESSION_KEY not in st.session_state:
        try:
            store = open_session_store(config.storage.local_store_dir, get_browser_token())
            with st.status("Loading conversations...", expanded=False) as status:
                st.session_state[SESSION_KEY] = runner.run(open_session(store))
                status.update(label="✅ Conversations loaded", state="complete")
            logger.info("Session initialized successfully")
        except Exception as e:
            error_tracker.track_error(e, "session_initialization")
            st.error("Failed to initialize conversations. Please refresh the page.")
            return

    session = st.session_state[SESSION_KEY]
    interface = ChatInterface(
        manager=session.manager,
        runner=runner,
        completion_client=session.completion_client,
        auth_service=session.auth_service,
        config=config
    )
    interface.render()


main_app()

"""Streamlit Web UI for line-optimizer.

Form (title / body / CTA / target length) → optimized LINE message that can
be edited by hand or refined through a chat with the model.
"""

from __future__ import annotations

import asyncio
import logging
import os

logger = logging.getLogger(__name__)

import nest_asyncio
import streamlit as st
from dotenv import load_dotenv

load_dotenv()
nest_asyncio.apply()

# Streamlit Cloud: sync st.secrets → os.environ so the client can read them
if "ANTHROPIC_API_KEY" not in os.environ:
    try:
        os.environ["ANTHROPIC_API_KEY"] = st.secrets["ANTHROPIC_API_KEY"]
    except Exception:
        pass

from line_optimizer.clients.llm_client import LLMClient
from line_optimizer.config import load_config
from line_optimizer.errors import OptimizerError, user_message
from line_optimizer.pipeline.orchestrator import MessageOptimizer
from line_optimizer.utils.char_count import logical_length

# ---------------------------------------------------------------------------
# Page config
# ---------------------------------------------------------------------------

st.set_page_config(
    page_title="LINE Message Optimizer",
    page_icon=":speech_balloon:",
    layout="centered",
)

config = load_config()
limits = config.limits

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run a coroutine on this browser session's event loop.

    The loop is kept across reruns so the HTTP client's connections stay
    bound to the loop that created them.
    """
    if "event_loop" not in st.session_state:
        st.session_state.event_loop = asyncio.new_event_loop()
    return st.session_state.event_loop.run_until_complete(coro)


def _get_optimizer() -> MessageOptimizer:
    if "optimizer" not in st.session_state:
        try:
            llm = LLMClient(timeout=config.llm.timeout)
        except Exception as e:
            raise RuntimeError(
                f"APIキーが設定されていません。ANTHROPIC_API_KEYを確認してください: {e}"
            ) from e
        st.session_state.optimizer = MessageOptimizer.from_config(llm, config)
    return st.session_state.optimizer


def _show_error(e: OptimizerError) -> None:
    st.error(user_message(e, limits.min_limit, limits.max_limit))


def _on_output_edited() -> None:
    optimizer = st.session_state.get("optimizer")
    if optimizer is None or optimizer.artifact is None:
        return
    text = st.session_state["output_text"]
    if text != optimizer.artifact.text:
        optimizer.edit(text)


def _count_caption(text: str) -> None:
    st.caption(f"現在の文字数: {logical_length(text)}")


# ---------------------------------------------------------------------------
# Input form
# ---------------------------------------------------------------------------

st.title("LINE Message Optimizer")
st.markdown("メルマガなどの長文を、文字数制限内のLINEメッセージに最適化します。")

title = st.text_area("タイトル (任意)", placeholder="例: ✨新商品のお知らせ✨", height=70)
_count_caption(title)

source_text = st.text_area(
    "元の文章 (メルマガなど) *必須",
    placeholder="ここにLINE用に最適化したい文章を貼り付けてください...",
    height=200,
)
_count_caption(source_text)

cta = st.text_area("CTA (Call to Action - 任意)", placeholder="例: 詳細はこちらをチェック！ 👉 [リンク]", height=70)
_count_caption(cta)

char_limit = st.number_input(
    f"全体の目標文字数 (改行・絵文字含む、{limits.min_limit}〜{limits.max_limit}字)",
    min_value=limits.min_limit,
    max_value=limits.max_limit,
    value=limits.default_limit,
    step=10,
)

if st.button("LINE用に最適化する ✨", type="primary", disabled=not source_text.strip()):
    try:
        optimizer = _get_optimizer()
    except RuntimeError as e:
        st.error(str(e))
        st.stop()
    with st.spinner("処理中..."):
        try:
            artifact = _run(optimizer.optimize(source_text, int(char_limit), title, cta))
        except OptimizerError as e:
            logger.exception("Optimization failed")
            _show_error(e)
        else:
            st.session_state["pending_output"] = artifact.text

# ---------------------------------------------------------------------------
# Output + refinement
# ---------------------------------------------------------------------------

optimizer: MessageOptimizer | None = st.session_state.get("optimizer")

if optimizer is not None and optimizer.artifact is not None:
    artifact = optimizer.artifact
    max_length = optimizer.request.max_length

    st.divider()
    st.subheader("最適化されたメッセージ")
    # Widget state can only be replaced before the widget is drawn
    pending = st.session_state.pop("pending_output", None)
    if pending is not None or "output_text" not in st.session_state:
        st.session_state["output_text"] = artifact.text if pending is None else pending
    st.text_area("編集できます", key="output_text", height=220, on_change=_on_output_edited)

    length = artifact.length
    if length > max_length:
        st.warning(f"文字数: {length} / {max_length}字 (上限を超えています)")
    else:
        st.caption(f"文字数: {length} / {max_length}字")
    if artifact.truncated:
        st.caption("AIの出力が上限を超えたため、末尾を切り詰めました。")

    st.download_button(
        "テキストをダウンロード",
        data=artifact.text.encode("utf-8"),
        file_name="line_message.txt",
        mime="text/plain",
    )

    st.divider()
    st.subheader("AIと対話して修正")
    if optimizer.seed_error is not None:
        st.info("修正セッションの準備に失敗しました。指示を送ると再試行します。")

    for turn in optimizer.history:
        with st.chat_message("user" if turn.role == "user" else "assistant"):
            st.markdown(turn.display_text.replace("\n", "  \n"))
            st.caption(turn.timestamp.strftime("%H:%M"))

    instruction = st.chat_input("例: もっと親しみやすいトーンにして")
    if instruction:
        with st.spinner("修正中..."):
            try:
                artifact = _run(optimizer.refine(instruction))
            except OptimizerError as e:
                logger.exception("Refinement failed")
                _show_error(e)
            else:
                st.session_state["pending_output"] = artifact.text
                st.rerun()

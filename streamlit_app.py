import os
import uuid

import requests
import streamlit as st

API_BASE_URL = os.environ.get("API_BASE_URL", "http://localhost:8000")

st.title("Ava Travel Assistant")

if "thread_id" not in st.session_state:
    st.session_state.thread_id = str(uuid.uuid4())
if "messages" not in st.session_state:
    st.session_state.messages = []

if st.sidebar.button("New chat"):
    try:
        requests.delete(f"{API_BASE_URL}/threads/{st.session_state.thread_id}/history", timeout=10)
    except requests.exceptions.RequestException:
        pass  # a fresh thread id is enough
    st.session_state.messages = []
    st.session_state.thread_id = str(uuid.uuid4())
    st.rerun()

show_details = st.sidebar.toggle("Show run details", value=True)
st.sidebar.caption(f"Thread: `{st.session_state.thread_id[:8]}`")

# ── Run details ──────────────────────────────────────────────────────────────

_STATUS_ICONS = {
    "success": ":white_check_mark:",
    "passed": ":white_check_mark:",
    "running": ":mag:",
    "retrying": ":repeat:",
    "violation": ":warning:",
    "failed": ":x:",
    "error": ":exclamation:",
}

_SOURCE_LABELS = {
    "tool_selector": "Tool Selection",
    "tool_registry": "Tool Execution",
    "response_validator": "Answer Validation",
    "followup_explorer": "Follow-up Lookup",
    "agent": "Agent",
}


def _render_tool(invocation):
    result = invocation.get("result", {})
    ok = result.get("kind") == "success"
    icon = ":package:" if ok else ":x:"
    st.markdown(f"{icon} `{invocation['tool_name']}` ({invocation.get('duration_ms', 0):.0f}ms)")
    st.json(invocation.get("args", {}), expanded=False)
    if ok:
        st.json(result.get("payload", {}), expanded=False)
    else:
        st.caption(result.get("reason", "failed"))


def _render_events(events):
    st.markdown(":shield: **Pipeline activity**")
    for event in events:
        icon = _STATUS_ICONS.get(event.get("status"), ":grey_question:")
        label = _SOURCE_LABELS.get(event.get("source"), event.get("source", "unknown"))
        st.markdown(f"{icon} **{label}**: {event.get('message', '')}")
        if event.get("details"):
            st.json(event["details"], expanded=False)


def render_details(data):
    with st.expander("Run details", expanded=False):
        cols = st.columns(3)
        cols[0].metric("Query type", data.get("query_type", "-"))
        cols[1].metric("Steps", data.get("steps", 0))
        cols[2].metric("Latency", f"{data.get('duration_ms', 0) / 1000:.1f}s")

        if data.get("corrected_domains"):
            st.caption(f"Corrected after validation: {', '.join(data['corrected_domains'])}")

        tools = data.get("tools_used") or []
        if tools:
            st.divider()
            st.markdown(":hammer_and_wrench: **Tools used**")
            for invocation in tools:
                _render_tool(invocation)

        if data.get("middleware_events"):
            st.divider()
            _render_events(data["middleware_events"])


# ── Chat history ─────────────────────────────────────────────────────────────

for msg in st.session_state.messages:
    with st.chat_message(msg["role"]):
        st.markdown(msg["content"])
        if show_details and msg.get("details"):
            render_details(msg["details"])

# ── Chat input ───────────────────────────────────────────────────────────────

if prompt := st.chat_input("Ask me anything about travel…"):
    st.session_state.messages.append({"role": "user", "content": prompt})
    with st.chat_message("user"):
        st.markdown(prompt)

    with st.chat_message("assistant"):
        details = None
        with st.spinner("Thinking…"):
            try:
                resp = requests.post(
                    f"{API_BASE_URL}/completions",
                    json={"thread_id": st.session_state.thread_id, "input": prompt},
                    timeout=90,
                )
                if resp.status_code == 500 and "error" in resp.json():
                    reply = resp.json()["error"]
                else:
                    resp.raise_for_status()
                    details = resp.json()
                    reply = details["content"]
            except requests.exceptions.ConnectionError:
                reply = "Could not reach the server. Is the API running?"
            except requests.exceptions.Timeout:
                reply = "The request timed out. Please try again."
            except requests.exceptions.HTTPError as e:
                reply = f"Server error ({e.response.status_code}). Please try again later."
            except ValueError:
                reply = "The server returned an unreadable response."

        st.markdown(reply)
        if show_details and details:
            render_details(details)

    st.session_state.messages.append({"role": "assistant", "content": reply, "details": details})

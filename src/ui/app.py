"""Streamlit dashboard for the rice market backend.

Talks to the FastAPI backend via httpx. Run with:
    streamlit run src/ui/app.py
"""

import os
from urllib.parse import quote

import httpx
import streamlit as st

from src.clients.health import SERVICE_LABELS, ServiceName
from src.normalize.charts import bar_chart, line_chart
from src.normalize.decoder import DecodedResult
from src.normalize.views import ForecastView, confidence_series, price_series
from src.query.client import MODE_SERVICES, QUERY_RESULT_ADAPTER, OrchestratedQueryResult, QueryMode, QueryView
from src.ui.charts import render_bar_chart, render_line_chart

API_URL = os.environ.get("API_URL", "http://localhost:8080")

# Stand-in monthly price history until the NL-SQL service exposes one
HISTORICAL_PRICES = [45.5, 46.2, 44.8, 47.1, 46.5, 48.0, 47.3, 49.2, 48.5, 50.1, 49.8, 51.2]

STATE_BADGES = {"online": "🟢 Online", "offline": "🔴 Offline", "checking": "🟡 Checking..."}

st.set_page_config(page_title="Rice Market AI System", layout="wide")

# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------

if "query_view" not in st.session_state:
    st.session_state.query_view = QueryView()

if "uploads" not in st.session_state:
    st.session_state.uploads = []


def _api_error(exc: Exception) -> str:
    if isinstance(exc, httpx.ConnectError):
        return "Cannot reach the API server. Is it running?"
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            detail = exc.response.json().get("detail")
        except ValueError:
            detail = None
        return str(detail) if detail else f"API error (HTTP {exc.response.status_code})"
    return f"Unexpected error: {exc}"


def _service_states() -> dict[str, str]:
    try:
        resp = httpx.get(f"{API_URL}/health", timeout=10.0)
        resp.raise_for_status()
        return {s["name"]: s["state"] for s in resp.json().get("services", [])}
    except Exception as exc:
        st.sidebar.error(f"Health check failed: {_api_error(exc)}")
        return {}


# ---------------------------------------------------------------------------
# Sidebar
# ---------------------------------------------------------------------------

with st.sidebar:
    st.title("Rice Market AI")
    page = st.radio("Page", ["Dashboard", "Natural Language Query", "Forecasting", "Document Search"])
    st.divider()
    st.subheader("Service Health")
    states = _service_states()
    for name in ServiceName:
        state = states.get(name.value, "checking")
        st.markdown(f"{SERVICE_LABELS[name]}: {STATE_BADGES.get(state, state)}")


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------


def _indexed_sources() -> list[str]:
    """Filenames already in the knowledge base, or [] when the list is unavailable."""
    try:
        resp = httpx.get(f"{API_URL}/documents", timeout=30.0)
        resp.raise_for_status()
        sources = resp.json().get("sources") or []
    except Exception as exc:
        st.warning(f"Could not load indexed documents: {_api_error(exc)}")
        return []
    return [str(source) for source in sources]


def _delete_documents(path: str) -> None:
    try:
        resp = httpx.delete(f"{API_URL}{path}", timeout=30.0)
        resp.raise_for_status()
    except Exception as exc:
        st.error(f"Delete failed: {_api_error(exc)}")
        return
    st.rerun()


def _render_rows(rows: list[dict[str, object]]) -> None:
    if not rows:
        st.write("No data returned.")
        return
    st.dataframe(rows, use_container_width=True)


def _render_decoded(decoded: DecodedResult, agents_used: list[str]) -> None:
    if "sql_agent" in agents_used and decoded.sql_query:
        st.subheader("Generated SQL")
        st.code(decoded.sql_query, language="sql")
    if decoded.sql_results_data:
        st.subheader(f"Results ({len(decoded.sql_results_data)} rows)")
        _render_rows(decoded.sql_results_data)
    if "rag_agent" in agents_used and decoded.rag_answer:
        st.subheader("RAG Answer")
        st.write(decoded.rag_answer)
        if decoded.rag_confidence:
            st.caption(f"Confidence: {decoded.rag_confidence}")
    if "forecast_agent" in agents_used and decoded.forecast_model:
        st.subheader("Forecast Results")
        st.markdown(f"**Best Model:** {decoded.forecast_model}")
        if decoded.forecast_summary:
            st.markdown(f"**Summary:** {decoded.forecast_summary}")
        if decoded.forecast_metrics:
            st.markdown(f"**Metrics:** {decoded.forecast_metrics}")
    for part in decoded.raw_parts:
        st.text(part.content)


def dashboard_page() -> None:
    st.title("Rice Market AI System")
    st.write("Welcome to the intelligent ERP system for rice market analysis")
    try:
        resp = httpx.get(f"{API_URL}/dashboard/stats", timeout=120.0)
        resp.raise_for_status()
        data = resp.json()
    except Exception as exc:
        st.error(f"Failed to load dashboard data. {_api_error(exc)}")
        return

    if data.get("stale"):
        st.warning("Failed to refresh dashboard data. Showing the last cached figures.")
    stats = data["stats"]
    st.subheader("Market Overview")
    cols = st.columns(4)
    cols[0].metric("Current Price", f"${stats['current_price']:,.2f}/kg", f"{stats['price_change']:+.1f}%")
    cols[1].metric("Total Inventory", f"{stats['total_inventory']:,}")
    cols[2].metric("Active Suppliers", f"{stats['active_suppliers']:,}")
    cols[3].metric("Recent Transactions", f"{stats['recent_transactions']:,}")
    st.caption(f"Last updated: {stats['last_updated']}")


def query_page() -> None:
    st.title("Natural Language Query")
    st.write("Ask questions about your rice market data in plain English")
    view: QueryView = st.session_state.query_view

    agent_mode = st.toggle("Multi-Agent Mode (SQL + RAG + Forecast)")
    mode = QueryMode.ORCHESTRATED if agent_mode else QueryMode.DIRECT
    service = MODE_SERVICES[mode]
    state = states.get(service.value, "checking")
    st.markdown(f"{SERVICE_LABELS[service]}: {STATE_BADGES.get(state, state)}")

    with st.form("query-form"):
        question = st.text_input(
            "Enter your question:",
            placeholder="How many customers and what is the rice price forecast?"
            if agent_mode
            else "Show all customers",
        )
        submitted = st.form_submit_button("Submit Query", disabled=state == "offline")

    if submitted:
        if not question.strip():
            view.record_error("Please enter a query")
        else:
            with st.spinner("Processing with multiple AI agents..." if agent_mode else "Processing your query..."):
                try:
                    resp = httpx.post(
                        f"{API_URL}/query",
                        json={"question": question, "mode": mode.value},
                        timeout=180.0,
                    )
                    resp.raise_for_status()
                    view.record_result(QUERY_RESULT_ADAPTER.validate_python(resp.json()))
                except Exception as exc:
                    view.record_error(_api_error(exc))

    if view.error:
        st.error(view.error)
    if view.warning:
        st.warning(view.warning)

    result = view.result
    if result is None:
        return
    if isinstance(result, OrchestratedQueryResult):
        st.header("Multi-Agent Results")
        if result.agents_used:
            st.markdown(f"**Agents Used:** {', '.join(result.agents_used)}")
        _render_decoded(result.decoded, result.agents_used)
    else:
        st.header(f"Query Results ({result.row_count} rows)")
        st.code(result.sql_query, language="sql")
        _render_rows(result.rows)


def forecasting_page() -> None:
    st.title("Rice Price Forecasting")
    st.write("AI-powered price predictions based on historical data and market trends")
    state = states.get(ServiceName.FORECAST.value, "checking")
    horizon = st.selectbox("Forecast Horizon (months)", [3, 6, 12], index=1, disabled=state == "offline")
    if state == "offline":
        return

    with st.spinner("Running forecast models..."):
        try:
            resp = httpx.post(
                f"{API_URL}/forecast",
                json={"data": HISTORICAL_PRICES, "horizon": horizon, "frequency": "M"},
                timeout=180.0,
            )
            resp.raise_for_status()
            view = ForecastView.model_validate(resp.json())
        except Exception as exc:
            st.error(_api_error(exc))
            return

    cols = st.columns(2)
    cols[0].metric("Current Price", f"${view.current_price or 0:,.2f}/kg")
    cols[1].metric("Best Model", view.best_model)

    st.subheader("Price Forecast")
    st.markdown(render_line_chart(line_chart(price_series(view))), unsafe_allow_html=True)
    st.subheader("Prediction Confidence (%)")
    st.markdown(render_bar_chart(bar_chart(confidence_series(view))), unsafe_allow_html=True)

    st.dataframe(
        [{"Month": p.month, "Price": p.price, "Confidence": f"{p.confidence:.0%}"} for p in view.predictions],
        use_container_width=True,
    )


def documents_page() -> None:
    st.title("Document Search")
    state = states.get(ServiceName.RAG.value, "checking")

    files = st.file_uploader(
        "Upload documents (PDF, TXT, MD, DOCX)",
        accept_multiple_files=True,
        disabled=state == "offline",
    )
    if files and st.button("Index uploaded files"):
        for f in files:
            try:
                resp = httpx.post(
                    f"{API_URL}/documents/upload",
                    files={"file": (f.name, f.getvalue(), f.type or "application/octet-stream")},
                    timeout=180.0,
                )
                resp.raise_for_status()
                st.session_state.uploads.append(resp.json())
            except Exception as exc:
                st.error(f"Upload failed: {_api_error(exc)}")
                st.session_state.uploads.append({"filename": f.name, "status": "failed"})

    for upload in st.session_state.uploads:
        chunks = upload.get("chunks_indexed")
        suffix = f" ({chunks} chunks)" if chunks else ""
        st.markdown(f"- {upload['filename']}: {upload['status']}{suffix}")

    if state != "offline":
        sources = _indexed_sources()
        st.subheader(f"Knowledge base ({len(sources)})")
        for i, source in enumerate(sources):
            name_col, button_col = st.columns([5, 1])
            name_col.markdown(f"- {source}")
            if button_col.button("Delete", key=f"delete-{i}"):
                _delete_documents(f"/documents/{quote(source, safe='')}")
        if sources and st.button("Clear knowledge base"):
            _delete_documents("/documents")

    with st.form("search-form"):
        search = st.text_input("Search your documents")
        submitted = st.form_submit_button("Search", disabled=state == "offline")
    if not submitted or not search.strip():
        return

    with st.spinner("Searching..."):
        try:
            resp = httpx.post(f"{API_URL}/documents/search", json={"query": search, "max_results": 5}, timeout=120.0)
            resp.raise_for_status()
            data = resp.json()
        except Exception as exc:
            st.error(_api_error(exc))
            return

    st.subheader("Answer")
    st.write(data["answer"])
    st.caption(f"Confidence: {data['confidence']:.0%}")
    for source in data["sources"]:
        score = source.get("score")
        label = f"{source['source']} (score {score:.2f})" if score is not None else source["source"]
        with st.expander(label):
            st.write(source["content"])


PAGES = {
    "Dashboard": dashboard_page,
    "Natural Language Query": query_page,
    "Forecasting": forecasting_page,
    "Document Search": documents_page,
}

PAGES[page]()

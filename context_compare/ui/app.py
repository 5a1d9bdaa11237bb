import streamlit as st
import requests

from context_compare.config import API_BASE, ALLOWED_FILE_EXTENSIONS

st.set_page_config(page_title="Context Compare", layout="wide")

st.title("Load Everything vs Select Then Cache")
st.write("Upload a few text documents, ask one question, and compare what each strategy costs.")


def _error_text(response) -> str:
    try:
        return response.json().get("error", "Unknown error")
    except ValueError:
        return f"HTTP {response.status_code}"


def render_result(column, title: str, result: dict):

    column.subheader(title)
    column.markdown(result["answer"])

    c1, c2, c3 = column.columns(3)
    c1.metric("Cost", f"${result['cost']:.4f}")
    c2.metric("Latency", f"{result['responseTime']} ms")
    c3.metric("Docs Loaded", result["docsLoaded"])

    with column.expander("Token usage"):
        column.json(result["usage"])

    if result["mode"] == "smart":
        with column.expander("Selected documents"):
            for doc in result["selectedDocs"]:
                column.write(f"#{doc['id']} {doc['filename']}")
            if result.get("selectionFallback"):
                column.warning("Selection response was not valid JSON; IDs were scraped from text")
        cache = result["cacheStats"]
        column.caption(
            f"Cache write: {cache['cacheCreationTokens']} tokens, "
            f"cache read: {cache['cacheReadTokens']} tokens"
        )


# ============================================================
# SIDEBAR: DOCUMENTS + BUDGET
# ============================================================

st.sidebar.header("Budget")

try:
    budget = requests.get(f"{API_BASE}/budget").json()
    st.sidebar.metric("Spent", f"${budget['spent']:.4f}")
    st.sidebar.metric("Remaining", f"${budget['remaining']:.4f}")
    st.sidebar.progress(min(budget["spent"] / budget["limit"], 1.0) if budget["limit"] else 1.0)
except Exception as e:
    st.sidebar.error(f"API Error: {str(e)}")

st.sidebar.header("Document Library")

documents = []

try:
    response = requests.get(f"{API_BASE}/documents")
    if response.status_code == 200:
        documents = response.json()["documents"]
        if documents:
            for doc in documents:
                st.sidebar.write(f"#{doc['id']} {doc['filename']} ({doc['size']} chars)")
        else:
            st.sidebar.info("No documents uploaded yet")
    else:
        st.sidebar.error("Cannot connect to API")
except Exception as e:
    st.sidebar.error(f"API Error: {str(e)}")

st.sidebar.divider()

if st.sidebar.button("Reset everything"):
    reset = requests.post(f"{API_BASE}/reset")
    if reset.status_code == 200:
        st.sidebar.success("System reset")
        st.rerun()
    else:
        st.sidebar.error(_error_text(reset))


# ============================================================
# UPLOAD
# ============================================================

st.header("Upload Document")

uploaded_file = st.file_uploader(
    "Choose a text or markdown file",
    type=[ext.lstrip(".") for ext in ALLOWED_FILE_EXTENSIONS],
)

if uploaded_file and st.button("Upload", type="primary"):
    with st.spinner("Uploading..."):
        try:
            files = {"file": (uploaded_file.name, uploaded_file.getvalue(), "text/plain")}
            response = requests.post(f"{API_BASE}/upload", files=files)

            if response.status_code == 200:
                doc = response.json()["document"]
                st.success(f"Stored as document #{doc['id']} ({doc['size']} characters)")
                st.rerun()
            else:
                st.error(f"Upload failed: {_error_text(response)}")
        except Exception as e:
            st.error(f"Error: {str(e)}")

st.divider()


# ============================================================
# COMPARE
# ============================================================

st.header("Ask a Question")

if not documents:
    st.info("Please upload a document first")
else:
    question = st.text_area("Enter your question", placeholder="What is the capital of France?")

    if st.button("Compare both modes", type="primary"):
        if not question.strip():
            st.warning("Question cannot be empty")
        else:
            results = {}
            for mode, path in (("load_all", "/query-all"), ("smart", "/query-smart")):
                with st.spinner(f"Running {mode}..."):
                    try:
                        response = requests.post(
                            f"{API_BASE}{path}", json={"question": question.strip()}
                        )
                        if response.status_code == 200:
                            results[mode] = response.json()
                        elif response.status_code == 429:
                            st.error(_error_text(response))
                        else:
                            st.error(f"{mode} failed: {_error_text(response)}")
                    except Exception as e:
                        st.error(f"Error: {str(e)}")

            left, right = st.columns(2)

            if "load_all" in results:
                render_result(left, "Load All", results["load_all"])
            if "smart" in results:
                render_result(right, "Smart (select + cache)", results["smart"])

            if len(results) == 2:
                all_cost = results["load_all"]["cost"]
                smart_cost = results["smart"]["cost"]
                if all_cost > 0:
                    saving = (all_cost - smart_cost) / all_cost
                    st.metric("Smart mode saving", f"{saving:.1%}", delta=f"${all_cost - smart_cost:.4f}")

st.divider()
st.caption("Budget-capped demo; every query spends real API credit")

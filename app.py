import os
import re
import json
import logging
from typing import List, Dict, Set

import pandas as pd
import streamlit as st

from quote_core import ApostrophePolicy, QuoteFamily, extract_quotations, flatten_spans
from segment import sentence_ranges

logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger("quote_review")

st.set_page_config(page_title="Quotation Spans", layout="wide")
st.title("Quotation Spans")
st.caption("Upload a .txt or paste text. Review every quoted span (nested ones included) and curate them into JSONL (append-only).")

DEFAULT_DATA_DIR = os.environ.get("DATA_DIR", "/data")
DEFAULT_JSONL_PATH = os.environ.get("JSONL_PATH", os.path.join(DEFAULT_DATA_DIR, "quotations.jsonl"))

EDITOR_COLUMNS = ["approve", "depth", "family", "start", "end", "sentence_begin", "sentence_end", "text"]

# -----------------------------
# Helpers
# -----------------------------

_WS_MULTI_RE = re.compile(r"\s+")

def normalize_key(text: str) -> str:
    t = text.replace("\u00a0", " ").lower().strip(" \t\r\n\"'“”‘’`«»")
    return _WS_MULTI_RE.sub(" ", t)

def ensure_parent_dir(path: str) -> None:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)

@st.cache_data(show_spinner=False)
def load_existing_keys(path: str) -> Set[str]:
    keys: Set[str] = set()
    if not os.path.exists(path):
        return keys
    try:
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    obj = json.loads(line)
                    if isinstance(obj, dict) and "text" in obj:
                        keys.add(normalize_key(str(obj["text"])))
                except json.JSONDecodeError:
                    logger.warning(f"Skipping malformed line in {path}")
                    continue
    except OSError as exc:
        logger.warning(f"Could not read {path}: {exc}")
        return set()
    return keys

def append_jsonl(path: str, rows: List[Dict[str, object]]) -> int:
    ensure_parent_dir(path)
    with open(path, "a", encoding="utf-8") as f:
        for r in rows:
            f.write(json.dumps(r, ensure_ascii=False) + "\n")
    return len(rows)

@st.cache_data(show_spinner=False)
def cached_parse(
    source_text: str,
    families: List[str],
    single_quotes: bool,
    apostrophe_policy: str,
    max_length: int,
) -> List[Dict[str, object]]:
    spans = extract_quotations(
        source_text,
        sentence_ranges(source_text),
        families=families,
        single_quotes=single_quotes,
        apostrophe_policy=apostrophe_policy,
        max_length=max_length,
    )
    rows: List[Dict[str, object]] = []
    for depth, span in flatten_spans(spans):
        rows.append({
            "approve": True,
            "depth": depth,
            "family": span.family.value,
            "start": span.start,
            "end": span.end,
            "sentence_begin": span.sentence_begin,
            "sentence_end": span.sentence_end,
            "text": span.text,
        })
    return rows

def as_editor_df(rows: List[Dict[str, object]]) -> pd.DataFrame:
    df = pd.DataFrame(rows) if rows else pd.DataFrame(columns=EDITOR_COLUMNS)
    return df[EDITOR_COLUMNS]

# -----------------------------
# Sidebar settings
# -----------------------------

with st.sidebar:
    st.header("Settings")

    jsonl_path = st.text_input("JSONL output path", value=DEFAULT_JSONL_PATH)

    st.subheader("Quote conventions")
    families = st.multiselect(
        "Families",
        options=[f.value for f in QuoteFamily],
        default=[f.value for f in QuoteFamily],
    )
    single_quotes = st.toggle("Treat single quotes as delimiters", value=True)
    apostrophe_policy = st.selectbox(
        "Word-final apostrophe (Jones')",
        options=[p.value for p in ApostrophePolicy],
        index=0,
        help="close: ends an open quote. possessive: an apostrophe after s stays part of the word.",
    )

    st.subheader("Filters")
    max_length = st.number_input("Max span length (-1 = no limit)", min_value=-1, max_value=100_000, value=-1)

# -----------------------------
# Dataset info
# -----------------------------

existing_keys = load_existing_keys(jsonl_path)
st.info(f"Current dataset: **{len(existing_keys)}** unique quotation(s) in `{jsonl_path}` (by normalized text).")

# -----------------------------
# Input section
# -----------------------------

col1, col2 = st.columns(2)
with col1:
    uploaded = st.file_uploader("Drop a .txt file here", type=["txt"])
with col2:
    pasted = st.text_area("…or paste an excerpt here", height=240, placeholder="Paste text with quotes here…")

source_text = ""
if uploaded is not None:
    source_text = uploaded.read().decode("utf-8", errors="replace")
elif pasted.strip():
    source_text = pasted

if "rows" not in st.session_state:
    st.session_state["rows"] = []

parse_clicked = st.button("Find quotations", type="primary", disabled=not bool(source_text.strip()))
clear_clicked = st.button("Clear results", disabled=not bool(st.session_state["rows"]))

if parse_clicked:
    st.session_state["rows"] = cached_parse(
        source_text=source_text,
        families=list(families),
        single_quotes=bool(single_quotes),
        apostrophe_policy=str(apostrophe_policy),
        max_length=int(max_length),
    )

if clear_clicked:
    st.session_state["rows"] = []
    st.rerun()

rows = st.session_state["rows"]

# -----------------------------
# Review + save
# -----------------------------

if not rows:
    st.write("Upload a file or paste text, then click **Find quotations**.")
    st.stop()

top_level = sum(1 for r in rows if r["depth"] == 0)
st.subheader(f"Review ({len(rows)} span(s), {top_level} top-level)")
st.caption("Offsets are character positions in the uploaded text. Uncheck approve to discard a span.")

df = as_editor_df(rows)

edited = st.data_editor(
    df,
    use_container_width=True,
    num_rows="fixed",
    disabled=[c for c in EDITOR_COLUMNS if c != "approve"],
    column_config={
        "approve": st.column_config.CheckboxColumn("Approve", width="small"),
        "depth": st.column_config.NumberColumn("Depth", width="small"),
        "family": st.column_config.TextColumn("Family", width="small"),
        "start": st.column_config.NumberColumn("Start", width="small"),
        "end": st.column_config.NumberColumn("End", width="small"),
        "sentence_begin": st.column_config.NumberColumn("Sent. begin", width="small"),
        "sentence_end": st.column_config.NumberColumn("Sent. end", width="small"),
        "text": st.column_config.TextColumn("Text", width="large"),
    },
)

approve_count = int(edited["approve"].sum())
st.write(f"Approved: **{approve_count}** / {len(edited)}")

approved_preview = edited[edited["approve"] == True].copy()
if not approved_preview.empty:
    st.download_button(
        "Download approved as CSV (preview)",
        data=approved_preview.drop(columns=["approve"]).to_csv(index=False).encode("utf-8"),
        file_name="approved_quotations_preview.csv",
        mime="text/csv",
    )

save_clicked = st.button("Save approved to JSONL", disabled=(approve_count == 0))
if not save_clicked:
    st.stop()

existing_keys_now = set(load_existing_keys(jsonl_path))

to_write: List[Dict[str, object]] = []
skipped_dupe = 0

for rec in approved_preview.to_dict("records"):
    text = str(rec.get("text", ""))
    key = normalize_key(text)
    if key in existing_keys_now:
        skipped_dupe += 1
        continue

    to_write.append({
        "text": text,
        "family": rec["family"],
        "start": int(rec["start"]),
        "end": int(rec["end"]),
        "depth": int(rec["depth"]),
    })
    existing_keys_now.add(key)

if to_write:
    appended = append_jsonl(jsonl_path, to_write)
    logger.info(f"Appended {appended} quotation(s) to {jsonl_path}")
    st.success(f"Saved **{appended}** new quotation(s) to `{jsonl_path}`.")
    load_existing_keys.clear()  # refresh dataset count next run
else:
    st.warning("No new quotations to save after dedupe.")

if skipped_dupe:
    st.info(f"Skipped duplicates already in dataset: **{skipped_dupe}**")

st.session_state["rows"] = []
st.rerun()

from __future__ import annotations

import dataclasses
from pathlib import Path

import streamlit as st

from amenhotep.config import CORE_TEMPLATES, OPTIONAL_TEMPLATES, ScaffoldConfig
from amenhotep.core import IndexerScaffolder
from amenhotep.errors import ExtractionError, ScaffoldError
from amenhotep.executors import ApplyExecutor, DryRunExecutor
from amenhotep.models import PlanStatus

STATUS_BADGES = {
    PlanStatus.CREATE: "🆕 CREATE",
    PlanStatus.OVERWRITE_IDENTICAL: "✅ IDENTICAL",
    PlanStatus.OVERWRITE_DIFFERENT: "⚠️ DIFFERENT",
}

EXAMPLE_SOURCE_DIR = str(Path(__file__).resolve().parent / "examples" / "contracts")


st.set_page_config(page_title="Amenhotep", layout="wide")
st.title("Amenhotep indexer scaffolding preview")

st.markdown(
    """
    <style>
    .amenhotep-help {
        color: #9ca3af;
        font-size: 0.9rem;
        margin-top: -0.25rem;
        margin-bottom: 0.5rem;
    }
    </style>
    """,
    unsafe_allow_html=True,
)
st.markdown(
    '<div class="amenhotep-help">Point at a folder of .cairo files, preview the generation plan, then write it.</div>',
    unsafe_allow_html=True,
)

if "source_dir" not in st.session_state:
    st.session_state.source_dir = EXAMPLE_SOURCE_DIR

with st.sidebar:
    output_root = st.text_input("Output root", "indexer")
    network_node_url = st.text_input("Network node URL", "<CHANGE_ME>")
    start_block = st.number_input("Start block", min_value=0, value=0, step=1)
    extra_templates = st.multiselect("Optional templates", list(OPTIONAL_TEMPLATES), default=[])
    workers = st.slider("Extraction workers", min_value=1, max_value=8, value=1)

source_dir = st.text_input("Source directory", key="source_dir")

config = dataclasses.replace(
    ScaffoldConfig(),
    output_root=Path(output_root),
    network_node_url=network_node_url,
    start_block=int(start_block),
    templates=CORE_TEMPLATES + tuple(extra_templates),
    max_workers=workers,
)
scaffolder = IndexerScaffolder(config=config)


def _show_error(exc: ScaffoldError) -> None:
    if isinstance(exc, ExtractionError):
        for error in exc.errors:
            st.error(f"ParseError {error.path}:{error.line}: {error.message}")
    else:
        st.error(f"{type(exc).__name__}: {exc}")


col_preview, col_apply = st.columns(2)
preview = col_preview.button("Preview plan", use_container_width=True)
apply = col_apply.button("Generate files", use_container_width=True)

if preview or apply:
    mode = ApplyExecutor.name if apply else DryRunExecutor.name
    try:
        schemas, plan, report = scaffolder.run(mode, source_dir)
    except ScaffoldError as exc:
        _show_error(exc)
        st.stop()

    counts = plan.status_counts()
    metric_cols = st.columns(len(counts))
    for idx, (status, count) in enumerate(counts.items()):
        metric_cols[idx].metric(status, count)

    if apply:
        if report.failures:
            for failure in report.failures:
                st.error(f"WriteError: {failure}")
        st.success(f"{len(report.written)} written, {len(report.unchanged)} unchanged under {plan.output_root}")
    elif plan.has_changes:
        st.warning("Generating would overwrite files whose content differs.")

    st.subheader("Plan")
    for entry in plan.entries:
        with st.expander(f"{STATUS_BADGES[entry.status]}  {entry.path}"):
            language = "typescript" if entry.path.endswith(".ts") else "json"
            if entry.path.endswith(".gql"):
                language = "graphql"
            st.code(entry.content.decode("utf-8"), language=language)

    st.subheader("Contracts")
    st.json(scaffolder.summarize(schemas, plan, report)["contracts"])

st.caption("Tip: run with `streamlit run app.py`. The CLI equivalent is `amenhotep dry-run <dir>`.")

import os
from dataclasses import dataclass

import requests
import streamlit as st

API_BASE = os.getenv("TEX_SERVICE_API_BASE", os.getenv("API_BASE", "http://localhost:8080")).rstrip("/")
REQUEST_TIMEOUT = float(os.getenv("TEX_SERVICE_UI_TIMEOUT", "120"))

SAMPLE_SOURCE = r"""\documentclass{article}
\begin{document}
Hello, $E = mc^2$.
\end{document}
"""


@dataclass
class RenderReply:
    ok: bool
    content: bytes = b""
    media_type: str = ""
    message: str = ""
    dpi: str | None = None


def _request_render(kind: str, source: bytes) -> RenderReply:
    """Post a LaTeX source to the API and normalize the answer for display."""
    try:
        resp = requests.post(
            f"{API_BASE}/{kind}",
            data=source,
            headers={"Content-Type": "application/x-tex"},
            timeout=REQUEST_TIMEOUT,
        )
    except requests.RequestException as e:
        return RenderReply(ok=False, message=f"Failed to connect to API: {e}")

    media_type = resp.headers.get("content-type", "").split(";")[0].strip()
    if resp.status_code != 200:
        return RenderReply(ok=False, message=f"Render error: {resp.status_code} {resp.text}")
    if resp.headers.get("x-render-status") == "failed" or media_type == "text/plain":
        return RenderReply(ok=False, message=resp.text)
    return RenderReply(
        ok=True,
        content=resp.content,
        media_type=media_type,
        dpi=resp.headers.get("x-render-dpi"),
    )


def main() -> None:
    st.set_page_config(page_title="TeX Render Service", page_icon="📐", layout="centered")
    st.title("📐 TeX Render Service")
    st.caption(f"API base: {API_BASE}")

    uploaded = st.file_uploader("Upload a LaTeX source", type=["tex"])
    initial = uploaded.getvalue().decode("utf-8", errors="replace") if uploaded else SAMPLE_SOURCE
    source = st.text_area("Source", value=initial, height=260)
    kind = st.radio("Output", ["png", "svg", "pdf"], horizontal=True)

    if not st.button("Render", type="primary"):
        return

    with st.spinner(f"Rendering {kind.upper()}..."):
        reply = _request_render(kind, source.encode("utf-8"))

    if not reply.ok:
        st.error("Render failed")
        st.code(reply.message, language="text")
        return

    st.success("Render complete" + (f" ({reply.dpi} DPI)" if reply.dpi else ""))
    if kind == "png":
        st.image(reply.content)
    st.download_button(
        label=f"Download {kind.upper()}",
        data=reply.content,
        file_name=f"document.{kind}",
        mime=reply.media_type,
    )


if __name__ == "__main__":
    main()

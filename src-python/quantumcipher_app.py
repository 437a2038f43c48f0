# quantumcipher_app.py
# QuantumCipher Matrix: Gradio UI
#
# Renders each transformed character as a colored block. Typing re-runs the
# transform after a quiet period (latest keystroke wins). Decrypt returns
# the stored originals. Sessions can be exported/imported as JSON.

from __future__ import annotations

import html
import tempfile
import time
from pathlib import Path
from typing import List, Optional

import gradio as gr
from loguru import logger

import quantumcipher as qc
import quantumcipher_config as qcfg


CSS = """
<style>
#title { margin-bottom: 0.25rem; }
.small { opacity: 0.90; font-size: 0.92rem; }
.cipher-grid { display: flex; flex-wrap: wrap; gap: 6px; padding: 8px; background: #000; min-height: 3rem; }
.cipher-block {
  width: 2.2rem; height: 2.2rem; display: flex; align-items: center; justify-content: center;
  border: 2px solid; border-radius: 4px; font-family: monospace; font-weight: bold; font-size: 1.1rem;
}
.space-block { opacity: 0.6; }
.grid-note { text-align: center; width: 100%; font-family: monospace; }
</style>
"""

ABOUT_MD = r"""
## About QuantumCipher Matrix

Each letter is shifted by an amount derived from a sine-wave **quantum state**
of its character code and position:

- `amplitude = (sin(code * index * phi / 100) + 1) / 2`
- `phase = (index * code) mod 360`
- `shift = floor(amplitude * 26) + phase mod 26`

Latin letters rotate within `A-Z`, Cyrillic within `А-Я`, spaces stay spaces.
Everything else is dropped before the transform.

**This is not encryption.** No key enters the transform, and **Decrypt** simply
returns the original characters kept in the session. The session key shown in
exports is an opaque identifier only.

**Complexity** mixes rarity, position, amplitude and the number of linked blocks
(blocks at a distance that is a multiple of 7), capped at 100%.
"""

SPACE_GLYPH = "□"


# ============================================================
# Per-browser session
# ============================================================

class LiveSession:
    """Cipher session + debounced live transform + last status line."""

    def __init__(self, settings: qcfg.CipherSettings):
        self.session = qc.CipherSession(
            space_color=settings.space_color,
            snapshot_version=settings.snapshot_version,
        )
        self.debouncer = qc.Debouncer(self.session.transform, delay=settings.debounce_seconds)
        self.space_color = settings.space_color
        self.last_message = "QUANTUM CIPHER SYSTEM INITIALIZED - READY FOR OPERATIONS"
        self.session.subscribe(self._on_event)

    def _on_event(self, event: qc.SessionEvent) -> None:
        self.last_message = event_message(event)


def event_message(event: qc.SessionEvent) -> str:
    if event.kind == qc.EVENT_SEQUENCE_UPDATED:
        return f"QUANTUM ENCRYPTION COMPLETE - {len(event.records)} BLOCKS"
    if event.kind == qc.EVENT_SESSION_RESET:
        return "ALL QUANTUM DATA WIPED FROM MEMORY"
    if event.kind == qc.EVENT_SNAPSHOT_IMPORTED:
        return "QUANTUM JSON DATA IMPORTED SUCCESSFULLY"
    return f"ERROR: {str(event.error).rstrip('.').upper()}"


# ============================================================
# Rendering
# ============================================================

def render_grid(records: List[qc.CharacterRecord], note: Optional[str] = None) -> str:
    if not records:
        note = note or "◦ QUANTUM_ENCRYPTION_FAILED ◦"
        return f'<div class="cipher-grid"><div class="grid-note" style="color:#ff0040;">{html.escape(note)}</div></div>'

    blocks = []
    for r in records:
        style = f"color:{r.color};border-color:{r.color};"
        if r.state.amplitude > 0.7:
            style += f"box-shadow:0 0 15px {r.color};"

        if r.is_space:
            title, text, cls = "QUANTUM_SPACE_NODE", SPACE_GLYPH, "cipher-block space-block"
        else:
            title = (
                f"ORIGINAL: {r.original_char} | ENCRYPTED: {r.transformed_char} | "
                f"QUANTUM_STATE: {r.state.spin} | COMPLEXITY: {round(r.complexity_score)}%"
            )
            text, cls = r.transformed_char, "cipher-block"

        blocks.append(
            f'<div class="{cls}" style="{html.escape(style)}" title="{html.escape(title)}">{html.escape(text)}</div>'
        )
    return f'<div class="cipher-grid">{"".join(blocks)}</div>'


def render_wiped() -> str:
    return '<div class="cipher-grid"><div class="grid-note" style="color:#888;">◦ QUANTUM_MEMORY_WIPED ◦</div></div>'


def render_alphabet(space_color: str) -> str:
    blocks = []
    for ch, color in qc.alphabet_preview(space_color):
        blocks.append(
            f'<div class="cipher-block" style="color:{color};border-color:{color};" '
            f'title="{html.escape(ch)} | QUANTUM_PATTERN">{html.escape(ch)}</div>'
        )
    return f'<div class="cipher-grid">{"".join(blocks)}</div>'


def render_stats(stats: qc.CipherStats, elapsed_ms: int = 0) -> str:
    return (
        f"**Chars:** {stats.char_count} &nbsp; **Blocks:** {stats.block_count} &nbsp; "
        f"**Spaces:** {stats.space_count} &nbsp; **Time:** {elapsed_ms}ms &nbsp; "
        f"**Complexity:** {round(stats.average_complexity)}% &nbsp; **Security:** {stats.security_level}"
    )


EMPTY_STATS = render_stats(qc.compute_stats("", []))


# ============================================================
# Handlers
# ============================================================

def _not_ready():
    return "ERROR: SESSION NOT READY - RELOAD THE PAGE"


def do_transform(text_in: str, live: Optional[LiveSession]):
    if live is None:
        return gr.update(), gr.update(), _not_ready()
    start = time.perf_counter()
    try:
        records = live.session.transform(text_in)
    except qc.QuantumCipherError:
        return render_grid([]), EMPTY_STATS, live.last_message

    elapsed = round((time.perf_counter() - start) * 1000)
    stats = render_stats(qc.compute_stats(text_in, records), elapsed)
    return render_grid(records), stats, f"{live.last_message} | {elapsed}ms"


def do_live_transform(text_in: str, live: Optional[LiveSession]):
    if live is None:
        return gr.update(), gr.update(), gr.update()

    call = live.debouncer.submit(text_in)
    call.wait(live.debouncer.delay + 5)
    if not call.executed:
        # A newer keystroke took over; leave the page to that request
        return gr.update(), gr.update(), gr.update()
    if call.error is not None:
        return render_grid([]), EMPTY_STATS, live.last_message

    stats = render_stats(qc.compute_stats(text_in, call.result))
    return render_grid(call.result), stats, live.last_message


def do_reverse(live: Optional[LiveSession]):
    if live is None:
        return gr.update(), _not_ready()
    try:
        out = live.session.reverse()
    except qc.QuantumCipherError:
        return gr.update(), live.last_message
    return out, "QUANTUM DECRYPTION SUCCESSFUL - ORIGINAL DATA RESTORED"


def do_clear(live: Optional[LiveSession]):
    if live is None:
        return gr.update(), gr.update(), gr.update(), gr.update(), _not_ready()
    live.debouncer.cancel()
    live.session.reset()
    return "", "", render_wiped(), EMPTY_STATS, live.last_message


def do_export(live: Optional[LiveSession]):
    if live is None:
        return None, _not_ready()
    out_dir = Path(tempfile.mkdtemp(prefix="quantum-cipher-"))
    path = out_dir / f"quantum-cipher-{int(time.time() * 1000)}.json"
    try:
        qc.save_snapshot(live.session, path)
    except qc.QuantumCipherError:
        return None, live.last_message
    except OSError as e:
        logger.error(f"Snapshot export failed: {e}")
        return None, "ERROR: QUANTUM EXPORT FAILED"
    return str(path), "QUANTUM JSON DATA EXPORTED"


def do_import(file_obj, live: Optional[LiveSession]):
    if live is None:
        return gr.update(), gr.update(), gr.update(), _not_ready()
    if file_obj is None:
        return gr.update(), gr.update(), gr.update(), "ERROR: NO FILE SELECTED"

    # Older Gradio hands over a tempfile wrapper, newer a plain path
    path = getattr(file_obj, "name", file_obj)
    try:
        records = qc.load_snapshot(live.session, path)
    except qc.QuantumCipherError:
        return gr.update(), gr.update(), gr.update(), live.last_message
    except OSError as e:
        logger.error(f"Snapshot import failed: {e}")
        return gr.update(), gr.update(), gr.update(), "ERROR: INVALID QUANTUM JSON FILE"

    text = "".join(r.original_char for r in records)
    stats = render_stats(qc.compute_stats(text, records))
    return text, render_grid(records, note="◦ EMPTY QUANTUM SNAPSHOT ◦"), stats, live.last_message


# ============================================================
# Layout
# ============================================================

def build_app(settings: Optional[qcfg.CipherSettings] = None):
    settings = settings or qcfg.CipherSettings()

    with gr.Blocks(title="QuantumCipher Matrix") as demo:
        gr.HTML(CSS)

        gr.Markdown("# ◦ QuantumCipher Matrix ◦", elem_id="title")
        gr.Markdown(
            "Type text to see each character shifted by its **quantum state** and drawn as a colored block. "
            "Only `A-Z`, `А-Я` and spaces are kept.",
            elem_classes=["small"],
        )

        live = gr.State(None)

        with gr.Tabs():
            with gr.TabItem("Matrix"):
                text_in = gr.Textbox(label="Input", lines=3, value=settings.sample_text)

                with gr.Row():
                    btn_enc = gr.Button("Encrypt")
                    btn_dec = gr.Button("Decrypt")
                    btn_clear = gr.Button("Clear")

                grid = gr.HTML(render_grid([], note="◦ AWAITING INPUT ◦"))
                stats = gr.Markdown(EMPTY_STATS, elem_classes=["small"])
                text_out = gr.Textbox(label="Decrypted output", lines=3)
                status = gr.Markdown("QUANTUM CIPHER SYSTEM INITIALIZED - READY FOR OPERATIONS")

                with gr.Row():
                    btn_export = gr.Button("Export JSON")
                    export_file = gr.File(label="Download", interactive=False)
                    import_file = gr.File(label="Import JSON", file_types=[".json"])

                text_in.input(
                    do_live_transform,
                    inputs=[text_in, live],
                    outputs=[grid, stats, status],
                    trigger_mode="multiple",
                    concurrency_limit=None,
                    show_progress="hidden",
                )
                btn_enc.click(do_transform, inputs=[text_in, live], outputs=[grid, stats, status])
                btn_dec.click(do_reverse, inputs=[live], outputs=[text_out, status])
                btn_clear.click(do_clear, inputs=[live], outputs=[text_in, text_out, grid, stats, status])
                btn_export.click(do_export, inputs=[live], outputs=[export_file, status])
                import_file.upload(do_import, inputs=[import_file, live], outputs=[text_in, grid, stats, status])

            with gr.TabItem("Alphabet"):
                gr.HTML(render_alphabet(settings.space_color))

            with gr.TabItem("About"):
                gr.Markdown(ABOUT_MD)

        demo.load(lambda: LiveSession(settings), outputs=[live]).then(
            do_transform, inputs=[text_in, live], outputs=[grid, stats, status]
        )

    return demo


if __name__ == "__main__":
    settings = qcfg.load_settings()
    qcfg.setup_logging(settings.log_level, log_file=settings.log_file)
    app = build_app(settings)
    app.launch(server_name=settings.server_name, server_port=settings.server_port)

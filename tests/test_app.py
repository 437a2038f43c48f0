# tests/test_app.py
import json

import pytest

pytest.importorskip("gradio", reason="gradio not installed")

import quantumcipher as qc  # noqa: E402
import quantumcipher_app as app  # noqa: E402
import quantumcipher_config as qcfg  # noqa: E402


@pytest.fixture
def live():
    return app.LiveSession(qcfg.CipherSettings(debounce_ms=10))


def test_render_grid_blocks():
    html_out = app.render_grid(qc.transform_text("A B"))
    assert html_out.count('class="cipher-block') == 3
    assert app.SPACE_GLYPH in html_out
    assert "QUANTUM_SPACE_NODE" in html_out
    assert "ORIGINAL: A | ENCRYPTED: N" in html_out


def test_render_grid_empty_note():
    assert "AWAITING" in app.render_grid([], note="◦ AWAITING INPUT ◦")
    assert "QUANTUM_ENCRYPTION_FAILED" in app.render_grid([])


def test_render_alphabet():
    html_out = app.render_alphabet(qc.SPACE_COLOR)
    assert html_out.count("QUANTUM_PATTERN") == len(qc.PREVIEW_ALPHABET)


def test_transform_and_reverse(live):
    grid, stats, status = app.do_transform("hello world", live)
    assert "cipher-block" in grid
    assert "**Blocks:** 11" in stats
    assert status.startswith("QUANTUM ENCRYPTION COMPLETE - 11 BLOCKS")

    out, status = app.do_reverse(live)
    assert out == "HELLO WORLD"
    assert "DECRYPTION SUCCESSFUL" in status


def test_transform_empty_reports_error(live):
    app.do_transform("HELLO", live)
    grid, stats, status = app.do_transform("123", live)
    assert status == "ERROR: NO DATA PROVIDED FOR QUANTUM ENCRYPTION"
    assert "QUANTUM_ENCRYPTION_FAILED" in grid
    assert "cipher-block" not in grid
    assert stats == app.EMPTY_STATS


def test_live_transform_empty_clears_grid(live):
    app.do_live_transform("HELLO", live)
    grid, stats, status = app.do_live_transform("!!!", live)
    assert status == "ERROR: NO DATA PROVIDED FOR QUANTUM ENCRYPTION"
    assert "QUANTUM_ENCRYPTION_FAILED" in grid
    assert "cipher-block" not in grid
    assert stats == app.EMPTY_STATS
    # Held sequence is untouched; only the page stops showing it
    assert live.session.reverse() == "HELLO"


def test_reverse_without_data(live):
    _, status = app.do_reverse(live)
    assert status == "ERROR: NO QUANTUM CIPHER DATA AVAILABLE"


def test_live_transform_runs_latest(live):
    grid, stats, status = app.do_live_transform("QUANTUM", live)
    assert "cipher-block" in grid
    assert live.session.reverse() == "QUANTUM"


def test_clear_keeps_identifier(live):
    ident = live.session.identifier
    app.do_transform("DATA", live)
    text_in, text_out, grid, stats, status = app.do_clear(live)
    assert (text_in, text_out) == ("", "")
    assert "QUANTUM_MEMORY_WIPED" in grid
    assert status == "ALL QUANTUM DATA WIPED FROM MEMORY"
    assert live.session.identifier == ident
    assert not live.session.has_data


def test_export_then_import(live):
    app.do_transform("Export Me", live)
    path, status = app.do_export(live)
    assert status == "QUANTUM JSON DATA EXPORTED"
    with open(path, encoding="utf-8") as f:
        assert json.load(f)["identifier"] == live.session.identifier

    other = app.LiveSession(qcfg.CipherSettings())
    text, grid, stats, status = app.do_import(path, other)
    assert text == "EXPORT ME"
    assert status == "QUANTUM JSON DATA IMPORTED SUCCESSFULLY"
    assert other.session.identifier == live.session.identifier


def test_export_without_data(live):
    path, status = app.do_export(live)
    assert path is None
    assert status == "ERROR: NO QUANTUM DATA TO EXPORT"


def test_import_invalid_file(tmp_path, live):
    bad = tmp_path / "bad.json"
    bad.write_text('{"sequence": []}', encoding="utf-8")
    *_, status = app.do_import(str(bad), live)
    assert status.startswith("ERROR: INVALID SNAPSHOT")


def test_build_app():
    demo = app.build_app(qcfg.CipherSettings())
    assert demo is not None

# tests/test_transform.py
import math

import pytest

import quantumcipher as qc


def test_clean_text_uppercases_and_filters():
    assert qc.clean_text("a1! b") == "A B"
    assert qc.clean_text("привет, мир") == "ПРИВЕТ МИР"


def test_clean_text_drops_yo():
    # Ё sits outside the А-Я block
    assert qc.clean_text("ёж") == "Ж"


def test_filtering_example_gives_three_records():
    records = qc.transform_text("a1! b")
    assert [r.original_char for r in records] == ["A", " ", "B"]
    assert [r.index for r in records] == [0, 1, 2]


@pytest.mark.parametrize("text", ["", "123", "   ", "!?.,"])
def test_empty_or_fully_filtered_input_raises(text):
    with pytest.raises(qc.EmptyInputError):
        qc.transform_text(text)


def test_reference_vector_ab():
    a, b = qc.transform_text("AB")

    assert a.state.amplitude == 0.5
    assert a.state.phase_degrees == 0
    assert a.state.parity_flag is True
    assert qc.shift_amount(a.state) == 13
    assert a.transformed_char == "N"

    assert b.state.amplitude == pytest.approx((math.sin(66 * qc.PHI / 100) + 1) / 2)
    assert b.state.amplitude == pytest.approx(0.938, abs=1e-3)
    assert b.state.phase_degrees == 66
    assert b.state.parity_flag is False
    assert qc.shift_amount(b.state) == 38
    assert b.transformed_char == "N"


def test_cyrillic_shift_at_index_zero():
    state = qc.quantum_state("А", 0)
    assert qc.shift_char("А", state) == "Н"


def test_cyrillic_wraps_onto_lowercase_a():
    # 33-slot modulus over a 32-letter block
    state = qc.quantum_state("У", 0)
    assert qc.shift_char("У", state) == "а"


def test_space_records_are_identity():
    records = qc.transform_text("HELLO QUANTUM WORLD")
    spaces = [r for r in records if r.is_space]
    assert len(spaces) == 2
    for r in spaces:
        assert r.transformed_char == " "
        assert r.color == qc.SPACE_COLOR


def test_space_color_is_configurable():
    records = qc.transform_text("A B", space_color="#123456")
    assert records[1].color == "#123456"


def test_determinism_across_calls():
    text = "The quick brown fox Съешь же ещё этих мягких булок"
    first = qc.transform_text(text)
    second = qc.transform_text(text)
    assert first == second


def test_linked_indices_are_symmetric_and_exclude_self():
    records = qc.transform_text("ABCDEFGHIJKLMNOPQRSTUVWXYZ ABCDEFGHIJ")
    for r in records:
        assert r.index not in r.linked_indices
        for j in r.linked_indices:
            assert abs(j - r.index) % 7 == 0
            assert r.index in records[j].linked_indices


def test_linked_indices_values():
    assert qc.linked_indices(0, 15) == (7, 14)
    assert qc.linked_indices(7, 15) == (0, 14)
    assert qc.linked_indices(3, 5) == ()


def test_frequency_and_relative_position():
    records = qc.transform_text("ABBA")
    assert [r.frequency for r in records] == [2, 2, 2, 2]
    assert [r.relative_position for r in records] == [0.0, 0.25, 0.5, 0.75]


def test_frequencies_sum_to_length():
    records = qc.transform_text("MISSISSIPPI RIVER")
    per_char = {r.original_char: r.frequency for r in records}
    assert sum(per_char.values()) == len(records)


def test_complexity_score_bounds():
    records = qc.transform_text("ABCDEFGHIJKLMNOPQRSTUVWXYZ " * 4)
    assert all(0 <= r.complexity_score <= 100 for r in records)
    # Many links push the score to the cap
    assert any(r.complexity_score == 100 for r in records)


def test_complexity_score_for_reference_vector():
    a, b = qc.transform_text("AB")
    assert a.complexity_score == pytest.approx(10 + 0 + 15)
    assert b.complexity_score == pytest.approx(10 + 10 + b.state.amplitude * 30)


def test_state_color_formatting():
    state = qc.quantum_state("A", 0)
    assert qc.state_color("A", state) == "hsl(180, 90%, 65%)"


@pytest.mark.parametrize("value,expected", [
    (180.0, "180"),
    (0.5, "0.5"),
    (5e-05, "0.00005"),
    (1.5e-06, "0.0000015"),
    (5e-07, "5e-7"),
    (123.456, "123.456"),
])
def test_css_number_matches_js_number_formatting(value, expected):
    assert qc._css_number(value) == expected


def test_alphabet_preview_covers_alphabet():
    preview = qc.alphabet_preview()
    assert [ch for ch, _ in preview] == list(qc.PREVIEW_ALPHABET)
    assert all(color.startswith("hsl(") for _, color in preview)


@pytest.mark.parametrize("count,label", [
    (0, "MINIMAL"),
    (5, "MINIMAL"),
    (6, "LOW"),
    (11, "MEDIUM"),
    (21, "HIGH"),
    (31, "ULTRA"),
    (51, "QUANTUM"),
    (101, "CLASSIFIED"),
])
def test_security_level_tiers(count, label):
    assert qc.security_level(count) == label


def test_compute_stats():
    text = "hello world 42"
    records = qc.transform_text(text)
    stats = qc.compute_stats(text, records)
    assert stats.char_count == 14
    assert stats.block_count == 12
    assert stats.space_count == 2
    assert stats.security_level == "MEDIUM"
    assert stats.average_complexity == pytest.approx(
        sum(r.complexity_score for r in records) / len(records)
    )


def test_compute_stats_empty():
    stats = qc.compute_stats("", [])
    assert stats.block_count == 0
    assert stats.average_complexity == 0.0

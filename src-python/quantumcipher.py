# quantumcipher.py
# QuantumCipher Matrix: Base Library
# Deterministic "quantum state" character shifting + session state
#
# Pipeline:
#   raw text -> uppercase -> filter [A-Z, А-Я, space] -> per-char records
#
# Each record carries:
#   original/transformed char, quantum state (amplitude, phase, parity),
#   linked indices (distance multiple of 7), frequency, relative position,
#   complexity score and an HSL display color.
#
# The shift is keyless. The session key is an opaque identifier used only
# for export metadata. Reversal returns the stored originals; there is no
# inverse-shift path.

from __future__ import annotations

import json
import math
import re
import secrets
import threading
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from functools import partial
from pathlib import Path
from typing import Annotated, Any, Callable, Dict, List, Optional, Tuple, Union

from loguru import logger
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator


# ============================================================
# Constants
# ============================================================

PHI = (1 + math.sqrt(5)) / 2

LATIN_BASE = ord("A")
LATIN_SIZE = 26
CYRILLIC_BASE = ord("А")
CYRILLIC_SIZE = 33

LINK_DISTANCE = 7
MAX_COMPLEXITY = 100.0

SPACE_COLOR = "#00ff41"
SNAPSHOT_VERSION = "4.2"
IDENTIFIER_BYTES = 32
DEFAULT_DEBOUNCE_SECONDS = 0.3

PREVIEW_ALPHABET = (
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "АБВГДЕЁЖЗИЙКЛМНОПРСТУФХЦЧШЩЪЫЬЭЮЯ"
    "0123456789"
)

SECURITY_LEVELS = (
    (100, "CLASSIFIED"),
    (50, "QUANTUM"),
    (30, "ULTRA"),
    (20, "HIGH"),
    (10, "MEDIUM"),
    (5, "LOW"),
)

_FILTER_RE = re.compile(r"[^A-ZА-Я ]")


# ============================================================
# Errors
# ============================================================

class QuantumCipherError(ValueError):
    """Base class for recoverable cipher/session errors."""


class EmptyInputError(QuantumCipherError):
    """Input is blank or nothing survives filtering."""


class NoDataError(QuantumCipherError):
    """Reverse/export requested while the session holds no sequence."""


class InvalidSnapshotError(QuantumCipherError):
    """Snapshot payload is malformed."""


# ============================================================
# Records
# ============================================================

@dataclass(frozen=True)
class QuantumState:
    amplitude: float
    phase_degrees: int
    parity_flag: bool

    @property
    def spin(self) -> str:
        return "up" if self.amplitude > 0.5 else "down"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amplitude": self.amplitude,
            "phaseDegrees": self.phase_degrees,
            "parityFlag": self.parity_flag,
        }


@dataclass(frozen=True)
class CharacterRecord:
    original_char: str
    index: int
    is_space: bool
    state: QuantumState
    linked_indices: Tuple[int, ...]
    frequency: int
    relative_position: float
    transformed_char: str
    complexity_score: float
    color: str

    def to_dict(self) -> Dict[str, Any]:
        """Wire form used by snapshots (camelCase keys)."""
        return {
            "originalChar": self.original_char,
            "index": self.index,
            "isSpace": self.is_space,
            "state": self.state.to_dict(),
            "linkedIndices": list(self.linked_indices),
            "frequency": self.frequency,
            "relativePosition": self.relative_position,
            "transformedChar": self.transformed_char,
            "complexityScore": self.complexity_score,
            "color": self.color,
        }


@dataclass(frozen=True)
class CipherStats:
    char_count: int
    block_count: int
    space_count: int
    average_complexity: float
    security_level: str


# ============================================================
# Transform engine (pure)
# ============================================================

def clean_text(text: str) -> str:
    """Uppercases and keeps only A-Z, А-Я and space."""
    return _FILTER_RE.sub("", text.upper())


def quantum_state(ch: str, index: int) -> QuantumState:
    code = ord(ch)
    wave = math.sin((code * index * PHI) / 100)
    return QuantumState(
        amplitude=(wave + 1) / 2,
        phase_degrees=(index * code) % 360,
        parity_flag=(index % 2 == 0),
    )


def linked_indices(index: int, total: int) -> Tuple[int, ...]:
    # Same residue mod 7 <=> distance is a multiple of 7
    return tuple(j for j in range(index % LINK_DISTANCE, total, LINK_DISTANCE) if j != index)


def is_latin_upper(ch: str) -> bool:
    return "A" <= ch <= "Z"


def is_cyrillic_upper(ch: str) -> bool:
    return "А" <= ch <= "Я"


def shift_amount(state: QuantumState) -> int:
    return math.floor(state.amplitude * 26) + state.phase_degrees % 26


def shift_char(ch: str, state: QuantumState) -> str:
    if ch == " ":
        return ch

    code = ord(ch) + shift_amount(state)
    if is_latin_upper(ch):
        code = ((code - LATIN_BASE) % LATIN_SIZE) + LATIN_BASE
    elif is_cyrillic_upper(ch):
        # 33 slots over a 32-letter block: the last slot lands on 'а'
        code = ((code - CYRILLIC_BASE) % CYRILLIC_SIZE) + CYRILLIC_BASE
    return chr(code)


def _css_number(x: float) -> str:
    # Number#toString: positional for 1e-6 <= |x| < 1e21, else e-notation
    x = float(x)
    if x.is_integer() and abs(x) < 1e21:
        return str(int(x))
    if 1e-6 <= abs(x) < 1e21:
        return format(Decimal(repr(x)), "f")
    mantissa, exp = repr(x).split("e")
    return f"{mantissa}e{int(exp):+d}"


def state_color(ch: str, state: QuantumState, space_color: str = SPACE_COLOR) -> str:
    if ch == " ":
        return space_color

    hue = (state.phase_degrees + state.amplitude * 360) % 360
    saturation = 80 + state.amplitude * 20
    lightness = 50 + state.amplitude * 30
    return f"hsl({_css_number(hue)}, {_css_number(saturation)}%, {_css_number(lightness)}%)"


def complexity_score(frequency: int, relative_position: float, amplitude: float, linked_count: int) -> float:
    score = (1 / frequency) * 10
    score += relative_position * 20
    score += amplitude * 30
    score += linked_count * 15
    return min(score, MAX_COMPLEXITY)


def transform_text(text: str, space_color: str = SPACE_COLOR) -> List[CharacterRecord]:
    """
    Maps raw text to one CharacterRecord per filtered character.
    Raises EmptyInputError when nothing survives filtering.
    """
    clean = clean_text(text)
    if not text.strip() or not clean:
        raise EmptyInputError("No data provided for quantum encryption.")

    total = len(clean)
    counts = Counter(clean)

    out: List[CharacterRecord] = []
    for i, ch in enumerate(clean):
        state = quantum_state(ch, i)
        links = linked_indices(i, total)
        position = i / total
        out.append(CharacterRecord(
            original_char=ch,
            index=i,
            is_space=(ch == " "),
            state=state,
            linked_indices=links,
            frequency=counts[ch],
            relative_position=position,
            transformed_char=shift_char(ch, state),
            complexity_score=complexity_score(counts[ch], position, state.amplitude, len(links)),
            color=state_color(ch, state, space_color),
        ))
    return out


def alphabet_preview(space_color: str = SPACE_COLOR) -> List[Tuple[str, str]]:
    """(char, color) legend for the preview alphabet, evaluated at index 0."""
    return [(ch, state_color(ch, quantum_state(ch, 0), space_color)) for ch in PREVIEW_ALPHABET]


def security_level(char_count: int) -> str:
    for threshold, label in SECURITY_LEVELS:
        if char_count > threshold:
            return label
    return "MINIMAL"


def compute_stats(text: str, records: List[CharacterRecord]) -> CipherStats:
    text = text.upper()
    scores = [r.complexity_score for r in records]
    return CipherStats(
        char_count=len(text),
        block_count=len(records),
        space_count=text.count(" "),
        average_complexity=(sum(scores) / len(scores)) if scores else 0.0,
        security_level=security_level(len(text)),
    )


# ============================================================
# Identifier (the only randomness in the system)
# ============================================================

def generate_identifier(random_bytes: Callable[[int], bytes] = secrets.token_bytes) -> str:
    # Unpadded hex per byte, so the length varies between 32 and 64 chars
    return "".join(format(b, "x") for b in random_bytes(IDENTIFIER_BYTES))


# ============================================================
# Snapshot wire models
# ============================================================

class _StateModel(BaseModel):
    amplitude: float = Field(ge=0, le=1)
    phaseDegrees: int = Field(ge=0, lt=360)
    parityFlag: bool


class _RecordModel(BaseModel):
    originalChar: str = Field(min_length=1, max_length=1)
    index: int = Field(ge=0)
    isSpace: bool
    state: _StateModel
    linkedIndices: List[int] = Field(default_factory=list)
    frequency: int = Field(ge=1)
    relativePosition: float = Field(ge=0, lt=1)
    transformedChar: str = Field(min_length=1, max_length=1)
    complexityScore: float = Field(ge=0, le=MAX_COMPLEXITY)
    color: Optional[str] = None

    @field_validator("originalChar")
    @classmethod
    def _known_alphabet(cls, v: str) -> str:
        if v != " " and not (is_latin_upper(v) or is_cyrillic_upper(v)):
            raise ValueError(f"originalChar {v!r} is outside A-Z, А-Я and space")
        return v

    @model_validator(mode="after")
    def _space_flag_matches(self) -> "_RecordModel":
        if self.isSpace != (self.originalChar == " "):
            raise ValueError("isSpace does not match originalChar")
        return self


class _SnapshotModel(BaseModel):
    version: str
    timestamp: Optional[str] = None
    identifier: Optional[str] = None
    sequence: List[_RecordModel]
    complexityMatrix: Optional[List[Annotated[float, Field(ge=0, le=MAX_COMPLEXITY)]]] = None


def _record_from_model(m: _RecordModel, space_color: str) -> CharacterRecord:
    state = QuantumState(
        amplitude=m.state.amplitude,
        phase_degrees=m.state.phaseDegrees,
        parity_flag=m.state.parityFlag,
    )
    return CharacterRecord(
        original_char=m.originalChar,
        index=m.index,
        is_space=m.isSpace,
        state=state,
        linked_indices=tuple(m.linkedIndices),
        frequency=m.frequency,
        relative_position=m.relativePosition,
        transformed_char=m.transformedChar,
        complexity_score=m.complexityScore,
        color=m.color or state_color(m.originalChar, state, space_color),
    )


def _parse_snapshot(data: Union[str, bytes, Dict[str, Any]], space_color: str) -> Tuple[Optional[str], List[CharacterRecord], List[float]]:
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except ValueError as e:
            raise InvalidSnapshotError(f"Snapshot is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise InvalidSnapshotError("Snapshot must be a JSON object.")

    try:
        snap = _SnapshotModel.model_validate(data)
    except ValidationError as e:
        raise InvalidSnapshotError(f"Invalid snapshot: {e.error_count()} validation error(s).") from e

    records = [_record_from_model(m, space_color) for m in snap.sequence]
    for pos, r in enumerate(records):
        if r.index != pos:
            raise InvalidSnapshotError(f"Record at position {pos} has index {r.index}.")
        if any(j < 0 or j >= len(records) or j == pos for j in r.linked_indices):
            raise InvalidSnapshotError(f"Record at position {pos} links outside the sequence.")

    if snap.complexityMatrix is None:
        matrix = [r.complexity_score for r in records]
    else:
        if len(snap.complexityMatrix) != len(records):
            raise InvalidSnapshotError("complexityMatrix length does not match sequence.")
        matrix = list(snap.complexityMatrix)

    return snap.identifier, records, matrix


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ============================================================
# Session state
# ============================================================

EVENT_SEQUENCE_UPDATED = "sequence_updated"
EVENT_SESSION_RESET = "session_reset"
EVENT_SNAPSHOT_IMPORTED = "snapshot_imported"
EVENT_ERROR = "error"


@dataclass(frozen=True)
class SessionEvent:
    kind: str
    records: Tuple[CharacterRecord, ...] = ()
    error: Optional[QuantumCipherError] = None


Listener = Callable[[SessionEvent], None]


class CipherSession:
    """
    Holds the latest transform result and the session identifier.

    All mutation goes through transform / reset / import_snapshot under a
    single lock. Failed operations leave the held state untouched and emit
    an "error" event.
    """

    def __init__(
        self,
        random_bytes: Callable[[int], bytes] = secrets.token_bytes,
        space_color: str = SPACE_COLOR,
        snapshot_version: str = SNAPSHOT_VERSION,
    ):
        self._lock = threading.RLock()
        self._random_bytes = random_bytes
        self.space_color = space_color
        self.snapshot_version = snapshot_version

        self._identifier = generate_identifier(random_bytes)
        self._records: List[CharacterRecord] = []
        self._complexity_matrix: List[float] = []
        self._listeners: List[Listener] = []

        logger.info("Quantum cipher session initialized.")

    # -- read-only views --

    @property
    def identifier(self) -> str:
        return self._identifier

    @property
    def records(self) -> Tuple[CharacterRecord, ...]:
        with self._lock:
            return tuple(self._records)

    @property
    def complexity_matrix(self) -> Tuple[float, ...]:
        with self._lock:
            return tuple(self._complexity_matrix)

    @property
    def has_data(self) -> bool:
        with self._lock:
            return bool(self._records)

    # -- events --

    def subscribe(self, listener: Listener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _emit(self, event: SessionEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Session listener failed on {event.kind!r} event.")

    def _fail(self, err: QuantumCipherError) -> QuantumCipherError:
        logger.warning(f"{type(err).__name__}: {err}")
        self._emit(SessionEvent(EVENT_ERROR, error=err))
        return err

    # -- operations --

    def transform(self, raw_text: str) -> List[CharacterRecord]:
        with self._lock:
            try:
                records = transform_text(raw_text, self.space_color)
            except EmptyInputError as e:
                raise self._fail(e)

            self._records = records
            self._complexity_matrix = [r.complexity_score for r in records]
            logger.debug(f"Quantum encryption complete: {len(records)} blocks.")
            self._emit(SessionEvent(EVENT_SEQUENCE_UPDATED, records=tuple(records)))
            return list(records)

    def reverse(self) -> str:
        with self._lock:
            if not self._records:
                raise self._fail(NoDataError("No quantum cipher data available."))
            return "".join(" " if r.is_space else r.original_char for r in self._records)

    def transformed_text(self) -> str:
        with self._lock:
            if not self._records:
                raise self._fail(NoDataError("No quantum cipher data available."))
            return "".join(r.transformed_char for r in self._records)

    def reset(self) -> None:
        with self._lock:
            self._records = []
            self._complexity_matrix = []
            logger.info("All quantum data wiped from memory.")
            self._emit(SessionEvent(EVENT_SESSION_RESET))

    def export_snapshot(self) -> Dict[str, Any]:
        with self._lock:
            if not self._records:
                raise self._fail(NoDataError("No quantum data to export."))
            return {
                "version": self.snapshot_version,
                "timestamp": _utc_timestamp(),
                "identifier": self._identifier,
                "sequence": [r.to_dict() for r in self._records],
                "complexityMatrix": list(self._complexity_matrix),
            }

    def import_snapshot(self, data: Union[str, bytes, Dict[str, Any]]) -> List[CharacterRecord]:
        with self._lock:
            try:
                identifier, records, matrix = _parse_snapshot(data, self.space_color)
            except InvalidSnapshotError as e:
                raise self._fail(e)

            self._records = records
            self._complexity_matrix = matrix
            self._identifier = identifier or generate_identifier(self._random_bytes)
            logger.info(f"Quantum snapshot imported: {len(records)} blocks.")
            self._emit(SessionEvent(EVENT_SNAPSHOT_IMPORTED, records=tuple(records)))
            return list(records)


# ============================================================
# Snapshot persistence
# ============================================================

def snapshot_to_json(snapshot: Dict[str, Any]) -> str:
    return json.dumps(snapshot, ensure_ascii=False, indent=2)


def save_snapshot(session: CipherSession, path: Union[str, Path]) -> Path:
    path = Path(path)
    path.write_text(snapshot_to_json(session.export_snapshot()), encoding="utf-8")
    logger.info(f"Quantum JSON data exported to {path}")
    return path


def load_snapshot(session: CipherSession, path: Union[str, Path]) -> List[CharacterRecord]:
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise InvalidSnapshotError(f"Snapshot file is not UTF-8 text: {path}") from e
    return session.import_snapshot(raw)


# ============================================================
# Debounced requests (latest request wins)
# ============================================================

class PendingCall:
    """Handle for one debounced request."""

    def __init__(self):
        self._done = threading.Event()
        self.result: Any = None
        self.error: Optional[BaseException] = None
        self.superseded = False

    @property
    def done(self) -> bool:
        return self._done.is_set()

    @property
    def executed(self) -> bool:
        return self.done and not self.superseded

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._done.wait(timeout)

    def _finish(self, result: Any = None, error: Optional[BaseException] = None, superseded: bool = False) -> None:
        self.result = result
        self.error = error
        self.superseded = superseded
        self._done.set()


TimerFactory = Callable[[float, Callable[[], None]], Any]


class Debouncer:
    """
    Coalesces rapid calls: each submit() cancels the pending one and
    schedules a fresh call after `delay` seconds of quiet.
    """

    def __init__(
        self,
        func: Callable[..., Any],
        delay: float = DEFAULT_DEBOUNCE_SECONDS,
        timer_factory: TimerFactory = threading.Timer,
    ):
        self._func = func
        self.delay = delay
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer: Any = None
        self._pending: Optional[PendingCall] = None
        self._args: Tuple[tuple, dict] = ((), {})

    def submit(self, *args, **kwargs) -> PendingCall:
        call = PendingCall()
        with self._lock:
            self._drop_pending()
            self._pending = call
            self._args = (args, kwargs)
            timer = self._timer_factory(self.delay, partial(self._fire, call))
            timer.daemon = True
            self._timer = timer
            timer.start()
        return call

    def cancel(self) -> None:
        with self._lock:
            self._drop_pending()

    def flush(self) -> Optional[PendingCall]:
        """Runs the pending call now, if any."""
        with self._lock:
            call = self._take(None)
        if call is not None:
            self._run(*call)
            return call[0]
        return None

    def _drop_pending(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._pending is not None:
            self._pending._finish(superseded=True)
            self._pending = None

    def _take(self, expected: Optional[PendingCall]):
        if self._pending is None or (expected is not None and self._pending is not expected):
            return None
        if self._timer is not None:
            self._timer.cancel()
        call, args = self._pending, self._args
        self._pending = None
        self._timer = None
        return call, args

    def _fire(self, call: PendingCall) -> None:
        with self._lock:
            taken = self._take(call)
        if taken is not None:
            self._run(*taken)

    def _run(self, call: PendingCall, args: Tuple[tuple, dict]) -> None:
        a, kw = args
        try:
            result = self._func(*a, **kw)
        except Exception as e:
            logger.debug(f"Debounced call raised {type(e).__name__}: {e}")
            call._finish(error=e)
            return
        call._finish(result=result)

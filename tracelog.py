"""
tracelog.py - Hash-Chained Execution Trace

Records every computation step as a nested, hash-chained event log with
per-group digests and one root digest. The recorder is local mutable state
owned by a single engine call; nothing here is shared between calls.

Chain rules:
- event i's prev is event i-1's hash (the first event's prev is "")
- hash = dual_hash(prev | t | depth | kind | phase | message | data | fp),
  data keys sorted, the back-filled "gd" key excluded
- a group digest folds every hash strictly inside the group
- the root accumulator folds every hash in emission order
"""

from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from bitmix import fnv1a32, fold32, mix32, stage_stream
from receipts import TENANT_ID, StopRule, dual_hash, emit_receipt

__all__ = [
    "Phase",
    "EventKind",
    "TraceEvent",
    "TraceRecorder",
    "NullRecorder",
    "VERIFY_MESSAGE",
    "FACTOR_SUMMARY_MESSAGE",
    "event_payload",
    "event_hash",
    "fold_hash",
    "root_digest",
    "group_digest",
    "verify_trace",
    "playback_delays",
    "summary_fingerprint",
]

# =============================================================================
# CONSTANTS
# =============================================================================

TAG_TRACE = 0x7A1CE5E7

ROOT_ACC_INIT = 0x9E3779B9
GROUP_ACC_INIT = 0x811C9DC5

EVENT_STEP_MS = (80, 300)
GROUP_STEP_MS = (160, 520)

GROUP_DIGEST_KEY = "gd"
GROUP_DIGEST_SHORT = 8

VERIFY_MESSAGE = "签名链校验"
FACTOR_SUMMARY_MESSAGE = "多学科因子注入"

PLAYBACK_TOTAL_MS = 20000
PLAYBACK_MIN_MS = 18

DataValue = Union[str, int, float]


class Phase(str, Enum):
    TIME = "时间"
    TEXT = "文字"
    ICHING = "易经"
    NUMEROLOGY = "数理"
    OCCULT = "天机"
    FUSION = "融合"
    VERDICT = "裁决"


class EventKind(str, Enum):
    GROUP_START = "group_start"
    GROUP_END = "group_end"
    EVENT = "event"


PLAYBACK_PHASE_BOOST = {
    Phase.ICHING.value: 180,
    Phase.FUSION.value: 140,
    Phase.VERDICT.value: 220,
}


# =============================================================================
# EVENT
# =============================================================================

@dataclass
class TraceEvent:
    """
    One trace entry. Mutable only so the recorder can back-fill
    group_digest / root_digest (and data["gd"]) after the fact.
    """
    id: str
    t: int
    depth: int
    kind: str
    phase: str
    message: str
    prev: str
    hash: str
    data: Optional[Dict[str, DataValue]] = None
    fp: Optional[Tuple[float, ...]] = None
    group_digest: Optional[str] = None
    root_digest: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "t": self.t,
            "depth": self.depth,
            "kind": self.kind,
            "phase": self.phase,
            "message": self.message,
        }
        if self.data is not None:
            out["data"] = dict(self.data)
        if self.fp is not None:
            out["fp"] = list(self.fp)
        if self.group_digest is not None:
            out["group_digest"] = self.group_digest
        if self.root_digest is not None:
            out["root_digest"] = self.root_digest
        out["prev"] = self.prev
        out["hash"] = self.hash
        return out

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "TraceEvent":
        fp = d.get("fp")
        return cls(
            id=str(d["id"]),
            t=int(d["t"]),
            depth=int(d["depth"]),
            kind=str(d["kind"]),
            phase=str(d["phase"]),
            message=str(d["message"]),
            prev=str(d.get("prev", "")),
            hash=str(d.get("hash", "")),
            data=dict(d["data"]) if d.get("data") is not None else None,
            fp=tuple(float(x) for x in fp) if fp is not None else None,
            group_digest=d.get("group_digest"),
            root_digest=d.get("root_digest"),
        )


# =============================================================================
# CANONICAL ENCODING
# =============================================================================

def _canon_value(v: DataValue) -> str:
    if isinstance(v, bool):
        return "1" if v else "0"
    if isinstance(v, int):
        return str(v)
    if isinstance(v, float):
        return f"{v:.6f}"
    return str(v)


def canonical_data(data: Optional[Mapping[str, DataValue]]) -> str:
    if not data:
        return ""
    return "&".join(
        f"{k}={_canon_value(data[k])}" for k in sorted(data) if k != GROUP_DIGEST_KEY
    )


def canonical_fp(fp: Optional[Sequence[float]]) -> str:
    if fp is None:
        return ""
    return ",".join(f"{x:.4f}" for x in fp)


def event_payload(
    prev: str,
    t: int,
    depth: int,
    kind: str,
    phase: str,
    message: str,
    data: Optional[Mapping[str, DataValue]] = None,
    fp: Optional[Sequence[float]] = None,
) -> str:
    return "|".join([
        prev, str(t), str(depth), kind, phase, message,
        canonical_data(data), canonical_fp(fp),
    ])


def event_hash(*args, **kwargs) -> str:
    """dual_hash of event_payload(...)."""
    return dual_hash(event_payload(*args, **kwargs))


def fold_hash(acc: int, h: str) -> int:
    return mix32(acc, fnv1a32(h))


def root_digest(hashes: Sequence[str]) -> str:
    """Root digest of a full trace, from its event hashes in emission order."""
    acc = ROOT_ACC_INIT
    for h in hashes:
        acc = fold_hash(acc, h)
    return _root_digest_from(acc, len(hashes))


def _root_digest_from(acc: int, count: int) -> str:
    return dual_hash(f"root|{acc:08x}|{count}")


def group_digest(start_hash: str, inner_hashes: Sequence[str], end_hash: str) -> str:
    acc = GROUP_ACC_INIT
    for h in inner_hashes:
        acc = fold_hash(acc, h)
    return dual_hash(f"{start_hash}|{acc:08x}|{end_hash}")


def _phase_value(phase: Union[Phase, str]) -> str:
    return Phase(phase).value


# =============================================================================
# RECORDER
# =============================================================================

@dataclass
class _GroupFrame:
    depth: int
    start_index: int
    start_hash: str
    acc: int = GROUP_ACC_INIT


class TraceRecorder:
    """
    Trace state machine: group stack, virtual clock, sequence counter and
    root accumulator.

    The virtual clock advances by a step drawn from a dedicated stream
    (events 80-300 ms, group boundaries 160-520 ms). It paces UI playback
    and has nothing to do with wall-clock time.
    """

    def __init__(self, seed: int):
        self._rng = stage_stream(seed, TAG_TRACE)
        self.events: List[TraceEvent] = []
        self._stack: List[_GroupFrame] = []
        self._t = 0
        self._seq = 0
        self._root_acc = ROOT_ACC_INIT
        self._root_digest: Optional[str] = None

    @property
    def depth(self) -> int:
        return len(self._stack)

    @property
    def finalized(self) -> bool:
        return self._root_digest is not None

    @property
    def root(self) -> Optional[str]:
        return self._root_digest

    def emit(
        self,
        phase: Union[Phase, str],
        message: str,
        data: Optional[Mapping[str, DataValue]] = None,
        fp: Optional[Sequence[float]] = None,
    ) -> TraceEvent:
        self._advance(EVENT_STEP_MS)
        return self._append(EventKind.EVENT, phase, message, data, fp)

    def group_start(
        self,
        phase: Union[Phase, str],
        message: str,
        data: Optional[Mapping[str, DataValue]] = None,
        fp: Optional[Sequence[float]] = None,
    ) -> TraceEvent:
        self._advance(GROUP_STEP_MS)
        evt = self._append(EventKind.GROUP_START, phase, message, data, fp)
        self._stack.append(_GroupFrame(
            depth=evt.depth,
            start_index=len(self.events) - 1,
            start_hash=evt.hash,
        ))
        return evt

    def group_end(
        self,
        phase: Union[Phase, str],
        message: str,
        data: Optional[Mapping[str, DataValue]] = None,
        fp: Optional[Sequence[float]] = None,
    ) -> TraceEvent:
        if not self._stack:
            raise StopRule(f"group_end '{message}' with no open group")
        self._advance(GROUP_STEP_MS)
        # Pop first: the end event sits at the parent's depth and is not
        # folded into its own group's accumulator.
        frame = self._stack.pop()
        evt = self._append(EventKind.GROUP_END, phase, message, data, fp)

        digest = dual_hash(f"{frame.start_hash}|{frame.acc:08x}|{evt.hash}")
        for target in (self.events[frame.start_index], evt):
            target.group_digest = digest
            target.data = {**(target.data or {}), GROUP_DIGEST_KEY: digest[:GROUP_DIGEST_SHORT]}
        return evt

    @contextmanager
    def group(
        self,
        phase: Union[Phase, str],
        message: str,
        data: Optional[Mapping[str, DataValue]] = None,
        fp: Optional[Sequence[float]] = None,
    ) -> Iterator["TraceRecorder"]:
        """Open a group for the body of a with-block. Not closed on error."""
        self.group_start(phase, message, data, fp)
        yield self
        self.group_end(phase, message)

    def finalize(self) -> str:
        """
        Emit the closing verification event and attach the root digest to
        it and to the first event.

        Returns:
            str: the root digest
        """
        if self._stack:
            raise StopRule(f"finalize with {len(self._stack)} open group(s)")
        if self.finalized:
            raise StopRule("trace already finalized")

        chain_ok = all(
            self.events[i].prev == self.events[i - 1].hash
            for i in range(1, len(self.events))
        )
        head = self.events[0].hash[:12] if self.events else ""
        tail = self.events[-1].hash[:12] if self.events else ""
        evt = self.emit(Phase.VERDICT, VERIFY_MESSAGE, {
            "head": head,
            "tail": tail,
            "n": len(self.events),
            "ok": 1 if chain_ok else 0,
        })

        digest = _root_digest_from(self._root_acc, len(self.events))
        self.events[0].root_digest = digest
        evt.root_digest = digest
        self._root_digest = digest
        return digest

    # -------------------------------------------------------------------------
    # internals
    # -------------------------------------------------------------------------

    def _advance(self, step_range: Tuple[int, int]) -> None:
        self._t += self._rng.randint(*step_range)

    def _append(
        self,
        kind: EventKind,
        phase: Union[Phase, str],
        message: str,
        data: Optional[Mapping[str, DataValue]],
        fp: Optional[Sequence[float]],
    ) -> TraceEvent:
        if self.finalized:
            raise StopRule(f"event '{message}' recorded after finalize")

        self._seq += 1
        prev = self.events[-1].hash if self.events else ""
        depth = len(self._stack)
        phase_value = _phase_value(phase)
        data_copy = dict(data) if data else None
        fp_tuple = tuple(float(x) for x in fp) if fp is not None else None

        h = event_hash(prev, self._t, depth, kind.value, phase_value, message, data_copy, fp_tuple)
        evt = TraceEvent(
            id=f"evt-{self._seq:04d}",
            t=self._t,
            depth=depth,
            kind=kind.value,
            phase=phase_value,
            message=message,
            prev=prev,
            hash=h,
            data=data_copy,
            fp=fp_tuple,
        )
        self.events.append(evt)

        self._root_acc = fold_hash(self._root_acc, h)
        for frame in self._stack:
            frame.acc = fold_hash(frame.acc, h)
        return evt


class NullRecorder:
    """Recorder stand-in for untraced runs. Accepts every call, keeps nothing."""

    depth = 0
    finalized = False
    root = None

    def __init__(self) -> None:
        self.events: List[TraceEvent] = []

    def emit(self, phase, message, data=None, fp=None) -> None:
        return None

    def group_start(self, phase, message, data=None, fp=None) -> None:
        return None

    def group_end(self, phase, message, data=None, fp=None) -> None:
        return None

    @contextmanager
    def group(self, phase, message, data=None, fp=None) -> Iterator["NullRecorder"]:
        yield self

    def finalize(self) -> str:
        return ""


# =============================================================================
# VERIFICATION
# =============================================================================

def _as_events(trace: Sequence[Union[TraceEvent, Mapping[str, Any]]]) -> List[TraceEvent]:
    return [e if isinstance(e, TraceEvent) else TraceEvent.from_dict(e) for e in trace]


def verify_trace(
    trace: Sequence[Union[TraceEvent, Mapping[str, Any]]],
    strict: bool = False,
) -> Dict[str, Any]:
    """
    Recheck a trace end to end.

    Checks recomputed hashes, prev links, the virtual clock, depth against the
    group stack, group pairing and digests, and the root digest on the first
    and the verification event.

    Args:
        trace: TraceEvent objects or their to_dict() form
        strict: raise StopRule instead of returning a failed receipt

    Returns:
        dict: trace_verification receipt with ok, n_events, issues, root_digest
    """
    events = _as_events(trace)
    issues: List[str] = []
    stack: List[int] = []
    prev_hash = ""
    prev_t = -1

    for i, evt in enumerate(events):
        if evt.prev != prev_hash:
            issues.append(f"{evt.id}: prev does not match previous hash")
        expected = event_hash(evt.prev, evt.t, evt.depth, evt.kind, evt.phase,
                              evt.message, evt.data, evt.fp)
        if expected != evt.hash:
            issues.append(f"{evt.id}: hash mismatch")
        if evt.t <= prev_t:
            issues.append(f"{evt.id}: clock did not advance")

        if evt.kind == EventKind.GROUP_END.value:
            if not stack:
                issues.append(f"{evt.id}: group_end without open group")
            else:
                start_index = stack.pop()
                start = events[start_index]
                if start.depth != evt.depth:
                    issues.append(f"{evt.id}: group_end depth {evt.depth} != start depth {start.depth}")
                inner = [e.hash for e in events[start_index + 1:i]]
                digest = group_digest(start.hash, inner, evt.hash)
                if not start.group_digest or start.group_digest != evt.group_digest:
                    issues.append(f"{evt.id}: group digest missing or unpaired")
                elif digest != evt.group_digest:
                    issues.append(f"{evt.id}: group digest mismatch")

        if evt.depth != len(stack):
            issues.append(f"{evt.id}: depth {evt.depth} but {len(stack)} open group(s)")

        if evt.kind == EventKind.GROUP_START.value:
            stack.append(i)

        prev_hash = evt.hash
        prev_t = evt.t

    if stack:
        issues.append(f"{len(stack)} group(s) never closed")

    expected_root = root_digest([e.hash for e in events]) if events else ""
    verify_evt = next(
        (e for e in reversed(events)
         if e.phase == Phase.VERDICT.value and e.message == VERIFY_MESSAGE),
        None,
    )
    if verify_evt is None:
        issues.append("no verification event")
    else:
        if verify_evt.root_digest != expected_root:
            issues.append("verification event root digest mismatch")
        if events[0].root_digest != expected_root:
            issues.append("first event root digest mismatch")

    ok = not issues
    if strict and not ok:
        stoprule_trace_broken(issues)

    return emit_receipt("trace_verification", {
        "tenant_id": TENANT_ID,
        "n_events": len(events),
        "ok": ok,
        "issues": issues,
        "root_digest": expected_root,
    })


def stoprule_trace_broken(issues: List[str]) -> None:
    raise StopRule(f"trace integrity failed: {'; '.join(issues[:5])}")


# =============================================================================
# PLAYBACK HELPERS
# =============================================================================

def playback_delays(
    trace: Sequence[Union[TraceEvent, Mapping[str, Any]]],
    entropy: int,
    total_ms: int = PLAYBACK_TOTAL_MS,
) -> List[int]:
    """
    Per-event reveal delays (ms) for animated playback.

    Spreads total_ms evenly, lingers on 易经/融合/裁决 events, and adds a
    deterministic +/-80 ms jitter keyed by the entropy value.
    """
    events = _as_events(trace)
    base = total_ms // max(1, len(events))
    delays = []
    for i, evt in enumerate(events):
        boost = PLAYBACK_PHASE_BOOST.get(evt.phase, 0)
        jitter = (fold32(entropy, i + 31) % 160) - 80
        delays.append(max(PLAYBACK_MIN_MS, base + boost + jitter))
    return delays


def summary_fingerprint(
    trace: Sequence[Union[TraceEvent, Mapping[str, Any]]],
) -> Optional[Tuple[float, ...]]:
    """fp of the last factor-injection event, if any."""
    for evt in reversed(_as_events(trace)):
        if evt.message == FACTOR_SUMMARY_MESSAGE and evt.fp is not None:
            return evt.fp
    return None

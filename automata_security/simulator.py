#!/usr/bin/env python3
"""
Host-level simulation over a connection dataset using a learned grammar.

Samples are grouped per host (or responder / uid, see AGGREGATE_MODES),
ordered by timestamp, and each group is judged twice:

- grammar walk per sample: accepted sequences count as malicious; a host
  reaching its threshold is BLOCKED
- stack validation over the group's `state=` symbols: unmatched opens or
  closes make the host PDA_REJECTED
"""
from __future__ import annotations

import csv
import os
import sys
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

from .chomsky import GrammarWalker
from .config import AGGREGATE_MODES, DEFAULT_THRESHOLD
from .dataset import LabeledSequence
from .pda import validate_pda_sequence


class HostReport(NamedTuple):
    host: str
    status: str  # BLOCKED | PDA_REJECTED | OK
    malicious_count: int
    blocked: bool
    pda_ok: bool
    pda_reason: str
    sample_reasons: List[Tuple[str, str]]


def group_keys(sample: LabeledSequence, mode: str) -> List[str]:
    origin = sample.host or sample.id
    if mode == "orig":
        return [origin]
    if mode == "resp":
        return [sample.resp_host or origin]
    if mode == "union":
        keys = [origin]
        if sample.resp_host and sample.resp_host != origin:
            keys.append(sample.resp_host)
        return keys
    if mode == "uid":
        return [sample.uid or origin]
    raise ValueError(f"unknown aggregate mode {mode!r}; expected one of {AGGREGATE_MODES}")


def aggregate(samples: Sequence[LabeledSequence], mode: str = "orig") -> Dict[str, List[int]]:
    """Map group key -> sample indexes ordered by timestamp (stable)."""
    groups: Dict[str, List[int]] = {}
    for i, s in enumerate(samples):
        for key in group_keys(s, mode):
            groups.setdefault(key, []).append(i)
    for key in groups:
        groups[key].sort(key=lambda i: samples[i].ts)
    return groups


def simulate(samples: Sequence[LabeledSequence], walker: GrammarWalker,
             threshold: int = DEFAULT_THRESHOLD,
             per_host_threshold: Optional[Dict[str, int]] = None,
             mode: str = "orig") -> List[HostReport]:
    per_host_threshold = per_host_threshold or {}
    reports: List[HostReport] = []
    for host, idxs in sorted(aggregate(samples, mode).items()):
        malicious = 0
        reasons: List[Tuple[str, str]] = []
        conn_states: List[str] = []
        for i in idxs:
            s = samples[i]
            ok, reason = walker.classify_with_reason(s.symbols)
            if ok:
                malicious += 1
            reasons.append((s.id, reason))
            conn_states.extend(sym for sym in s.symbols if sym.startswith("state="))

        pda = validate_pda_sequence(conn_states)
        blocked = malicious >= per_host_threshold.get(host, threshold)
        if blocked:
            status = "BLOCKED"
        elif not pda.ok:
            status = "PDA_REJECTED"
        else:
            status = "OK"
        reports.append(HostReport(host, status, malicious, blocked, pda.ok, pda.reason, reasons))
    return reports


def load_threshold_file(path: str) -> Dict[str, int]:
    """Read `host,threshold` or `host threshold` lines; `#` starts a comment."""
    thresholds: Dict[str, int] = {}
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "," in line:
                host, _, thr = line.partition(",")
            else:
                parts = line.split()
                host, thr = (parts + [""])[:2]
            host, thr = host.strip(), thr.strip()
            if not host or not thr:
                continue
            try:
                thresholds[host] = int(thr)
            except ValueError:
                print(f"[WARN] invalid threshold for host '{host}' in {path}", file=sys.stderr)
    return thresholds


def write_reports_csv(reports: Sequence[HostReport], path: str) -> None:
    d = os.path.dirname(path)
    if d:
        os.makedirs(d, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as f:
        w = csv.writer(f)
        w.writerow(["host", "status", "malicious_count", "blocked", "pda_ok", "pda_reason"])
        for r in reports:
            w.writerow([r.host, r.status, r.malicious_count, str(r.blocked).lower(),
                        str(r.pda_ok).lower(), r.pda_reason])

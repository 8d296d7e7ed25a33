#!/usr/bin/env python3
"""
Export helpers for visualization front-ends and reports.

- dfa_to_graph(dfa): {"nodes": [...], "edges": [...]} for graph viewers
- save_dfa_json / load_dfa_json: cache a trained automaton on disk
- write_metrics_xlsx: one-sheet Excel report of evaluation results
"""
from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Sequence

from openpyxl import Workbook
from openpyxl.utils import get_column_letter

from .dfa import DFA, AutomatonError

REPORT_COLUMNS = [
    "source",
    "test_samples",
    "accuracy",
    "false_positive_rate",
    "false_negative_rate",
    "states_before",
    "states_after",
    "minimization_ms",
]


def dfa_to_graph(dfa: DFA) -> Dict[str, List[Dict[str, Any]]]:
    nodes = []
    for i, state in enumerate(dfa.states):
        nodes.append({
            "id": f"s{i}",
            "label": f"s{i}",
            "is_accepting": state.accepting,
            "is_start": i == dfa.start,
            "is_sink": i == dfa.sink,
            "positive": state.positive_count,
            "negative": state.negative_count,
        })
    edges = []
    for i, state in enumerate(dfa.states):
        for a in sorted(state.transitions):
            edges.append({"source": f"s{i}", "target": f"s{state.transitions[a]}", "label": a})
    return {"nodes": nodes, "edges": edges}


def dfa_to_dict(dfa: DFA) -> Dict[str, Any]:
    return {
        "start": dfa.start,
        "sink": dfa.sink,
        "alphabet": list(dfa.alphabet),
        "states": [
            {
                "positive": s.positive_count,
                "negative": s.negative_count,
                "accepting": s.accepting,
                "transitions": dict(sorted(s.transitions.items())),
            }
            for s in dfa.states
        ],
    }


def dfa_from_dict(data: Dict[str, Any]) -> DFA:
    dfa = DFA()
    try:
        dfa.start = int(data["start"])
        dfa.sink = None if data.get("sink") is None else int(data["sink"])
        dfa.alphabet = sorted(data.get("alphabet", []))
        for raw in data["states"]:
            state = DFA.State(int(raw["positive"]), int(raw["negative"]))
            state.accepting = bool(raw.get("accepting", state.accepting))
            state.transitions = {str(a): int(t) for a, t in raw.get("transitions", {}).items()}
            dfa.states.append(state)
    except (KeyError, TypeError, ValueError) as e:
        raise AutomatonError(f"malformed DFA description: {e}") from e
    dfa.validate()
    return dfa


def save_dfa_json(dfa: DFA, path: str) -> None:
    d = os.path.dirname(path)
    if d:
        os.makedirs(d, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(dfa_to_dict(dfa), f, ensure_ascii=False, indent=2)


def load_dfa_json(path: str) -> DFA:
    with open(path, "r", encoding="utf-8") as f:
        return dfa_from_dict(json.load(f))


def write_metrics_xlsx(rows: Sequence[Dict[str, Any]], path: str) -> None:
    """Write one row per evaluation result; `rows` are dicts keyed by REPORT_COLUMNS."""
    wb = Workbook()
    ws = wb.active
    ws.title = "evaluation"

    for c_idx, col in enumerate(REPORT_COLUMNS, start=1):
        ws.cell(row=1, column=c_idx, value=col)
    for r_idx, row in enumerate(rows, start=2):
        for c_idx, col in enumerate(REPORT_COLUMNS, start=1):
            ws.cell(row=r_idx, column=c_idx, value=row.get(col))

    # Header-based widths keep this fast on large reports
    for c_idx, col in enumerate(REPORT_COLUMNS, start=1):
        ws.column_dimensions[get_column_letter(c_idx)].width = max(10, min(len(str(col)) + 2, 80))

    d = os.path.dirname(path)
    if d:
        os.makedirs(d, exist_ok=True)
    wb.save(path)

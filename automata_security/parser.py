"""
Dataset loaders that turn labeled connection logs into LabeledSequence lists.

Two layouts are understood:

- malware API-call CSV: columns `hash`, `malware` and one `t_*` column per
  step of the call trace; each non-empty `t_*` cell becomes one symbol.
- IoT-23 / Zeek `conn.log.labeled`: `|` or `,` separated, optional `#`
  preamble. Each connection becomes a short sequence
  `proto=<p>, state=<conn_state>, service=<s>`.
"""
from __future__ import annotations

import csv
from typing import Dict, List

from .dataset import LabeledSequence


def _split_line(line: str, delimiter: str = ",") -> List[str]:
    row = next(csv.reader([line], delimiter=delimiter, quotechar='"'), [])
    return [cell.strip() for cell in row]


def _header_index(header: List[str]) -> Dict[str, int]:
    return {name: i for i, name in enumerate(header)}


def is_true_label(value: str) -> bool:
    lowercase = value.strip().lower()
    if lowercase in ("1", "true", "malware", "malicious"):
        return True
    if lowercase in ("0", "false", "benign"):
        return False
    return "malic" in lowercase


def load_malware_csv(path: str) -> List[LabeledSequence]:
    with open(path, "r", encoding="utf-8") as f:
        lines = f.read().splitlines()
    if not lines:
        return []

    index = _header_index(_split_line(lines[0]))
    if "hash" not in index or "malware" not in index:
        raise ValueError("Malware dataset missing required columns 'hash' or 'malware'.")
    id_col = index["hash"]
    label_col = index["malware"]
    sequence_columns = sorted(col for name, col in index.items() if len(name) > 2 and name.startswith("t_"))

    samples: List[LabeledSequence] = []
    for line in lines[1:]:
        if not line:
            continue
        tokens = _split_line(line)
        if len(tokens) <= max(label_col, id_col):
            continue
        symbols = tuple(tokens[col] for col in sequence_columns if col < len(tokens) and tokens[col])
        if not symbols:
            continue
        samples.append(LabeledSequence(tokens[id_col], symbols, is_true_label(tokens[label_col])))
    return samples


def load_iot_csv(path: str) -> List[LabeledSequence]:
    with open(path, "r", encoding="utf-8") as f:
        lines = f.read().splitlines()

    header_at = None
    for i, line in enumerate(lines):
        if line.startswith("#") or not line:
            continue
        header_at = i
        break
    if header_at is None:
        return []

    header_line = lines[header_at]
    delimiter = "|" if "|" in header_line else ","
    header = _split_line(header_line, delimiter)
    index = _header_index(header)
    if "label" not in index:
        raise ValueError("IoT dataset missing required column 'label'.")
    label_col = index["label"]

    # detailed-label is a second ground-truth column and must never leak into the alphabet
    symbol_columns = [("proto", "proto="), ("conn_state", "state="), ("service", "service=")]

    def cell(tokens: List[str], column: str) -> str:
        col = index.get(column)
        if col is None or col >= len(tokens):
            return ""
        return tokens[col]

    samples: List[LabeledSequence] = []
    line_number = 1  # header
    for line in lines[header_at + 1:]:
        line_number += 1
        if not line or line.startswith("#"):
            continue
        tokens = _split_line(line, delimiter)
        if len(tokens) <= label_col:
            continue

        symbols = []
        for column, prefix in symbol_columns:
            value = cell(tokens, column)
            if value and value != "-":
                symbols.append(prefix + value)
        if not symbols:
            symbols.append("symbol=unknown")

        try:
            ts = float(cell(tokens, "ts") or 0.0)
        except ValueError:
            ts = 0.0

        samples.append(LabeledSequence(
            id=f"iot_line_{line_number}",
            symbols=tuple(symbols),
            label=is_true_label(tokens[label_col]),
            host=cell(tokens, "id.orig_h"),
            resp_host=cell(tokens, "id.resp_h"),
            uid=cell(tokens, "uid"),
            ts=ts,
        ))
    return samples

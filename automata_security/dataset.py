"""
Labeled sequences and dataset utilities.

A LabeledSequence is an ordered tuple of symbols (strings over the alphabet
discovered from training data) with a malicious/benign label. Sequences are
immutable once produced by the parser; the PTA builder only reads them.
"""
from __future__ import annotations

import random
from typing import Iterable, List, NamedTuple, Sequence, Tuple


class LabeledSequence(NamedTuple):
    id: str
    symbols: Tuple[str, ...]
    label: bool  # True = malicious, False = benign
    host: str = ""
    resp_host: str = ""
    uid: str = ""
    ts: float = 0.0


class DatasetSplit(NamedTuple):
    train: List[LabeledSequence]
    test: List[LabeledSequence]


class FeatureSummary(NamedTuple):
    unique_count: int
    sample_features: List[str]
    truncated: bool


def make_sequence(id: str, symbols: Iterable[str], label: bool, **meta) -> LabeledSequence:
    """Build a LabeledSequence, freezing `symbols` into a tuple."""
    return LabeledSequence(id, tuple(symbols), bool(label), **meta)


def train_test_split(data: Sequence[LabeledSequence], train_ratio: float, seed: int = 42) -> DatasetSplit:
    if not (0.0 < train_ratio < 1.0):
        raise ValueError("train_ratio must be in (0, 1).")
    if not data:
        return DatasetSplit([], [])

    shuffled = list(data)
    random.Random(seed).shuffle(shuffled)

    train_count = int(len(shuffled) * train_ratio)
    if train_count == 0:
        train_count = 1
    elif train_count == len(shuffled) and len(shuffled) > 1:
        train_count = len(shuffled) - 1
    return DatasetSplit(shuffled[:train_count], shuffled[train_count:])


def summarize_features(samples: Iterable[LabeledSequence], max_display: int = 20) -> FeatureSummary:
    unique = set()
    for sample in samples:
        unique.update(sample.symbols)
    ordered = sorted(unique)
    if len(ordered) > max_display:
        return FeatureSummary(len(ordered), ordered[:max_display], True)
    return FeatureSummary(len(ordered), ordered, False)

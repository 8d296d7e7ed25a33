#!/usr/bin/env python3
"""
End-to-end training: samples -> PTA -> complete DFA -> minimized DFA.

Each run owns all of its structures, so several datasets can be trained
concurrently (train_many) without locking.
"""
from __future__ import annotations

import concurrent.futures
import os
import time
from typing import Callable, List, NamedTuple, Optional, Sequence, Tuple

from .dataset import LabeledSequence
from .dfa import DFA
from .pta import PTA


class TrainingResult(NamedTuple):
    pta: PTA
    dfa: DFA
    minimized: DFA
    states_before: int
    states_after: int
    minimization_ms: float


class BatchResult(NamedTuple):
    path: str
    samples: int
    result: Optional[TrainingResult]
    error: str


Loader = Callable[[str], List[LabeledSequence]]


def train(samples: Sequence[LabeledSequence]) -> TrainingResult:
    pta = PTA.from_samples(samples)
    dfa = DFA.from_pta(pta)
    start = time.perf_counter()
    minimized = dfa.minimize()
    elapsed_ms = (time.perf_counter() - start) * 1000.0
    return TrainingResult(pta, dfa, minimized, len(dfa.states), len(minimized.states), elapsed_ms)


def _train_path(path: str, loader: Loader) -> Tuple[int, TrainingResult]:
    samples = loader(path)
    return len(samples), train(samples)


def train_many(paths: Sequence[str], loader: Loader,
               max_workers: Optional[int] = None) -> List[BatchResult]:
    """Train one automaton per dataset in a thread pool; results keep the order of `paths`."""
    workers = max_workers or (os.cpu_count() or 4)
    results = {}
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
        fut_to_path = {ex.submit(_train_path, p, loader): p for p in paths}
        for fut in concurrent.futures.as_completed(fut_to_path):
            p = fut_to_path[fut]
            try:
                count, result = fut.result()
                results[p] = BatchResult(p, count, result, "")
            except Exception as e:
                results[p] = BatchResult(p, 0, None, f"{type(e).__name__}: {e}")
    return [results[p] for p in paths]

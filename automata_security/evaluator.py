"""
Accuracy / false-positive / false-negative rates of a trained automaton.
"""
from __future__ import annotations

from typing import NamedTuple, Sequence

from .dataset import LabeledSequence
from .dfa import DFA


class Metrics(NamedTuple):
    accuracy: float = 0.0
    false_positive_rate: float = 0.0
    false_negative_rate: float = 0.0
    states_before: int = 0
    states_after: int = 0
    minimization_ms: float = 0.0


def evaluate(dfa: DFA, test_sequences: Sequence[LabeledSequence]) -> Metrics:
    if not test_sequences:
        return Metrics()

    tp = tn = fp = fn = 0
    for sample in test_sequences:
        predicted = dfa.classify(sample.symbols)
        if predicted and sample.label:
            tp += 1
        elif not predicted and not sample.label:
            tn += 1
        elif predicted:
            fp += 1
        else:
            fn += 1

    # A rate whose ground-truth class is absent from the test set is reported as 0.0
    fp_denom = fp + tn
    fn_denom = fn + tp
    return Metrics(
        accuracy=(tp + tn) / len(test_sequences),
        false_positive_rate=fp / fp_denom if fp_denom else 0.0,
        false_negative_rate=fn / fn_denom if fn_denom else 0.0,
    )

#!/usr/bin/env python3
"""
Prefix Tree Acceptor (PTA) over labeled symbol sequences.

- One node per distinct prefix seen in the samples; node 0 is the root
- Node ids are dense list indices, assigned at creation and never reused
- Each node counts how many positive / negative samples end exactly there

Nothing is decided here: accept/reject is left to the DFA constructor,
which votes on the counts.
"""
from __future__ import annotations
from typing import Dict, Iterable, List

from .dataset import LabeledSequence


class PTA:
    class Node:
        __slots__ = ("id", "next", "positive_count", "negative_count")
        def __init__(self, id: int):
            self.id: int = id
            self.next: Dict[str, int] = {}
            self.positive_count: int = 0
            self.negative_count: int = 0

    def __init__(self):
        self.start: int = 0
        self.nodes: List[PTA.Node] = [PTA.Node(0)]

    def _add_node(self) -> int:
        nid = len(self.nodes)
        self.nodes.append(PTA.Node(nid))
        return nid

    def add_path(self, symbols: Iterable[str], is_positive: bool) -> int:
        """Walk/extend the trie along `symbols` and count the sample at the end node."""
        s = self.start
        for a in symbols:
            nxt = self.nodes[s].next.get(a)
            if nxt is None:
                nxt = self._add_node()
                self.nodes[s].next[a] = nxt
            s = nxt
        if is_positive:
            self.nodes[s].positive_count += 1
        else:
            self.nodes[s].negative_count += 1
        return s

    def build(self, samples: Iterable[LabeledSequence]) -> "PTA":
        """Discard any previous tree and fold `samples` into a fresh one."""
        self.start = 0
        self.nodes = [PTA.Node(0)]
        for sample in samples:
            self.add_path(sample.symbols, sample.label)
        return self

    @classmethod
    def from_samples(cls, samples: Iterable[LabeledSequence]) -> "PTA":
        return cls().build(samples)

    def __len__(self) -> int:
        return len(self.nodes)

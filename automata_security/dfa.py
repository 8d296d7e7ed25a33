#!/usr/bin/env python3
"""
Complete DFA built from a Prefix Tree Acceptor.

- from_pta copies the PTA 1:1 by index and votes: a state accepts iff
  positive_count > negative_count (ties reject)
- complete() adds at most one sink state so every state has an edge for
  every alphabet symbol
- classify() walks the transition function; unknown symbols go to the sink
  or, without a sink, reject; trace() records the same walk step by step
- minimize() / to_chomsky() live in minimize.py / chomsky.py

Exposes:
    * class DFA
    * class AutomatonError
    * class DFATrace, TraceStep
    * complete(dfa)
"""
from __future__ import annotations
from typing import Dict, Iterable, List, NamedTuple, Optional

from .pta import PTA


class AutomatonError(RuntimeError):
    """A structural invariant of an automaton does not hold."""


class TraceStep(NamedTuple):
    current_state: int
    symbol: str
    next_state: Optional[int]  # None: unknown symbol and no sink


class DFATrace(NamedTuple):
    steps: List[TraceStep]
    final_state: Optional[int]
    accepting: bool

    @property
    def label(self) -> str:
        return "Malicious" if self.accepting else "Benign"


class DFA:
    class State:
        __slots__ = ("transitions", "positive_count", "negative_count", "accepting")
        def __init__(self, positive_count: int = 0, negative_count: int = 0):
            self.transitions: Dict[str, int] = {}
            self.positive_count: int = positive_count
            self.negative_count: int = negative_count
            self.accepting: bool = positive_count > negative_count

    def __init__(self):
        self.start: int = 0
        self.states: List[DFA.State] = []
        self.alphabet: List[str] = []
        self.sink: Optional[int] = None

    def __len__(self) -> int:
        return len(self.states)

    @classmethod
    def from_pta(cls, pta: PTA) -> "DFA":
        n = len(pta.nodes)
        if n == 0:
            raise AutomatonError("PTA has no nodes; cannot construct a DFA.")
        if not 0 <= pta.start < n:
            raise AutomatonError(f"PTA start node {pta.start} out of bounds ({n} nodes).")

        dfa = cls()
        dfa.start = pta.start
        symbols = set()
        for index, node in enumerate(pta.nodes):
            if node.id != index:
                raise AutomatonError(f"PTA node id {node.id} does not match its position {index}.")
            for a, target in node.next.items():
                if not 0 <= target < n:
                    raise AutomatonError(
                        f"PTA transition {index} --{a}--> {target} out of bounds ({n} nodes)."
                    )
            state = DFA.State(node.positive_count, node.negative_count)
            state.transitions = dict(node.next)
            symbols.update(node.next)
            dfa.states.append(state)

        dfa.alphabet = sorted(symbols)
        complete(dfa)
        return dfa

    def validate(self) -> None:
        """Raise AutomatonError if start, sink or any transition target is out of range."""
        n = len(self.states)
        if n == 0:
            return
        if not 0 <= self.start < n:
            raise AutomatonError(f"start state {self.start} out of bounds ({n} states).")
        if self.sink is not None and not 0 <= self.sink < n:
            raise AutomatonError(f"sink state {self.sink} out of bounds ({n} states).")
        for i, state in enumerate(self.states):
            for a, target in state.transitions.items():
                if not 0 <= target < n:
                    raise AutomatonError(f"transition s{i} --{a}--> s{target} out of bounds ({n} states).")

    def is_complete(self) -> bool:
        return all(a in state.transitions for state in self.states for a in self.alphabet)

    def classify(self, symbols: Iterable[str]) -> bool:
        if not self.states:
            return False
        q = self.start
        for a in symbols:
            nxt = self.states[q].transitions.get(a)
            if nxt is None:
                if self.sink is None:
                    return False
                nxt = self.sink
            q = nxt
        return self.states[q].accepting

    def trace(self, symbols: Iterable[str]) -> DFATrace:
        """Step-by-step run of classify(); stops at the first symbol with nowhere to go."""
        steps: List[TraceStep] = []
        if not self.states:
            return DFATrace(steps, None, False)
        q = self.start
        for a in symbols:
            nxt = self.states[q].transitions.get(a, self.sink)
            steps.append(TraceStep(q, a, nxt))
            if nxt is None:
                return DFATrace(steps, None, False)
            q = nxt
        return DFATrace(steps, q, self.states[q].accepting)

    def minimize(self) -> "DFA":
        from .minimize import minimize
        return minimize(self)

    def to_chomsky(self) -> str:
        from .chomsky import synthesize
        return synthesize(self).to_text()

    def to_dot(self) -> str:
        out = ["digraph DFA {", "  rankdir=LR;", "  node [shape=circle];"]
        out.append("  __start [shape=point];")
        out.append(f"  __start -> s{self.start};")
        for i, state in enumerate(self.states):
            attrs = f'label="s{i}\\n+{state.positive_count} -{state.negative_count}"'
            if state.accepting:
                attrs += ", shape=doublecircle"
            if self.sink == i:
                attrs += ", style=dashed"
            out.append(f"  s{i} [{attrs}];")
        for i, state in enumerate(self.states):
            for a in sorted(state.transitions):
                label = a.replace("\\", "\\\\").replace('"', '\\"')
                out.append(f'  s{i} -> s{state.transitions[a]} [label="{label}"];')
        out.append("}")
        return "\n".join(out) + "\n"

    def to_definition(self) -> str:
        accepting = [f"s{i}" for i, state in enumerate(self.states) if state.accepting]
        out = ["DFA Definition", "=============="]
        out.append("States (Q): {" + ", ".join(f"s{i}" for i in range(len(self.states))) + "}")
        out.append("Alphabet (Σ): {" + ", ".join(self.alphabet) + "}")
        out.append(f"Start state (q0): s{self.start}")
        out.append("Accepting states (F): {" + (", ".join(accepting) if accepting else "∅") + "}")
        if self.sink is not None:
            out.append(f"Sink state: s{self.sink}")
        out.append("Transitions (δ):")
        for i, state in enumerate(self.states):
            for a, target in sorted(state.transitions.items()):
                out.append(f"  δ(s{i}, {a}) = s{target}")
        return "\n".join(out) + "\n"


def complete(dfa: DFA) -> None:
    """Add a sink state for missing edges over the known alphabet."""
    dfa.sink = None
    if not dfa.alphabet:
        return
    need = any(a not in state.transitions for state in dfa.states for a in dfa.alphabet)
    if not need:
        return
    sink = len(dfa.states)
    # negative_count = 1 marks the sink as a synthetic rejecting state
    sink_state = DFA.State(positive_count=0, negative_count=1)
    dfa.states.append(sink_state)
    for state in dfa.states:
        for a in dfa.alphabet:
            if a not in state.transitions:
                state.transitions[a] = sink
    dfa.sink = sink

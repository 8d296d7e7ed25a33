#!/usr/bin/env python3
"""
Pushdown automata for nested-dependency validation.

Two pieces:

- validate_pda_sequence / validate_pda_sequence_with_trace: a one-stack check
  over connection states. `state=S0` (connection attempt) pushes,
  `state=SF` (normal close) pops; every close must match an open and every
  open must be closed.
- PDA + simulate_pda: a general PDA with ε-moves, explored breadth-first,
  and grammar_to_pda() which turns a CNF grammar into the classic
  expand/match PDA so grammar, PDA and DFA verdicts can be compared.
"""
from __future__ import annotations
from collections import deque
from typing import Dict, List, NamedTuple, Sequence, Tuple

from .chomsky import EPSILON, CNFGrammar
from .config import PDA_MAX_STEPS, PDA_POP_SYMBOL, PDA_PUSH_SYMBOL

BOTTOM = "Z0"


class PDAResult(NamedTuple):
    ok: bool
    reason: str


class PDAStep(NamedTuple):
    op: str  # PUSH, POP, POP_ERROR, NO_OP
    symbol: str
    stack_after: Tuple[str, ...]
    current_state: str
    next_state: str


class PDATraceResult(NamedTuple):
    ok: bool
    steps: List[PDAStep]


def validate_pda_sequence(seq: Sequence[str], push: str = PDA_PUSH_SYMBOL,
                          pop: str = PDA_POP_SYMBOL) -> PDAResult:
    stack: List[str] = []
    for i, s in enumerate(seq):
        if not s.startswith("state="):
            continue
        if s == push:
            stack.append(s)
        elif s == pop:
            if not stack:
                return PDAResult(False, f"pop without matching push at position {i}")
            stack.pop()
    if stack:
        return PDAResult(False, f"final stack not empty ({len(stack)} unmatched pushes)")
    return PDAResult(True, "accepted")


def _control_state(symbol: str, current: str) -> str:
    if not symbol.startswith("proto="):
        return current
    proto = symbol[len("proto="):]
    if proto == "tcp":
        return "TCP"
    if proto == "udp":
        return "UDP"
    return "OTHER"


def validate_pda_sequence_with_trace(seq: Sequence[str], push: str = PDA_PUSH_SYMBOL,
                                     pop: str = PDA_POP_SYMBOL) -> PDATraceResult:
    stack: List[str] = []
    steps: List[PDAStep] = []
    control = "Start"
    for s in seq:
        op = "NO_OP"
        nxt = _control_state(s, control)
        if s.startswith("state="):
            if s == push:
                stack.append(s)
                op = "PUSH"
            elif s == pop:
                if not stack:
                    steps.append(PDAStep("POP_ERROR", s, tuple(stack), control, nxt))
                    return PDATraceResult(False, steps)
                stack.pop()
                op = "POP"
        steps.append(PDAStep(op, s, tuple(stack), control, nxt))
        control = nxt
    return PDATraceResult(not stack, steps)


class PDA:
    class Transition(NamedTuple):
        input: str  # symbol or ε
        pop: str  # stack symbol or ε
        push: Tuple[str, ...]  # push[0] ends up on top
        target: int

    class State:
        __slots__ = ("name", "accepting", "transitions")
        def __init__(self, name: str, accepting: bool = False):
            self.name: str = name
            self.accepting: bool = accepting
            self.transitions: List[PDA.Transition] = []

    def __init__(self):
        self.states: List[PDA.State] = []
        self.start: int = 0
        self.index: Dict[str, int] = {}

    def add_state(self, name: str, accepting: bool = False) -> int:
        if name in self.index:
            q = self.index[name]
            self.states[q].accepting = self.states[q].accepting or accepting
            return q
        q = len(self.states)
        self.states.append(PDA.State(name, accepting))
        self.index[name] = q
        return q

    def add_transition(self, src: str, input: str, pop: str, push: Sequence[str], dst: str) -> None:
        s = self.add_state(src)
        t = self.add_state(dst)
        self.states[s].transitions.append(PDA.Transition(input, pop, tuple(push), t))


def simulate_pda(pda: PDA, symbols: Sequence[str], max_steps: int = PDA_MAX_STEPS) -> PDATraceResult:
    """
    Breadth-first search over (state, input position, stack) configurations.

    Accepts when the whole input is consumed in an accepting state. If no
    accepting run is found within `max_steps` expansions, returns the trace
    of the configuration that consumed the most input.
    """
    if not pda.states:
        return PDATraceResult(False, [])
    symbols = list(symbols)
    queue = deque([(pda.start, 0, (), [])])
    seen = {(pda.start, 0, ())}
    best_consumed = 0
    best_trace: List[PDAStep] = []
    steps = 0

    while queue:
        steps += 1
        if steps > max_steps:
            break
        q, pos, stack, trace = queue.popleft()
        if pos > best_consumed:
            best_consumed, best_trace = pos, trace
        state = pda.states[q]
        if pos == len(symbols) and state.accepting:
            return PDATraceResult(True, trace)

        for tr in state.transitions:
            consumes = tr.input != EPSILON
            if consumes and (pos >= len(symbols) or symbols[pos] != tr.input):
                continue
            if tr.pop != EPSILON and (not stack or stack[0] != tr.pop):
                continue
            nstack = stack[1:] if tr.pop != EPSILON else stack
            nstack = tr.push + nstack
            npos = pos + 1 if consumes else pos
            key = (tr.target, npos, nstack)
            if key in seen:
                continue
            seen.add(key)
            if tr.push:
                op = "PUSH"
            elif tr.pop != EPSILON:
                op = "POP"
            else:
                op = "NO_OP"
            step = PDAStep(op, tr.input, nstack, state.name, pda.states[tr.target].name)
            queue.append((tr.target, npos, nstack, trace + [step]))

    return PDATraceResult(False, best_trace)


def grammar_to_pda(grammar: CNFGrammar) -> PDA:
    """
    Expand/match PDA for a CNF grammar:
      q0   --ε, ε  -> S Z0--> loop
      loop --ε, A  -> B C --> loop    for A -> B C
      loop --a, A  -> ε   --> loop    for A -> a
      loop --ε, A  -> ε   --> loop    for A -> ε
      loop --ε, Z0 -> ε   --> accept
    """
    pda = PDA()
    pda.start = pda.add_state("q0")
    pda.add_state("loop")
    pda.add_state("accept", accepting=True)
    pda.add_transition("q0", EPSILON, EPSILON, (grammar.start, BOTTOM), "loop")
    for lhs in grammar.nonterminals:
        for alt in grammar.alternatives(lhs):
            if not alt:
                pda.add_transition("loop", EPSILON, lhs, (), "loop")
            elif len(alt) == 1:
                pda.add_transition("loop", alt[0], lhs, (), "loop")
            else:
                pda.add_transition("loop", EPSILON, lhs, alt, "loop")
    pda.add_transition("loop", EPSILON, BOTTOM, (), "accept")
    return pda

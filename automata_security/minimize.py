#!/usr/bin/env python3
"""
DFA minimization by partition refinement (Moore/Hopcroft style).

- Start from two blocks: accepting and rejecting states (empty blocks omitted)
- Work queue of (block, symbol) splitters, seeded with every block x symbol
- A splitter (P, a) splits every block B into B ∩ pre_a(P) and B \\ pre_a(P);
  both halves are re-queued on every symbol until nothing changes
- One state per final block; counts are summed, `accepting` is re-voted on
  the summed counts and transitions come from the block's first member

Because the initial partition separates accepting from rejecting states and
refinement never merges blocks, every block is vote-homogeneous, so the
re-vote always agrees with the members' own flags.
"""
from __future__ import annotations
from collections import defaultdict, deque
from typing import Dict, List, Tuple

from .dfa import DFA


def _inverse(dfa: DFA) -> Dict[str, Dict[int, List[int]]]:
    """inv[a][t] = states s with delta(s, a) == t, ascending."""
    inv: Dict[str, Dict[int, List[int]]] = {a: defaultdict(list) for a in dfa.alphabet}
    for s, state in enumerate(dfa.states):
        for a, t in state.transitions.items():
            inv.setdefault(a, defaultdict(list))[t].append(s)
    return inv


def refine(dfa: DFA) -> Tuple[List[List[int]], List[int]]:
    """
    Compute the coarsest stable partition of dfa's states.

    Returns (blocks, block_of) where blocks[i] lists member states in ascending
    order and block_of[s] is the index of the block containing s.
    """
    n = len(dfa.states)
    accepting = [s for s in range(n) if dfa.states[s].accepting]
    rejecting = [s for s in range(n) if not dfa.states[s].accepting]

    blocks: List[List[int]] = [b for b in (accepting, rejecting) if b]
    if not blocks:
        blocks = [[0]]
    block_of: List[int] = [0] * max(n, 1)
    for idx, block in enumerate(blocks):
        for s in block:
            block_of[s] = idx

    inv = _inverse(dfa)
    work = deque((idx, a) for idx in range(len(blocks)) for a in dfa.alphabet)

    while work:
        part, a = work.popleft()
        # States whose a-transition leads into `part`
        involved = set()
        pre = inv.get(a, {})
        for t in blocks[part]:
            involved.update(pre.get(t, ()))
        if not involved:
            continue

        touched: Dict[int, int] = defaultdict(int)
        for s in involved:
            touched[block_of[s]] += 1

        for idx in sorted(touched):
            block = blocks[idx]
            if touched[idx] == len(block):
                continue
            subset = [s for s in block if s in involved]
            remainder = [s for s in block if s not in involved]
            blocks[idx] = subset
            new_index = len(blocks)
            blocks.append(remainder)
            for s in remainder:
                block_of[s] = new_index
            for sym in dfa.alphabet:
                work.append((idx, sym))
                work.append((new_index, sym))

    return blocks, block_of


def minimize(dfa: DFA) -> DFA:
    """Return a new DFA with the minimum number of states and the same classify()."""
    minimized = DFA()
    minimized.alphabet = list(dfa.alphabet)
    if not dfa.states:
        minimized.start = dfa.start
        return minimized

    blocks, block_of = refine(dfa)

    for block in blocks:
        positive = sum(dfa.states[s].positive_count for s in block)
        negative = sum(dfa.states[s].negative_count for s in block)
        state = DFA.State(positive, negative)
        rep = dfa.states[block[0]]
        state.transitions = {a: block_of[t] for a, t in rep.transitions.items()}
        minimized.states.append(state)

    minimized.start = block_of[dfa.start]
    minimized.sink = block_of[dfa.sink] if dfa.sink is not None else None
    return minimized

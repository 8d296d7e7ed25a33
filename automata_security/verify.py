#!/usr/bin/env python3
"""
Cross-checks between a DFA and the CNF grammar synthesized from it.

- EarleyRecognizer: lark's Earley parser over separator-joined symbols
- enumerate_sentences: the grammar's sentences, shortest first
- check_consistency: compares classify() with the grammar walker, the Earley
  recognizer and the CNF-derived PDA on given sequences, and requires every
  enumerated sentence to be accepted by the DFA
"""
from __future__ import annotations
from collections import deque
from typing import Iterable, List, NamedTuple, Optional, Sequence, Set, Tuple

from lark import Lark
from lark.exceptions import LarkError

from .chomsky import TOKEN_SEP, CNFGrammar, GrammarWalker, synthesize
from .config import VERIFY_MAX_LENGTH, VERIFY_SENTENCES
from .dfa import DFA
from .pda import grammar_to_pda, simulate_pda


class Mismatch(NamedTuple):
    sequence: Tuple[str, ...]
    dfa_verdict: bool
    grammar_verdict: bool
    source: str  # walker | earley | pda | enumerate


class EarleyRecognizer:
    def __init__(self, grammar: CNFGrammar):
        self.nullable = grammar.nullable
        text, self.start = grammar.to_lark()
        self.parser: Optional[Lark] = None
        if text:
            self.parser = Lark(text, parser="earley", start=self.start)

    def accepts(self, symbols: Iterable[str]) -> bool:
        symbols = list(symbols)
        if not symbols:
            return self.nullable
        if self.parser is None or any(TOKEN_SEP in a for a in symbols):
            return False
        try:
            self.parser.parse("".join(a + TOKEN_SEP for a in symbols))
        except LarkError:
            return False
        return True


def grammar_accepts(grammar: CNFGrammar, symbols: Iterable[str]) -> bool:
    return EarleyRecognizer(grammar).accepts(symbols)


def enumerate_sentences(grammar: CNFGrammar, limit: int = VERIFY_SENTENCES,
                        max_length: int = VERIFY_MAX_LENGTH) -> List[Tuple[str, ...]]:
    """
    Up to `limit` distinct sentences of the grammar, in order of length, none
    longer than `max_length`. Only productive nonterminals are expanded.
    """
    out: List[Tuple[str, ...]] = []
    if limit <= 0 or not grammar.states:
        return out
    keep = grammar.productive()
    seen: Set[Tuple[str, ...]] = set()
    queue = deque([(grammar.start, ())])

    def emit(sentence: Tuple[str, ...]) -> None:
        if sentence not in seen:
            seen.add(sentence)
            out.append(sentence)

    if grammar.nullable:
        emit(())
    while queue and len(out) < limit:
        lhs, prefix = queue.popleft()
        for alt in grammar.alternatives(lhs):
            if not alt:
                continue
            if len(alt) == 1:
                emit(prefix + alt)
            else:
                terminal = grammar.helpers.get(alt[0])
                if terminal is not None and alt[1] in keep and len(prefix) + 1 < max_length:
                    queue.append((alt[1], prefix + (terminal,)))
    return out[:limit]


def check_consistency(dfa: DFA, sequences: Iterable[Sequence[str]] = (),
                      sentences: int = VERIFY_SENTENCES) -> List[Mismatch]:
    grammar = synthesize(dfa)
    walker = GrammarWalker(grammar)
    earley = EarleyRecognizer(grammar)
    pda = grammar_to_pda(grammar)

    mismatches: List[Mismatch] = []
    for seq in sequences:
        seq = tuple(seq)
        expected = dfa.classify(seq)
        verdicts = (
            ("walker", walker.classify(seq)),
            ("earley", earley.accepts(seq)),
            ("pda", simulate_pda(pda, seq).ok),
        )
        for source, verdict in verdicts:
            if verdict != expected:
                mismatches.append(Mismatch(seq, expected, verdict, source))

    for seq in enumerate_sentences(grammar, sentences):
        if not dfa.classify(seq):
            mismatches.append(Mismatch(seq, False, True, "enumerate"))
    return mismatches

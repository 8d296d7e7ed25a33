#!/usr/bin/env python3
"""
Chomsky Normal Form (CNF) grammar synthesized from a (minimized) DFA.

Naming is a pure function of the automaton passed in:
- the start state is `S`, every other state `A0, A1, ...` in state-index order
- one helper `Ti -> symbol_i` per alphabet symbol, i = position in the sorted alphabet

Productions, per state A and transition A --a--> B:
- A -> Ti B          always (Ti the helper for a)
- A -> a             when B is accepting
- S -> ε             when the start state accepts the empty sequence

Structured alternatives are tuples shaped by CNF itself: () is ε, (a,) is a
terminal and (Ti, B) are two nonterminal names, so a terminal that happens
to be spelled like a name is never confused with one.

Exposes:
    * class CNFGrammar           (to_text, to_lark)
    * synthesize(dfa) -> CNFGrammar
    * parse_cnf_text(text) -> CNFGrammar
    * class GrammarWalker         (derive, classify_with_reason)
"""
from __future__ import annotations
import re
import string
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Set, Tuple

from .dfa import DFA

EPSILON = "ε"
START = "S"

Alternative = Tuple[str, ...]

_NAME_RE = re.compile(r"^(S|A\d+|T\d+)$")
_HELPER_RE = re.compile(r"^T\d+$")
_HEX4_RE = re.compile(r"[0-9a-fA-F]{4}")
_ESCAPES = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\t": "\\t", "\r": "\\r"}
_UNESCAPES = {"n": "\n", "t": "\t", "r": "\r"}


def needs_quotes(symbol: str) -> bool:
    if not symbol or symbol == EPSILON or _NAME_RE.match(symbol):
        return True
    return any(ch.isspace() or ch in '"\\|,' for ch in symbol)


def _escape(ch: str) -> str:
    if ch in _ESCAPES:
        return _ESCAPES[ch]
    # line separators other than \n would split the line on read-back
    if ch != " " and ch.isspace():
        return "\\u%04x" % ord(ch)
    return ch


def quote_terminal(symbol: str) -> str:
    if not needs_quotes(symbol):
        return symbol
    return '"' + "".join(_escape(ch) for ch in symbol) + '"'


# Appended to every terminal in lark grammars and parser input; a symbol
# containing it can never be recognized.
TOKEN_SEP = "\x1f"
_LARK_SAFE = frozenset(string.ascii_letters + string.digits + "=_-.:/")


def lark_literal(symbol: str) -> str:
    """lark string literal for `symbol` + TOKEN_SEP; anything unusual is \\u-escaped."""
    out = []
    for ch in symbol + TOKEN_SEP:
        if ch in _LARK_SAFE:
            out.append(ch)
        elif ord(ch) > 0xFFFF:
            out.append("\\U%08x" % ord(ch))
        else:
            out.append("\\u%04x" % ord(ch))
    return '"' + "".join(out) + '"'


class CNFGrammar:
    def __init__(self, start: str, states: List[str], helpers: Dict[str, str],
                 productions: Dict[str, List[Alternative]]):
        self.start = start
        self.states = states
        self.helpers = helpers
        self.productions = productions

    @property
    def terminals(self) -> List[str]:
        return list(self.helpers.values())

    @property
    def nonterminals(self) -> List[str]:
        return list(self.states) + list(self.helpers)

    def alternatives(self, lhs: str) -> List[Alternative]:
        if lhs in self.helpers:
            return [(self.helpers[lhs],)]
        return self.productions.get(lhs, [])

    def _render(self, alt: Alternative) -> str:
        if not alt:
            return EPSILON
        if len(alt) == 1:
            return quote_terminal(alt[0])
        return " ".join(alt)

    def to_text(self) -> str:
        lines = ["# Chomsky Normal Form grammar (A -> Ti B | a, Ti -> a)"]
        lines.append(f"Start: {self.start}")
        lines.append("Nonterminals: " + ", ".join(self.nonterminals))
        lines.append("Terminals: " + ", ".join(quote_terminal(t) for t in self.terminals))
        lines.append("Productions:")
        for helper, terminal in self.helpers.items():
            lines.append(f"  {helper} -> {quote_terminal(terminal)}")
        for lhs in self.states:
            alts = self.productions.get(lhs)
            if not alts:
                continue
            lines.append(f"  {lhs} -> " + " | ".join(self._render(a) for a in alts))
        return "\n".join(lines) + "\n"

    @property
    def nullable(self) -> bool:
        return () in self.productions.get(self.start, [])

    def productive(self) -> Set[str]:
        """
        Nonterminals deriving at least one non-empty terminal string.

        ε alternatives are ignored: in a DFA-shaped grammar only the start may
        derive ε, and `A -> Ti S` with `S -> ε` is always shadowed by `A -> a`.
        """
        found: Set[str] = set(self.helpers)
        changed = True
        while changed:
            changed = False
            for lhs in self.states:
                if lhs in found:
                    continue
                for alt in self.productions.get(lhs, []):
                    if len(alt) == 1 or (len(alt) == 2 and alt[0] in found and alt[1] in found):
                        found.add(lhs)
                        changed = True
                        break
        return found

    def to_lark(self) -> Tuple[str, str]:
        """
        Grammar text for lark's Earley parser and the name of its start rule.

        Nonterminals become rules n0, n1, ... (nonterminals order) and every
        terminal literal carries a trailing TOKEN_SEP, so the input to parse
        is the symbols each followed by TOKEN_SEP. ε alternatives and
        unproductive nonterminals are left out; the text is empty when the
        start derives no non-empty string.
        """
        keep = self.productive()
        rule = {nt: f"n{i}" for i, nt in enumerate(self.nonterminals)}
        if self.start not in keep:
            return "", rule.get(self.start, "n0")

        lines: List[str] = []
        for lhs in self.nonterminals:
            if lhs not in keep:
                continue
            exps = []
            for alt in self.alternatives(lhs):
                if len(alt) == 1:
                    exps.append(lark_literal(alt[0]))
                elif len(alt) == 2 and alt[0] in keep and alt[1] in keep:
                    exps.append(f"{rule[alt[0]]} {rule[alt[1]]}")
            lines.append(f"{rule[lhs]}: " + "\n    | ".join(exps))
        return "\n".join(lines) + "\n", rule[self.start]


def synthesize(dfa: DFA) -> CNFGrammar:
    """Map DFA states to nonterminals and transitions to CNF productions."""
    n = len(dfa.states)
    names: Dict[int, str] = {}
    if n:
        names[dfa.start] = START
    k = 0
    for i in range(n):
        if i == dfa.start:
            continue
        names[i] = f"A{k}"
        k += 1

    symbols = set(dfa.alphabet)
    for state in dfa.states:
        symbols.update(state.transitions)
    helpers = {f"T{i}": a for i, a in enumerate(sorted(symbols))}
    helper_of = {a: t for t, a in helpers.items()}

    order = ([dfa.start] if n else []) + [i for i in range(n) if i != dfa.start]
    productions: Dict[str, List[Alternative]] = {}
    for i in order:
        state = dfa.states[i]
        alts: Dict[Alternative, None] = {}
        for a in sorted(state.transitions):
            target = state.transitions[a]
            alts[(helper_of[a], names[target])] = None
            if dfa.states[target].accepting:
                alts[(a,)] = None
        if i == dfa.start and state.accepting:
            alts[()] = None
        productions[names[i]] = list(alts)

    return CNFGrammar(START, [names[i] for i in order], helpers, productions)


def _split_alternatives(rhs: str) -> List[List[Tuple[str, bool]]]:
    """Tokenize a right-hand side into alternatives of (token, was_quoted)."""
    alts: List[List[Tuple[str, bool]]] = [[]]
    i = 0
    while i < len(rhs):
        ch = rhs[i]
        if ch.isspace():
            i += 1
        elif ch == "|":
            alts.append([])
            i += 1
        elif ch == '"':
            buf = []
            j = i + 1
            while j < len(rhs) and rhs[j] != '"':
                if rhs[j] == "\\" and rhs[j + 1:j + 2] == "u" and _HEX4_RE.match(rhs, j + 2):
                    buf.append(chr(int(rhs[j + 2:j + 6], 16)))
                    j += 6
                    continue
                if rhs[j] == "\\" and j + 1 < len(rhs):
                    buf.append(_UNESCAPES.get(rhs[j + 1], rhs[j + 1]))
                    j += 2
                    continue
                buf.append(rhs[j])
                j += 1
            if j >= len(rhs):
                raise ValueError(f"unterminated quoted terminal in {rhs!r}")
            alts[-1].append(("".join(buf), True))
            i = j + 1
        else:
            j = i
            while j < len(rhs) and not rhs[j].isspace() and rhs[j] not in '|"':
                j += 1
            alts[-1].append((rhs[i:j], False))
            i = j
    return alts


def parse_cnf_text(text: str) -> CNFGrammar:
    """Read back the textual form produced by CNFGrammar.to_text()."""
    start: Optional[str] = None
    states: Dict[str, None] = {}
    helpers: Dict[str, str] = {}
    productions: Dict[str, List[Alternative]] = {}

    for lineno, raw in enumerate(text.split("\n"), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("Start:"):
            start = line[len("Start:"):].strip()
            continue
        if "->" not in line or line.startswith(("Nonterminals:", "Terminals:", "Productions:")):
            continue
        lhs, rhs = line.split("->", 1)
        lhs = lhs.strip()
        alts = _split_alternatives(rhs)

        if _HELPER_RE.match(lhs):
            if len(alts) != 1 or len(alts[0]) != 1:
                raise ValueError(f"line {lineno}: helper {lhs} must map to exactly one terminal")
            helpers[lhs] = alts[0][0][0]
            continue

        states.setdefault(lhs, None)
        parsed = productions.setdefault(lhs, [])
        for alt in alts:
            if len(alt) == 1 and alt[0] == (EPSILON, False):
                parsed.append(())
            elif len(alt) == 1:
                parsed.append((alt[0][0],))
            elif len(alt) == 2 and not alt[0][1] and not alt[1][1]:
                parsed.append((alt[0][0], alt[1][0]))
                states.setdefault(alt[1][0], None)
            else:
                raise ValueError(f"line {lineno}: not a CNF alternative: {alt!r}")

    if start is None:
        start = START if START in states else next(iter(states), START)
    if start in states:
        ordered = [start] + [s for s in states if s != start]
    else:
        ordered = list(states)
    return CNFGrammar(start, ordered, helpers, productions)


class Derivation(NamedTuple):
    accepted: bool
    forms: List[str]  # sentential forms, starting with the start symbol
    reason: str


class GrammarWalker:
    """
    Recognize sequences by walking a DFA-shaped CNF grammar, always choosing
    the production that matches the next symbol.
    """

    def __init__(self, grammar: CNFGrammar):
        self.grammar = grammar
        self.start = grammar.start
        self.binary: Dict[str, Dict[str, str]] = {}
        self.unit: Dict[str, Set[str]] = {}
        self.helper_of = {t: h for h, t in grammar.helpers.items()}
        self.nullable = False
        for lhs in grammar.states:
            for alt in grammar.productions.get(lhs, []):
                if not alt:
                    if lhs == self.start:
                        self.nullable = True
                elif len(alt) == 1:
                    self.unit.setdefault(lhs, set()).add(alt[0])
                else:
                    terminal = grammar.helpers.get(alt[0])
                    if terminal is not None:
                        self.binary.setdefault(lhs, {})[terminal] = alt[1]

    def derive(self, symbols: Iterable[str]) -> Derivation:
        """
        Leftmost derivation of `symbols`, one sentential form per rewrite.

        Each non-final symbol a takes two steps, `A => Ti B => a B`; the final
        symbol uses `A => a`. Terminals are written the way to_text() writes
        them. On rejection the forms derived so far are kept.
        """
        symbols = list(symbols)
        if not self.grammar.states:
            return Derivation(False, [], "empty grammar")
        forms = [self.start]
        if not symbols:
            if self.nullable:
                forms.append(EPSILON)
                return Derivation(True, forms, "accepted")
            return Derivation(False, forms, "start does not derive ε")

        prefix: List[str] = []
        cur = self.start
        for i, a in enumerate(symbols[:-1]):
            nxt = self.binary.get(cur, {}).get(a)
            if nxt is None:
                return Derivation(False, forms, f"no transition on '{a}' from '{cur}' at position {i}")
            forms.append(" ".join(prefix + [self.helper_of[a], nxt]))
            prefix.append(quote_terminal(a))
            forms.append(" ".join(prefix + [nxt]))
            cur = nxt
        a = symbols[-1]
        if a in self.unit.get(cur, ()):
            forms.append(" ".join(prefix + [quote_terminal(a)]))
            return Derivation(True, forms, "accepted")
        return Derivation(False, forms, f"no terminal production for '{a}' from '{cur}'")

    def classify_with_reason(self, symbols: Sequence[str]) -> Tuple[bool, str]:
        d = self.derive(symbols)
        return d.accepted, d.reason

    def classify(self, symbols: Iterable[str]) -> bool:
        return self.derive(symbols).accepted

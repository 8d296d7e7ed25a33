import pytest

from automata_security.chomsky import (
    EPSILON,
    GrammarWalker,
    lark_literal,
    needs_quotes,
    parse_cnf_text,
    quote_terminal,
    synthesize,
)
from automata_security.dataset import make_sequence
from automata_security.dfa import DFA
from automata_security.pta import PTA


def _minimized(samples):
    pta = PTA.from_samples(make_sequence(str(i), s, l) for i, (s, l) in enumerate(samples))
    return DFA.from_pta(pta).minimize()


def _alternatives(text):
    for line in text.splitlines():
        line = line.strip()
        if "->" not in line or not line[:1] in ("S", "A", "T"):
            continue
        for alt in line.split("->", 1)[1].split("|"):
            yield alt.strip()


def test_single_symbol_grammar_shape():
    text = _minimized([(["x"], True)]).to_chomsky()
    alts = list(_alternatives(text))
    assert "x" in alts
    assert any(
        len(a.split()) == 2 and all(t[0].isupper() for t in a.split())
        for a in alts
    )
    assert "Start: S" in text
    assert "  T0 -> x" in text
    assert "  S -> T0 A0 | x" in text


def test_start_derives_epsilon_for_accepted_empty_sequence():
    text = _minimized([([], True)]).to_chomsky()
    assert "Start: S" in text
    assert "S -> ε" in text


def test_terminals_are_quoted_when_needed():
    text = _minimized([(["hello world"], True), (["simple"], False)]).to_chomsky()
    assert '"hello world"' in text
    assert "simple" in text
    assert '"simple"' not in text


@pytest.mark.parametrize("symbol", ["", EPSILON, "S", "A12", "T3", "a b", "x|y", "x,y", 'q"q', "back\\slash"])
def test_needs_quotes(symbol):
    assert needs_quotes(symbol)


@pytest.mark.parametrize("symbol", ["proto=tcp", "state=S0", "Start", "A", "Tx"])
def test_plain_terminals(symbol):
    assert not needs_quotes(symbol)
    assert quote_terminal(symbol) == symbol


def test_quote_escapes_backslash_and_quote():
    assert quote_terminal('a"b\\c') == '"a\\"b\\\\c"'
    assert quote_terminal("tab\there") == '"tab\\there"'


def test_branching_productions_use_helpers():
    dfa = _minimized([(["a", "b"], True), (["a", "c"], False), (["d"], True)])
    grammar = synthesize(dfa)
    assert grammar.terminals == ["a", "b", "c", "d"]
    helper_of = {t: h for h, t in grammar.helpers.items()}
    text = grammar.to_text()
    for sym in ("a", "b", "c", "d"):
        assert f"  {helper_of[sym]} -> {sym}" in text
    assert f"{helper_of['b']} " in text
    assert f"{helper_of['c']} " in text


def test_names_follow_state_order():
    dfa = _minimized([(["a"], True), (["b", "a"], False)])
    grammar = synthesize(dfa)
    assert grammar.states[0] == "S"
    assert grammar.states[1:] == [f"A{i}" for i in range(len(dfa.states) - 1)]
    assert list(grammar.helpers) == [f"T{i}" for i in range(len(dfa.alphabet))]


def test_text_parses_back_to_same_structure():
    dfa = _minimized([
        (["hello world"], True),
        (["S", "ε"], True),
        (['q"uote', "x|y"], False),
        ([], True),
    ])
    grammar = synthesize(dfa)
    parsed = parse_cnf_text(grammar.to_text())
    assert parsed.start == grammar.start
    assert parsed.helpers == grammar.helpers
    for lhs in grammar.states:
        assert parsed.productions.get(lhs, []) == grammar.productions[lhs]


@pytest.mark.parametrize("ch", ["\x0b", "\x0c", "\x1c", "\x1d", "\x1e", "\x85", "\u2028", "\u2029", "\u00a0"])
def test_line_breaking_whitespace_survives_parse_back(ch):
    symbol = f"a{ch}b"
    dfa = _minimized([([symbol], True), ([symbol, "c"], False)])
    text = dfa.to_chomsky()
    assert ch not in text
    parsed = parse_cnf_text(text)
    assert symbol in parsed.terminals
    walker = GrammarWalker(parsed)
    assert walker.classify([symbol])
    assert not walker.classify([symbol, "c"])


def test_backslash_u_in_symbol_is_not_unescaped():
    grammar = parse_cnf_text(synthesize(_minimized([(["x\\u0041"], True)])).to_text())
    assert grammar.terminals == ["x\\u0041"]


def test_parse_rejects_unterminated_quote():
    with pytest.raises(ValueError):
        parse_cnf_text('Start: S\n  S -> "oops\n')


def test_parse_rejects_non_cnf_alternative():
    with pytest.raises(ValueError):
        parse_cnf_text("Start: S\n  S -> T0 A0 A1\n")


def test_walker_reasons():
    dfa = _minimized([(["a", "b"], True)])
    walker = GrammarWalker(synthesize(dfa))
    assert walker.classify_with_reason(["a", "b"]) == (True, "accepted")
    ok, reason = walker.classify_with_reason(["b", "b"])
    assert not ok and reason.startswith("no terminal production for 'b'")
    ok, reason = walker.classify_with_reason(["z", "b"])
    assert not ok and reason == "no transition on 'z' from 'S' at position 0"
    assert walker.classify_with_reason([]) == (False, "start does not derive ε")


def test_walker_on_empty_grammar():
    walker = GrammarWalker(parse_cnf_text(""))
    assert walker.classify_with_reason(["a"]) == (False, "empty grammar")


def test_walker_matches_dfa_after_parse_back():
    dfa = _minimized([(["a"], True), (["a", "b"], True), (["b"], False), ([], True)])
    walker = GrammarWalker(parse_cnf_text(dfa.to_chomsky()))
    for seq in ([], ["a"], ["a", "b"], ["b"], ["a", "b", "b"], ["c"], ["a", "c"]):
        assert walker.classify(seq) == dfa.classify(seq), seq


def test_productive_excludes_sink():
    dfa = _minimized([(["x"], True)])
    grammar = synthesize(dfa)
    productive = grammar.productive()
    assert "S" in productive
    others = [i for i in range(len(dfa.states)) if i != dfa.start]
    sink_name = f"A{others.index(dfa.sink)}"
    assert sink_name not in productive


def test_lark_text_and_literals():
    assert lark_literal("proto=tcp") == '"proto=tcp\\u001f"'
    assert lark_literal('a "b"') == '"a\\u0020\\u0022b\\u0022\\u001f"'
    text, start = synthesize(_minimized([(["x"], True)])).to_lark()
    assert start == "n0"
    assert text.startswith("n0: ")
    assert '"x\\u001f"' in text


def test_lark_text_empty_when_only_epsilon():
    text, _ = synthesize(_minimized([([], True)])).to_lark()
    assert text == ""


def test_derivation_lists_leftmost_sentential_forms():
    dfa = _minimized([(["x", "y"], True), (["x"], False)])
    grammar = synthesize(dfa)
    d = GrammarWalker(grammar).derive(["x", "y"])
    assert d.accepted and d.reason == "accepted"
    helper_x = [h for h, t in grammar.helpers.items() if t == "x"][0]
    assert d.forms[0] == "S"
    assert d.forms[1].startswith(helper_x + " A")
    nxt = d.forms[1].split()[1]
    assert d.forms[2] == f"x {nxt}"
    assert d.forms[-1] == "x y"
    assert len(d.forms) == 4


def test_derivation_quotes_terminals_and_epsilon():
    walker = GrammarWalker(synthesize(_minimized([([], True), (["S"], True)])))
    assert walker.derive([]).forms == ["S", EPSILON]
    assert walker.derive(["S"]).forms == ["S", '"S"']


def test_derivation_keeps_partial_forms_on_rejection():
    walker = GrammarWalker(synthesize(_minimized([(["a", "b"], True)])))
    d = walker.derive(["a", "z"])
    assert not d.accepted
    assert d.reason.startswith("no terminal production for 'z'")
    assert d.forms[0] == "S" and d.forms[-1].startswith("a ")
    assert GrammarWalker(parse_cnf_text("")).derive(["a"]).forms == []

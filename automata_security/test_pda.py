from automata_security.chomsky import EPSILON, synthesize
from automata_security.dataset import make_sequence
from automata_security.dfa import DFA
from automata_security.pda import (
    PDA,
    grammar_to_pda,
    simulate_pda,
    validate_pda_sequence,
    validate_pda_sequence_with_trace,
)
from automata_security.pta import PTA


def test_balanced_connection_states():
    res = validate_pda_sequence(["state=S0", "proto=tcp", "state=S0", "state=SF", "state=SF"])
    assert res.ok and res.reason == "accepted"


def test_pop_without_push():
    res = validate_pda_sequence(["proto=tcp", "state=SF"])
    assert not res.ok
    assert res.reason == "pop without matching push at position 1"


def test_unmatched_push():
    res = validate_pda_sequence(["state=S0", "state=S0", "state=SF"])
    assert not res.ok
    assert res.reason == "final stack not empty (1 unmatched pushes)"


def test_other_states_are_ignored():
    assert validate_pda_sequence(["state=REJ", "service=dns", "state=RSTO"]).ok


def test_custom_push_pop_symbols():
    assert validate_pda_sequence(["state=OPEN", "state=CLOSE"], push="state=OPEN", pop="state=CLOSE").ok


def test_trace_ops_and_control_states():
    res = validate_pda_sequence_with_trace(["proto=tcp", "state=S0", "proto=udp", "state=SF", "proto=icmp"])
    assert res.ok
    assert [s.op for s in res.steps] == ["NO_OP", "PUSH", "NO_OP", "POP", "NO_OP"]
    assert [s.next_state for s in res.steps] == ["TCP", "TCP", "UDP", "UDP", "OTHER"]
    assert res.steps[0].current_state == "Start"
    assert res.steps[1].stack_after == ("state=S0",)
    assert res.steps[3].stack_after == ()


def test_trace_stops_on_pop_error():
    res = validate_pda_sequence_with_trace(["state=SF", "state=S0"])
    assert not res.ok
    assert len(res.steps) == 1
    assert res.steps[0].op == "POP_ERROR"


def test_hand_built_pda_for_balanced_parens():
    pda = PDA()
    pda.start = pda.add_state("q0")
    pda.add_state("done", accepting=True)
    pda.add_transition("q0", EPSILON, EPSILON, ("Z",), "q")
    pda.add_transition("q", "(", EPSILON, ("X",), "q")
    pda.add_transition("q", ")", "X", (), "q")
    pda.add_transition("q", EPSILON, "Z", (), "done")

    assert simulate_pda(pda, list("(())")).ok
    assert simulate_pda(pda, list("()()")).ok
    assert simulate_pda(pda, []).ok
    assert not simulate_pda(pda, list("(()")).ok
    assert not simulate_pda(pda, list("())")).ok


def test_simulate_returns_longest_trace_on_reject():
    pda = PDA()
    pda.start = pda.add_state("q")
    pda.add_state("f", accepting=True)
    pda.add_transition("q", "a", EPSILON, (), "q")
    pda.add_transition("q", "b", EPSILON, (), "f")
    res = simulate_pda(pda, ["a", "a", "c"])
    assert not res.ok
    assert len(res.steps) == 2


def test_empty_pda_rejects():
    assert not simulate_pda(PDA(), []).ok


def _minimized(samples):
    pta = PTA.from_samples(make_sequence(str(i), s, l) for i, (s, l) in enumerate(samples))
    return DFA.from_pta(pta).minimize()


def test_grammar_pda_agrees_with_dfa():
    dfa = _minimized([
        (["proto=tcp", "state=S0"], True),
        (["proto=tcp"], False),
        (["proto=udp", "service=dns"], True),
        ([], True),
    ])
    pda = grammar_to_pda(synthesize(dfa))
    for seq in ([], ["proto=tcp"], ["proto=tcp", "state=S0"], ["proto=udp", "service=dns"],
                ["proto=udp"], ["proto=tcp", "state=S0", "state=S0"], ["icmp"]):
        assert simulate_pda(pda, seq).ok == dfa.classify(seq), seq


def test_grammar_pda_shape():
    pda = grammar_to_pda(synthesize(_minimized([(["a"], True)])))
    assert [s.name for s in pda.states] == ["q0", "loop", "accept"]
    assert pda.states[pda.index["accept"]].accepting
    first = pda.states[pda.start].transitions[0]
    assert first.push == ("S", "Z0")

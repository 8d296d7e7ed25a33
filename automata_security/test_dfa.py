import pytest

from automata_security.dataset import make_sequence
from automata_security.dfa import DFA, AutomatonError
from automata_security.pta import PTA


def _dfa(samples):
    return DFA.from_pta(PTA.from_samples(make_sequence(str(i), s, l) for i, (s, l) in enumerate(samples)))


def test_classify_known_and_unknown_symbols():
    dfa = _dfa([(["x"], True), (["y"], False)])
    assert dfa.classify(["x"]) is True
    assert dfa.classify(["y"]) is False
    assert dfa.classify(["z"]) is False
    assert dfa.classify(["x", "x"]) is False
    assert dfa.classify([]) is False


def test_majority_vote_and_ties():
    dfa = _dfa([(["a"], True), (["a"], True), (["a"], False), (["b"], True), (["b"], False)])
    assert dfa.classify(["a"]) is True
    # tie rejects
    assert dfa.classify(["b"]) is False


def test_copy_is_one_to_one_plus_sink():
    pta = PTA.from_samples([make_sequence("1", ["a", "b"], True), make_sequence("2", ["c"], False)])
    dfa = DFA.from_pta(pta)
    assert len(dfa.states) == len(pta.nodes) + 1
    assert dfa.sink == len(pta.nodes)
    assert dfa.alphabet == ["a", "b", "c"]
    for i, node in enumerate(pta.nodes):
        for a, t in node.next.items():
            assert dfa.states[i].transitions[a] == t
            assert dfa.states[i].positive_count == node.positive_count


def test_completion_adds_rejecting_sink_with_self_loops():
    dfa = _dfa([(["a"], True), (["b", "a"], False)])
    assert dfa.is_complete()
    sink = dfa.states[dfa.sink]
    assert sink.accepting is False
    assert (sink.positive_count, sink.negative_count) == (0, 1)
    assert all(sink.transitions[a] == dfa.sink for a in dfa.alphabet)


def test_no_sink_without_alphabet():
    dfa = _dfa([([], True)])
    assert dfa.sink is None
    assert dfa.alphabet == []
    assert dfa.classify([]) is True
    assert dfa.classify(["anything"]) is False


def test_empty_dfa_classifies_false():
    assert DFA().classify([]) is False


def test_out_of_range_target_raises():
    pta = PTA.from_samples([make_sequence("1", ["a"], True)])
    pta.nodes[0].next["b"] = 99
    with pytest.raises(AutomatonError, match="out of bounds"):
        DFA.from_pta(pta)


def test_mismatched_node_id_raises():
    pta = PTA.from_samples([make_sequence("1", ["a"], True)])
    pta.nodes[1].id = 7
    with pytest.raises(AutomatonError):
        DFA.from_pta(pta)


def test_empty_pta_raises():
    pta = PTA()
    pta.nodes = []
    with pytest.raises(AutomatonError):
        DFA.from_pta(pta)


def test_validate_rejects_bad_start():
    dfa = _dfa([(["a"], True)])
    dfa.start = 42
    with pytest.raises(AutomatonError):
        dfa.validate()


def test_dot_view():
    dfa = _dfa([(['say "hi"'], True)])
    dot = dfa.to_dot()
    assert dot.startswith("digraph DFA {")
    assert "__start -> s0;" in dot
    assert "shape=doublecircle" in dot
    assert "style=dashed" in dot
    assert 'label="say \\"hi\\""' in dot
    assert dot.rstrip().endswith("}")


def test_definition_view():
    dfa = _dfa([(["a"], False)])
    text = dfa.to_definition()
    assert text.startswith("DFA Definition")
    assert "Accepting states (F): {∅}" in text
    assert "Start state (q0): s0" in text
    assert f"Sink state: s{dfa.sink}" in text
    assert "δ(s0, a) = s1" in text


def test_training_samples_classify_as_labeled():
    samples = [
        (["proto=tcp", "state=S0"], True),
        (["proto=tcp", "state=SF"], False),
        (["proto=udp"], True),
        (["proto=udp", "service=dns"], False),
        ([], False),
    ]
    dfa = _dfa(samples)
    for seq, label in samples:
        assert dfa.classify(seq) is label
        assert dfa.minimize().classify(seq) is label


def test_construction_is_deterministic():
    samples = [(["b", "a"], True), (["a"], False), (["c", "c"], True)]
    first, second = _dfa(samples).minimize(), _dfa(samples).minimize()
    assert first.to_definition() == second.to_definition()
    assert first.to_chomsky() == second.to_chomsky()


def test_trace_follows_classify():
    dfa = _dfa([(["a", "b"], True), (["a"], False)])
    trace = dfa.trace(["a", "b"])
    assert [(s.symbol, s.current_state) for s in trace.steps] == [("a", dfa.start), ("b", trace.steps[0].next_state)]
    assert trace.final_state == trace.steps[-1].next_state
    assert trace.accepting is True and trace.label == "Malicious"

    unknown = dfa.trace(["zz", "a"])
    assert unknown.steps[0].next_state == dfa.sink
    assert unknown.final_state == dfa.sink
    assert unknown.label == "Benign"

    for seq in ([], ["a"], ["a", "b"], ["b", "a"], ["a", "b", "b"]):
        assert dfa.trace(seq).accepting == dfa.classify(seq)


def test_trace_stops_without_sink():
    dfa = _dfa([([], True)])
    trace = dfa.trace(["x", "y"])
    assert len(trace.steps) == 1
    assert trace.steps[0].next_state is None
    assert trace.final_state is None and trace.accepting is False
    assert DFA().trace(["x"]) == ([], None, False)

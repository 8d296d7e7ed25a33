from automata_security.dataset import make_sequence
from automata_security.pta import PTA


def test_build_shares_prefixes():
    samples = [
        make_sequence("s1", ["a"], True),
        make_sequence("s2", ["a", "b"], False),
        make_sequence("s3", ["c"], True),
    ]
    pta = PTA.from_samples(samples)

    assert len(pta.nodes) >= 3
    root = pta.nodes[pta.start]
    assert "a" in root.next
    a = pta.nodes[root.next["a"]]
    assert a.positive_count == 1 and a.negative_count == 0
    ab = pta.nodes[a.next["b"]]
    assert ab.negative_count == 1
    # root, a, ab, c
    assert len(pta) == 4


def test_node_ids_match_positions():
    pta = PTA.from_samples([make_sequence(str(i), ["x"] * i, i % 2 == 0) for i in range(5)])
    assert [n.id for n in pta.nodes] == list(range(len(pta.nodes)))


def test_duplicate_sequences_accumulate_counts():
    samples = [make_sequence("p", ["a"], True)] * 3 + [make_sequence("n", ["a"], False)]
    pta = PTA.from_samples(samples)
    node = pta.nodes[pta.nodes[0].next["a"]]
    assert (node.positive_count, node.negative_count) == (3, 1)


def test_empty_sequence_counts_at_root():
    pta = PTA.from_samples([make_sequence("e", [], True)])
    assert len(pta) == 1
    assert pta.nodes[0].positive_count == 1


def test_build_discards_previous_tree():
    pta = PTA()
    pta.build([make_sequence("a", ["a", "b", "c"], True)])
    pta.build([make_sequence("b", ["z"], False)])
    assert len(pta) == 2
    assert list(pta.nodes[0].next) == ["z"]

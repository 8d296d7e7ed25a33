"""
Minimal automata_security package exports.

Expose the pieces of the learning pipeline most callers need:
PTA -> DFA -> minimized DFA -> CNF grammar.
"""

from .dataset import LabeledSequence, make_sequence
from .pta import PTA
from .dfa import DFA, AutomatonError

__all__ = ["LabeledSequence", "make_sequence", "PTA", "DFA", "AutomatonError"]

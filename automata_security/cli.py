#!/usr/bin/env python3
"""
automata-security command line.

    automata-security train    [--input FILE]... [--test FILE]... [...]
    automata-security simulate --grammar FILE [--input FILE] [...]
    automata-security pda      [--grammar FILE] SYMBOL...
    automata-security derivation --grammar FILE SYMBOL...
    automata-security dfa      --dfa FILE SYMBOL...
    automata-security graph    --dfa FILE
"""
from __future__ import annotations

import argparse
import concurrent.futures
import json
import os
import sys
from typing import Any, Dict, List, Optional, Sequence

from . import config
from .chomsky import GrammarWalker, parse_cnf_text
from .dataset import LabeledSequence, summarize_features, train_test_split
from .evaluator import evaluate
from .export import dfa_to_graph, load_dfa_json, save_dfa_json, write_metrics_xlsx
from .parser import load_iot_csv
from .pda import grammar_to_pda, simulate_pda, validate_pda_sequence_with_trace
from .pipeline import train
from .simulator import load_threshold_file, simulate, write_reports_csv
from .verify import check_consistency


def _warn(msg: str) -> None:
    print(f"[WARN] {msg}", file=sys.stderr)


def _error(msg: str) -> None:
    print(f"[ERROR] {msg}", file=sys.stderr)


def _write_text(path: str, text: str) -> None:
    d = os.path.dirname(path)
    if d:
        os.makedirs(d, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)


def _read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _feature_line(samples: Sequence[LabeledSequence]) -> str:
    summary = summarize_features(samples)
    if not summary.sample_features:
        return "(none)"
    line = ", ".join(summary.sample_features)
    if summary.truncated:
        line += ", ..."
    return f"{summary.unique_count} unique: {line}"


def cmd_train(args: argparse.Namespace) -> int:
    input_paths = args.input or [config.DEFAULT_IOT_DATASET]

    samples: List[LabeledSequence] = []
    for path in input_paths:
        print(f"[1/6] Loading IoT dataset from: {path}")
        current = load_iot_csv(path)
        if not current:
            _warn(f"No samples loaded from {path}")
            continue
        print(f"      Loaded {len(current)} sequences.")
        samples.extend(current)
    if not samples:
        _error("No samples loaded from any input. Check dataset paths and format.")
        return 1
    print(f"      Total loaded: {len(samples)} sequences.")
    print(f"      Features ({_feature_line(samples)})")

    local_test: List[LabeledSequence] = []
    if args.train_full:
        train_set = list(samples)
        print(f"[2/6] Training on entire dataset ({len(train_set)} sequences).")
    else:
        print(f"[2/6] Splitting dataset with train_ratio={args.train_ratio} and seed={args.seed}")
        split = train_test_split(samples, args.train_ratio, args.seed)
        if not split.train or not split.test:
            _error("Train/test split produced empty partition. Adjust train ratio.")
            return 1
        train_set, local_test = split.train, split.test
        print(f"      Train: {len(train_set)}, Test: {len(local_test)}")

    print("[3/6] Building Prefix Tree Acceptor (PTA)...")
    print("[4/6] Constructing DFA from PTA and ensuring total transitions...")
    print("[5/6] Minimizing DFA...")
    result = train(train_set)
    print(f"      PTA states: {len(result.pta)}")
    print(f"      DFA states: {result.states_before}")
    print(f"      Minimized DFA states: {result.states_after} ({result.minimization_ms:.3f} ms)")
    dfa = result.minimized

    if args.print_definition or args.export_definition:
        definition = dfa.to_definition()
        if args.print_definition:
            print("\n" + definition)
        if args.export_definition:
            try:
                _write_text(args.export_definition, definition)
            except OSError as e:
                _warn(f"Failed to write definition file {args.export_definition}: {e}")

    print("[6/6] Evaluating DFA on test set...")
    stats = dict(states_before=result.states_before, states_after=result.states_after,
                 minimization_ms=result.minimization_ms)
    rows: List[Dict[str, Any]] = []
    if local_test:
        m = evaluate(dfa, local_test)._replace(**stats)
        rows.append(dict(source="combined_inputs", test_samples=len(local_test), **m._asdict()))

    if args.test:
        # Holdout files are independent; load them concurrently
        workers = min(len(args.test), os.cpu_count() or 4)
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
            loaded = list(ex.map(load_iot_csv, args.test))
        for path, holdout in zip(args.test, loaded):
            print(f"      Evaluating holdout dataset: {path}")
            if not holdout:
                _warn(f"no samples loaded from {path}")
                continue
            m = evaluate(dfa, holdout)._replace(**stats)
            rows.append(dict(source=path, test_samples=len(holdout), **m._asdict()))

    print("\nSummary")
    print("=======")
    for p in input_paths:
        print(f"  Input: {p}")
    tail = f", test={len(local_test)}" if local_test else ""
    print(f"Samples: {len(samples)} (train={len(train_set)}{tail})")
    print(f"States: before={result.states_before}, after={result.states_after}")
    print(f"Minimization: {result.minimization_ms:.4f} ms")
    for row in rows:
        print(f"\nResults for: {row['source']}")
        print(f"  Test samples: {row['test_samples']}")
        print(f"  Accuracy: {row['accuracy'] * 100.0:.4f}%")
        print(f"  False Positive Rate: {row['false_positive_rate'] * 100.0:.4f}%")
        print(f"  False Negative Rate: {row['false_negative_rate'] * 100.0:.4f}%")

    if args.export_dot:
        try:
            _write_text(args.export_dot, dfa.to_dot())
            print(f"[INFO] DOT written to {args.export_dot}")
        except OSError as e:
            _warn(f"Failed to write DOT file {args.export_dot}: {e}")
    if args.export_grammar:
        try:
            _write_text(args.export_grammar, dfa.to_chomsky())
            print(f"[INFO] Grammar written to {args.export_grammar}")
        except OSError as e:
            _warn(f"Failed to write grammar file {args.export_grammar}: {e}")
    if args.export_json:
        save_dfa_json(dfa, args.export_json)
        print(f"[INFO] DFA JSON written to {args.export_json}")
    if args.report_xlsx:
        write_metrics_xlsx(rows, args.report_xlsx)
        print(f"[INFO] Excel report written to {args.report_xlsx}")

    if args.verify is not None:
        sequences = [s.symbols for s in (local_test or train_set)]
        mismatches = check_consistency(dfa, sequences, sentences=args.verify)
        if mismatches:
            for mm in mismatches[:10]:
                _warn(f"{mm.source}: {list(mm.sequence)} dfa={mm.dfa_verdict} grammar={mm.grammar_verdict}")
            _error(f"grammar/automaton mismatch on {len(mismatches)} sequence(s)")
            return 1
        print(f"[INFO] Grammar consistent with DFA on {len(sequences)} sequences + {args.verify} grammar sentences")
    return 0


def cmd_simulate(args: argparse.Namespace) -> int:
    grammar = parse_cnf_text(_read_text(args.grammar))
    walker = GrammarWalker(grammar)
    path = args.input or config.DEFAULT_IOT_DATASET
    samples = load_iot_csv(path)
    print(f"[INFO] Loaded {len(samples)} sequences from {path}")
    thresholds = load_threshold_file(args.threshold_file) if args.threshold_file else {}

    reports = simulate(samples, walker, args.threshold, thresholds, args.aggregate)
    counts: Dict[str, int] = {}
    for r in reports:
        counts[r.status] = counts.get(r.status, 0) + 1
        print(f"{r.host}: {r.status} (malicious={r.malicious_count}, pda={r.pda_reason})")
        if args.details:
            for sid, reason in r.sample_reasons:
                print(f"    {sid}: {reason}")
    print("[INFO] " + ", ".join(f"{k}={v}" for k, v in sorted(counts.items())) if counts else "[INFO] no hosts")
    if args.output:
        write_reports_csv(reports, args.output)
        print(f"[INFO] Reports written to {args.output}")
    return 0


def _print_pda_steps(steps) -> None:
    for step in steps:
        stack = " ".join(step.stack_after) or "-"
        print(f"  {step.current_state} -> {step.next_state}  {step.op:<9} {step.symbol}  [{stack}]")


def cmd_pda(args: argparse.Namespace) -> int:
    if args.grammar:
        grammar = parse_cnf_text(_read_text(args.grammar))
        res = simulate_pda(grammar_to_pda(grammar), args.symbols, max_steps=args.max_steps)
    else:
        res = validate_pda_sequence_with_trace(args.symbols)
    print("ACCEPTED" if res.ok else "REJECTED")
    _print_pda_steps(res.steps)
    return 0 if res.ok else 2


def cmd_derivation(args: argparse.Namespace) -> int:
    walker = GrammarWalker(parse_cnf_text(_read_text(args.grammar)))
    d = walker.derive(args.symbols)
    for i, form in enumerate(d.forms):
        print(("  " if i == 0 else "  => ") + form)
    print("ACCEPTED" if d.accepted else f"REJECTED ({d.reason})")
    return 0 if d.accepted else 2


def cmd_dfa(args: argparse.Namespace) -> int:
    trace = load_dfa_json(args.dfa).trace(args.symbols)
    for step in trace.steps:
        nxt = "-" if step.next_state is None else f"s{step.next_state}"
        print(f"  s{step.current_state} --{step.symbol}--> {nxt}")
    final = "-" if trace.final_state is None else f"s{trace.final_state}"
    print(f"Final state: {final}")
    print(f"Label: {trace.label}")
    return 0


def cmd_graph(args: argparse.Namespace) -> int:
    print(json.dumps(dfa_to_graph(load_dfa_json(args.dfa)), ensure_ascii=False, indent=2))
    return 0


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="automata-security",
                                 description="Learn a DFA/CNF grammar from labeled connection sequences")
    ap.add_argument("--version", action="version", version=f"automata-security {config.VERSION}")
    sub = ap.add_subparsers(dest="command")

    t = sub.add_parser("train", help="Build, minimize and evaluate an automaton")
    t.add_argument("--input", action="append", help="IoT dataset file (repeatable). Default: AUTOMATA_DATASET")
    t.add_argument("--test", action="append", default=[], help="Additional holdout dataset to evaluate on (repeatable)")
    t.add_argument("--train-ratio", type=float, default=config.DEFAULT_TRAIN_RATIO, help="Train/test split ratio (0 < R < 1)")
    t.add_argument("--seed", type=int, default=config.DEFAULT_SEED, help="Random seed for the train/test shuffle")
    t.add_argument("--train-full", action="store_true", help="Train on the entire dataset (no split)")
    t.add_argument("--export-dot", help="Write the minimized DFA as Graphviz DOT")
    t.add_argument("--export-definition", help="Write the DFA formal definition")
    t.add_argument("--export-grammar", help="Write the Chomsky Normal Form grammar")
    t.add_argument("--export-json", help="Write the minimized DFA as JSON")
    t.add_argument("--report-xlsx", help="Write evaluation results to an Excel workbook")
    t.add_argument("--print-definition", action="store_true", help="Print the DFA formal definition")
    t.add_argument("--verify", type=int, metavar="N", help="Cross-check grammar and DFA, including the N shortest grammar sentences")
    t.set_defaults(func=cmd_train)

    s = sub.add_parser("simulate", help="Per-host blocking simulation with a learned grammar")
    s.add_argument("--grammar", required=True, help="CNF grammar file written by `train --export-grammar`")
    s.add_argument("--input", help="IoT dataset file. Default: AUTOMATA_DATASET")
    s.add_argument("--threshold", type=int, default=config.DEFAULT_THRESHOLD, help="Malicious sequences before a host is blocked")
    s.add_argument("--threshold-file", help="Per-host thresholds (`host,threshold` lines)")
    s.add_argument("--aggregate", choices=config.AGGREGATE_MODES, default="orig", help="Grouping key")
    s.add_argument("--details", action="store_true", help="Print the per-sample reasons")
    s.add_argument("--output", help="Write host reports to CSV")
    s.set_defaults(func=cmd_simulate)

    p = sub.add_parser("pda", help="Run a PDA on one symbol sequence")
    p.add_argument("--grammar", help="CNF grammar file; without it the state=S0/state=SF stack check runs")
    p.add_argument("--max-steps", type=int, default=config.PDA_MAX_STEPS, help="Search budget")
    p.add_argument("symbols", nargs="*", help="Input symbols")
    p.set_defaults(func=cmd_pda)

    d = sub.add_parser("derivation", help="Leftmost derivation of a symbol sequence")
    d.add_argument("--grammar", required=True, help="CNF grammar file")
    d.add_argument("symbols", nargs="*", help="Input symbols")
    d.set_defaults(func=cmd_derivation)

    f = sub.add_parser("dfa", help="Step-by-step DFA run on a symbol sequence")
    f.add_argument("--dfa", required=True, help="DFA JSON written by `train --export-json`")
    f.add_argument("symbols", nargs="*", help="Input symbols")
    f.set_defaults(func=cmd_dfa)

    g = sub.add_parser("graph", help="Print the DFA as nodes/edges JSON")
    g.add_argument("--dfa", required=True, help="DFA JSON written by `train --export-json`")
    g.set_defaults(func=cmd_graph)
    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = build_arg_parser()
    args = ap.parse_args(argv)
    if not getattr(args, "func", None):
        ap.print_help()
        return 1
    try:
        return args.func(args)
    except Exception as e:
        _error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())

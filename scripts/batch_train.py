#!/usr/bin/env python3
"""
Train one automaton per IoT dataset in parallel.

- For each input CSV, build PTA -> DFA -> minimized DFA and (optionally) write
  out/<name>.json and out/<name>.cnf.txt
- Parallelism: --max-workers (defaults to CPU count)

Examples:
  python3 scripts/batch_train.py datasets/iotMalware/*.csv --out-dir out --max-workers 4
"""
import argparse
import os
import sys
import time

from automata_security.export import save_dfa_json
from automata_security.parser import load_iot_csv
from automata_security.pipeline import train_many


def main() -> int:
    ap = argparse.ArgumentParser(description="Train automata for several IoT datasets in parallel")
    ap.add_argument("inputs", nargs="+", help="IoT conn.log.labeled CSV files")
    ap.add_argument("--out-dir", help="Write <name>.json and <name>.cnf.txt here")
    ap.add_argument("--max-workers", type=int, default=os.cpu_count() or 4)
    args = ap.parse_args()

    t0 = time.time()
    print(f"[INFO] Training {len(args.inputs)} datasets with max_workers={args.max_workers}")
    results = train_many(args.inputs, load_iot_csv, max_workers=args.max_workers)

    failures = 0
    for r in results:
        if r.result is None:
            failures += 1
            print(f"[FAIL] {r.path}: {r.error}")
            continue
        res = r.result
        print(f"[OK] {r.path}: samples={r.samples} states {res.states_before} -> {res.states_after} "
              f"({res.minimization_ms:.2f} ms)")
        if args.out_dir:
            name = os.path.splitext(os.path.basename(r.path))[0]
            os.makedirs(args.out_dir, exist_ok=True)
            save_dfa_json(res.minimized, os.path.join(args.out_dir, f"{name}.json"))
            with open(os.path.join(args.out_dir, f"{name}.cnf.txt"), "w", encoding="utf-8") as f:
                f.write(res.minimized.to_chomsky())

    print(f"[INFO] Done in {time.time() - t0:.2f}s; {len(results) - failures} ok, {failures} failed")
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())

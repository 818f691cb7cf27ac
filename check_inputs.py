"""Check a zkLogin input file against the relation.

Builds the circuit for a named configuration, generates the witness for the
inputs written by ZkLoginInputs.to_json() and reports whether every
constraint holds.

Usage:
    python check_inputs.py INPUTS.json [--config small|default]
                           [--max-failures N] [--stats-only]
"""

import argparse
import sys
import time
from pathlib import Path

from constraints import CONFIG_REGISTRY, ZkLoginCircuit, get_config
from witness import ZkLoginInputs


def print_stats(circuit: ZkLoginCircuit) -> None:
    stats = circuit.stats()
    print("Circuit:")
    for name, count in stats.items():
        print(f"  {name:<12} {count}")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Check zkLogin inputs against the constraint relation."
    )
    parser.add_argument("inputs", nargs="?", help="Path to the inputs JSON file")
    parser.add_argument(
        "--config",
        default="default",
        choices=sorted(CONFIG_REGISTRY),
        help="Capacity configuration the inputs were prepared for",
    )
    parser.add_argument(
        "--max-failures",
        type=int,
        default=10,
        help="Number of violated constraints to list",
    )
    parser.add_argument(
        "--stats-only",
        action="store_true",
        help="Build the circuit and print its size without checking inputs",
    )
    args = parser.parse_args()
    if not args.stats_only and args.inputs is None:
        parser.error("an inputs file is required unless --stats-only is given")

    config = get_config(args.config)
    print(f"Building circuit ({args.config})...")
    start = time.perf_counter()
    circuit = ZkLoginCircuit(config)
    print(f"Built in {time.perf_counter() - start:.2f}s")
    print_stats(circuit)
    if args.stats_only:
        return 0

    print(f"\nLoading inputs: {args.inputs}")
    inputs = ZkLoginInputs.from_json(Path(args.inputs).read_text())

    start = time.perf_counter()
    witness = circuit.generate_witness(inputs.values)
    print(f"Witness generated in {time.perf_counter() - start:.2f}s")

    start = time.perf_counter()
    failures = circuit.cs.unsatisfied(witness, limit=args.max_failures)
    print(f"Checked in {time.perf_counter() - start:.2f}s")

    if failures:
        print(f"\nRelation NOT satisfied; first {len(failures)} violations:")
        for failure in failures:
            print(f"  {failure}")
        return 1

    seed = circuit.address_seed(witness)
    print("\nRelation satisfied.")
    print(f"  address_seed:    {seed}")
    print(f"  all_inputs_hash: {circuit.cs.public_values(witness)['all_inputs_hash']}")
    if seed != inputs.address_seed:
        print(f"  (inputs file records address_seed {inputs.address_seed})")
    return 0


if __name__ == "__main__":
    sys.exit(main())

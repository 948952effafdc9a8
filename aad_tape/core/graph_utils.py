# aad_tape/core/graph_utils.py
"""
Tape inspection helpers: statistics and printed summaries of a recorded graph.
"""

import numpy as np
from typing import Dict
from collections import Counter


def get_graph_stats(tape) -> Dict:
    """
    Collect statistics about a tape (no printing).

    Returns
    -------
    dict with keys
        slots, leaves, branches, edges, max_fan_in, avg_fan_in,
        max_fan_out, avg_fan_out, operations
    """
    branches = tape.branches
    n_slots = len(tape)
    if not branches:
        return {
            'slots': n_slots,
            'leaves': n_slots,
            'branches': 0,
            'edges': 0,
            'max_fan_in': 0,
            'avg_fan_in': 0.0,
            'max_fan_out': 0,
            'avg_fan_out': 0.0,
            'operations': {}
        }

    # fan-in: tracked arguments per branch (a Node passed twice counts twice)
    fan_ins = [len(b.parents()) for b in branches]

    # fan-out: number of uses of each slot as an argument
    fan_outs = [0] * n_slots
    for b in branches:
        for _, node in b.parents():
            fan_outs[node.position] += 1

    op_counter = Counter(b.operation for b in branches)

    return {
        'slots': n_slots,
        'leaves': n_slots - len(branches),
        'branches': len(branches),
        'edges': sum(fan_ins),
        'max_fan_in': max(fan_ins),
        'avg_fan_in': float(np.mean(fan_ins)),
        'max_fan_out': max(fan_outs),
        'avg_fan_out': float(np.mean(fan_outs)),
        'operations': dict(op_counter)
    }


def print_graph_summary(tape, detailed: bool = False) -> Dict:
    """
    Print a summary of the recorded graph.

    Args:
        tape: the Tape to inspect
        detailed: also list every slot (only for tapes of at most 100 slots)

    Returns:
        The statistics dict from `get_graph_stats`.
    """
    if len(tape) == 0:
        print("Empty computation graph")
        return get_graph_stats(tape)

    stats = get_graph_stats(tape)

    print("\n" + "="*70)
    print("COMPUTATION GRAPH SUMMARY")
    print("="*70)
    print(f"Total slots:        {stats['slots']:,}")
    print(f"Leaves:             {stats['leaves']:,}")
    print(f"Branches:           {stats['branches']:,}")
    print(f"Total edges:        {stats['edges']:,}")
    print(f"Max fan-in:         {stats['max_fan_in']}")
    print(f"Avg fan-in:         {stats['avg_fan_in']:.2f}")
    print(f"Max fan-out:        {stats['max_fan_out']}")
    print(f"Avg fan-out:        {stats['avg_fan_out']:.2f}")
    if stats['operations']:
        print()
        print("Operation breakdown:")
        for op, count in Counter(stats['operations']).most_common(10):
            pct = 100.0 * count / stats['branches']
            print(f"  {op:12s}: {count:6,} ({pct:5.1f}%)")

    if detailed and len(tape) <= 100:
        print()
        print("="*70)
        print("DETAILED SLOT LIST")
        print("="*70)
        for i, b in enumerate(tape):
            if b is None:
                print(f"Slot {i:3d}: {'leaf':12s}")
            else:
                parent_info = ", ".join(f"Slot{node.position}" for _, node in b.parents())
                print(f"Slot {i:3d}: {b.operation:12s} <- [{parent_info}]")

    print("="*70 + "\n")
    return stats


def print_computation_graph(tape, max_nodes: int = 20) -> None:
    """
    Print the tape slot by slot, with output values for scalar branches.

    Args:
        tape: the Tape to print
        max_nodes: maximum number of slots to print
    """
    print("\n" + "="*70)
    print("COMPUTATION GRAPH STRUCTURE")
    print("="*70)

    if len(tape) == 0:
        print("Empty graph")
        return

    slots = list(tape)
    for i, b in enumerate(slots[:max_nodes]):
        if b is None:
            print(f"Slot {i:4d}: {'leaf':12s} [leaf/input]")
            continue
        if np.ndim(b.output) == 0:
            out_str = f"{float(b.output):10.6f}"
        else:
            out_str = f"shape={np.shape(b.output)}"
        parent_strs = [f"Slot{node.position}" for _, node in b.parents()]
        n_const = len(b.args) - len(parent_strs)
        if n_const:
            parent_strs.append(f"{n_const} const")
        print(f"Slot {i:4d}: {b.operation:12s} ({out_str}) <- [{', '.join(parent_strs)}]")

    if len(slots) > max_nodes:
        print(f"... ({len(slots) - max_nodes} more slots)")

    print("="*70 + "\n")


def analyze_graph_complexity(tape) -> str:
    """
    Short text report on the size and shape of the recorded graph.
    """
    stats = get_graph_stats(tape)

    if stats['branches'] == 0:
        return "Empty computation graph"

    report = []
    report.append("Graph Complexity Analysis:")
    report.append(f"  Total operations: {stats['branches']:,}")
    report.append(f"  Total connections: {stats['edges']:,}")
    report.append(f"  Average branching: {stats['avg_fan_out']:.2f}")

    if stats['branches'] < 1000:
        complexity = "Low"
    elif stats['branches'] < 10000:
        complexity = "Medium"
    else:
        complexity = "High"

    report.append(f"  Complexity level: {complexity}")

    top_ops = sorted(stats['operations'].items(), key=lambda x: x[1], reverse=True)[:3]
    report.append("  Top operations:")
    for op, count in top_ops:
        pct = 100.0 * count / stats['branches']
        report.append(f"    - {op}: {pct:.1f}%")

    return "\n".join(report)

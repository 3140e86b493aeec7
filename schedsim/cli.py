from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .algorithms import ALGORITHMS, PERIODIC_ALGORITHMS, run_algorithm
from .config import DEFAULT_CS_PENALTY, DEFAULT_QUANTUM, SimulationConfig
from .gantt import build_rich_gantt
from .metrics import summarize_task_metrics
from .models import ScheduleResult
from .workload_io import load_workload

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="schedsim",
        description="Discrete-time scheduling simulator (FCFS, SJF, Priority, RR, RM, EDF).",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="count",
        default=0,
        help="Log engine decisions (-v for deadline misses, -vv for every dispatch).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run a scheduling algorithm on a workload file.")
    run_parser.add_argument(
        "--algorithm",
        "-a",
        required=True,
        help=f"Algorithm to use ({', '.join(ALGORITHMS)}).",
    )
    run_parser.add_argument(
        "--workload",
        "-w",
        required=True,
        help="Path to JSON or CSV workload file.",
    )
    _add_config_arguments(run_parser, default_quantum=None)
    run_parser.add_argument(
        "--step",
        action="store_true",
        help="Show a simple time-stepped simulation in the terminal.",
    )
    run_parser.add_argument(
        "--step-delay",
        type=float,
        default=0.3,
        help="Seconds to wait between steps when --step is used (default: 0.3).",
    )

    compare_parser = subparsers.add_parser(
        "compare",
        help="Run multiple algorithms on the same workload and compare summary metrics.",
    )
    compare_parser.add_argument(
        "--workload",
        "-w",
        required=True,
        help="Path to JSON or CSV workload file.",
    )
    compare_parser.add_argument(
        "--algorithms",
        "-a",
        nargs="+",
        default=["fcfs", "fcfs-clocked", "sjf", "priority", "rr"],
        help="Algorithms to compare (default: fcfs fcfs-clocked sjf priority rr).",
    )
    _add_config_arguments(compare_parser, default_quantum=DEFAULT_QUANTUM)

    return parser


def _add_config_arguments(parser: argparse.ArgumentParser, default_quantum) -> None:
    parser.add_argument(
        "--quantum",
        "-q",
        type=int,
        default=default_quantum,
        help="Time quantum for round-robin (ignored by other algorithms).",
    )
    parser.add_argument(
        "--cs-penalty",
        type=int,
        default=DEFAULT_CS_PENALTY,
        help=f"Context-switch penalty in ticks for fcfs-clocked/rr (default: {DEFAULT_CS_PENALTY}).",
    )
    parser.add_argument(
        "--horizon",
        type=int,
        default=None,
        help="Simulation length for rm/edf (default: hyperperiod of the task set).",
    )


def configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(show_path=False, markup=False)],
    )


def _config_from_args(args: argparse.Namespace) -> SimulationConfig:
    return SimulationConfig(quantum=args.quantum, cs_penalty=args.cs_penalty, horizon=args.horizon)


def _print_result(result: ScheduleResult, console: Console) -> None:
    console.print(f"[bold]Algorithm:[/bold] {result.algorithm}")
    if result.quantum is not None:
        console.print(f"[bold]Quantum:[/bold] {result.quantum}")
    if result.cs_penalty is not None:
        console.print(f"[bold]CS penalty:[/bold] {result.cs_penalty}")
    if result.horizon is not None:
        console.print(f"[bold]Horizon:[/bold] {result.horizon}")

    console.print()

    panel, time_marks = build_rich_gantt(result.timeline)
    console.print(panel)
    if time_marks:
        console.print(time_marks)

    console.print()

    if result.jobs:
        _print_jobs(result, console)
    else:
        _print_tasks(result, console)
    console.print()

    m = result.metrics
    summary = summarize_task_metrics(result.tasks)
    sys_table = Table(title="System metrics", box=box.SIMPLE_HEAVY)
    sys_table.add_column("Metric")
    sys_table.add_column("Value", justify="right")

    if not result.jobs:
        sys_table.add_row("Avg turnaround", f"{summary['avg_turnaround']:.2f}")
        sys_table.add_row("Avg waiting", f"{summary['avg_waiting']:.2f}")
    sys_table.add_row("Deadline misses", str(m.deadline_misses))
    sys_table.add_row("Context switches", str(m.context_switches))
    sys_table.add_row("CPU utilization", f"{m.cpu_utilization:.2f}%")
    sys_table.add_row("Total clock", f"{m.total_clock_time} ticks")

    console.print(sys_table)


def _fmt(value) -> str:
    return "" if value is None else str(value)


def _print_tasks(result: ScheduleResult, console: Console) -> None:
    headers = ["Task", "Arrival", "Burst", "Deadline", "Start", "Completion", "Turnaround", "Waiting", "Missed"]

    table = Table(title="Per-task metrics", box=box.SIMPLE_HEAVY)
    for h in headers:
        table.add_column(h, justify="center" if h in {"Task", "Missed"} else "right")

    for t in result.tasks:
        table.add_row(
            t.name,
            str(t.arrival_time),
            str(t.execution_cost),
            _fmt(t.hard_deadline),
            _fmt(t.start_time),
            _fmt(t.completion_time),
            _fmt(t.turnaround_time),
            _fmt(t.waiting_time),
            "[red]YES[/red]" if t.deadline_missed else "No",
        )

    console.print(table)


def _print_jobs(result: ScheduleResult, console: Console) -> None:
    table = Table(title="Per-job metrics", box=box.SIMPLE_HEAVY)
    for h in ["Task", "Job", "Release", "Deadline", "Completion", "Response", "Missed"]:
        table.add_column(h, justify="center" if h in {"Task", "Missed"} else "right")

    for j in result.jobs:
        table.add_row(
            j.name,
            str(j.job_number),
            str(j.release_time),
            str(j.absolute_deadline),
            _fmt(j.completion_time),
            _fmt(j.response_time),
            "[red]YES[/red]" if j.deadline_missed else "No",
        )

    console.print(table)


def _animate_result(result: ScheduleResult, delay: float, console: Console) -> None:
    """
    Simple time-stepped textual replay of the computed schedule.
    """
    if not result.timeline:
        console.print("[red]No execution to animate.[/red]")
        return

    console.print(f"[bold]Simulating {result.algorithm}[/bold] (duration {result.metrics.total_clock_time} ticks)")
    console.print("[dim]Press Ctrl+C to skip animation.[/dim]")

    for iv in result.timeline:
        for t in range(iv.start, iv.end):
            bar = "█" * (t - iv.start + 1)
            console.print(f"t={t:2d}: {iv.label} [green]{bar}[/green]")
            time.sleep(delay)


def _run_compare(args: argparse.Namespace, console: Console) -> None:
    tasks = load_workload(Path(args.workload))

    summary_table = Table(title=f"Algorithm comparison: {args.workload}", box=box.SIMPLE_HEAVY)
    summary_table.add_column("Algorithm")
    summary_table.add_column("Avg turnaround", justify="right")
    summary_table.add_column("Avg waiting", justify="right")
    summary_table.add_column("Misses", justify="right")
    summary_table.add_column("Switches", justify="right")
    summary_table.add_column("CPU %", justify="right")

    for alg in args.algorithms:
        config = _config_from_args(args)
        config.quantum = args.quantum if alg.lower() == "rr" else None
        result = run_algorithm(alg, tasks, config=config)
        summary = summarize_task_metrics(result.tasks)
        periodic = alg.lower() in PERIODIC_ALGORITHMS
        summary_table.add_row(
            result.algorithm,
            "" if periodic else f"{summary['avg_turnaround']:.2f}",
            "" if periodic else f"{summary['avg_waiting']:.2f}",
            str(result.metrics.deadline_misses),
            str(result.metrics.context_switches),
            f"{result.metrics.cpu_utilization:.1f}",
        )

    console.print(summary_table)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose)
    console = Console()

    try:
        if args.command == "run":
            tasks = load_workload(Path(args.workload))
            logger.info("Loaded %d tasks from %s", len(tasks), args.workload)
            result = run_algorithm(args.algorithm, tasks, config=_config_from_args(args))
            if args.step:
                try:
                    _animate_result(result, args.step_delay, console)
                except KeyboardInterrupt:
                    console.print("[yellow]Animation skipped.[/yellow]")
            _print_result(result, console)
            return 0

        if args.command == "compare":
            _run_compare(args, console)
            return 0
    except ValueError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        return 2

    parser.error(f"Unknown command: {args.command}")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())

"""
Discrete-time scheduling simulator.

Simulates FCFS, SJF, static priority, Round Robin, Rate-Monotonic and EDF
over synthetic task sets and reports the resulting timeline and metrics.
"""

__all__ = ["cli"]

from __future__ import annotations

import argparse
import csv
import json
import math
from pathlib import Path
from typing import Optional

from ..config import SimulationConfig
from ..logging_config import configure_logging
from ..sim.core.creature import Species
from ..sim.core.simulation import Simulation
from ..sim.types.metrics import TickStats

_BASE_HEADER = [
    "tick",
    "creatures",
    "food",
    "births",
    "deaths",
    "hunted",
    "food_eaten",
    "tick_ms",
]


def _header() -> list[str]:
    header = list(_BASE_HEADER)
    for species in Species:
        header.extend([f"{species.value}_count", f"{species.value}_speed", f"{species.value}_sense"])
    return header


def _format_mean(value: Optional[float]) -> str:
    return "" if value is None else f"{value:.4f}"


def _format_row(stats: TickStats, tick_ms: float) -> list[object]:
    row: list[object] = [
        stats.tick,
        stats.creatures,
        stats.food,
        stats.births,
        stats.deaths,
        stats.hunted,
        stats.food_eaten,
        f"{tick_ms:.3f}",
    ]
    for species in Species:
        entry = stats.species[species.value]
        row.extend([entry.count, _format_mean(entry.mean_speed), _format_mean(entry.mean_sense)])
    return row


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0}
    sorted_values = sorted(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / len(values)),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
    }


def run_headless(
    ticks: int,
    seed: Optional[int] = None,
    log_path: Optional[Path] = None,
    deterministic_log: bool = False,
    summary_path: Optional[Path] = None,
    config: Optional[SimulationConfig] = None,
) -> TickStats:
    config = config if config is not None else SimulationConfig()
    if seed is not None:
        config.seed = seed
    simulation = Simulation(config)

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_header())

    population_series: list[float] = []
    food_series: list[float] = []
    species_series: dict[str, list[float]] = {species.value: [] for species in Species}
    extinct_at: dict[str, Optional[int]] = {species.value: None for species in Species}
    stats = simulation.stats
    try:
        for _ in range(ticks):
            stats = simulation.step()
            tick_ms = 0.0 if deterministic_log else simulation.last_tick_ms
            population_series.append(float(stats.creatures))
            food_series.append(float(stats.food))
            for name, entry in stats.species.items():
                species_series[name].append(float(entry.count))
                if entry.count == 0 and extinct_at[name] is None:
                    extinct_at[name] = stats.tick
            if writer:
                writer.writerow(_format_row(stats, tick_ms))
    finally:
        if csv_file:
            csv_file.close()

    if summary_path:
        summary = {
            "ticks": ticks,
            "seed": config.seed,
            "water_bodies": len(simulation.obstacles),
            "population": _summary_stats(population_series),
            "food": _summary_stats(food_series),
            "species": {
                name: {"count": _summary_stats(series), "extinct_at": extinct_at[name]}
                for name, series in species_series.items()
            },
            "final": {
                "tick": stats.tick,
                "creatures": stats.creatures,
                "food": stats.food,
            },
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
    return stats


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless ecosystem simulation")
    parser.add_argument("--ticks", type=int, default=3000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write per-tick stats")
    parser.add_argument("--summary", type=Path, default=None, help="JSON file to write run summary")
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--log-level", default=None, help="Logging level (defaults to BIOME_LOG_LEVEL or INFO)")
    args = parser.parse_args()
    configure_logging(level=args.log_level)
    config = SimulationConfig.from_yaml(args.config) if args.config else None
    run_headless(
        args.ticks,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        summary_path=args.summary,
        config=config,
    )


if __name__ == "__main__":
    main()

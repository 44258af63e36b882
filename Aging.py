import argparse
import contextlib
import json
import math
import os
import platform
import sys
import time
from concurrent.futures import ProcessPoolExecutor
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from itertools import product
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from numba import njit, prange, get_num_threads, set_num_threads
from numba import config as numba_config

__version__ = "2.0.0"

## --- CONFIGURATION ---

DEFAULT_HEALTH = 10
DEFAULT_TECH_LEVEL = 8
DEFAULT_MODIFIER = 0
DEFAULT_DEATH_THRESHOLD = 4
DEFAULT_PROCESSES = 4
DEFAULT_ITERATIONS = 100_000

SELF_DESTRUCT_PENALTY = 3
LIFESPAN_MULTIPLIER = 2.0

# Aging brackets, in multiples of the aging increment.
AGING_START = 50.0
AGING_MIDDLE = 70.0
AGING_LATE = 90.0
DAYS_PER_YEAR = 365.0

DICE_COUNT = 3
DICE_FACES = 6
ROLL_MIN = DICE_COUNT
ROLL_MAX = DICE_COUNT * DICE_FACES

# Rolls drawn per generator call by _RollStream.
ROLL_BLOCK_SIZE = 4096

# Trials per worker task; each task returns its ages and verbose log together.
TRIALS_PER_CHUNK = 1000

TRIAL_LOG_SEPARATOR = "\n\n%\n\n"
BACKENDS = ("auto", "python", "numba")


## --- 3D6 TABLE ---

def _build_roll_table():
    """Count every ordered outcome of three dice, indexed by total."""
    weights = np.zeros(ROLL_MAX - ROLL_MIN + 1, dtype=np.int64)
    for dice in product(range(1, DICE_FACES + 1), repeat=DICE_COUNT):
        weights[sum(dice) - ROLL_MIN] += 1
    values = np.arange(ROLL_MIN, ROLL_MAX + 1, dtype=np.int64)
    return values, weights


ROLL_VALUES, ROLL_WEIGHTS = _build_roll_table()
ROLL_CUMULATIVE = np.cumsum(ROLL_WEIGHTS)
ROLL_WEIGHT_TOTAL = int(ROLL_CUMULATIVE[-1])
ROLL_PROBABILITIES = ROLL_WEIGHTS / ROLL_WEIGHT_TOTAL


class EmptyResultSetError(ValueError):
    """Raised when statistics are requested for a run with no trials."""


@dataclass(frozen=True)
class SimulationConfig:
    starting_health: int
    death_threshold: int
    roll_bonus: int
    age_increment: float
    has_longevity: bool = False
    has_self_destruct: bool = False

    def __post_init__(self):
        if not self.age_increment > 0:
            raise ValueError(f"age_increment must be positive, got {self.age_increment!r}")

    @classmethod
    def from_traits(
        cls,
        health=DEFAULT_HEALTH,
        tech_level=DEFAULT_TECH_LEVEL,
        modifier=DEFAULT_MODIFIER,
        death=DEFAULT_DEATH_THRESHOLD,
        longevity=False,
        self_destruct=False,
        extended_lifespan=0,
        short_lifespan=0,
    ):
        """Derive the roll bonus and aging increment from character traits.

        The bonus is the medical TL minus 3, plus any flat modifiers, with a
        further -3 for Self-Destruct. Each level of Extended Lifespan doubles
        the aging increment and each level of Short Lifespan halves it.
        """
        if extended_lifespan < 0 or short_lifespan < 0:
            raise ValueError("Lifespan levels cannot be negative")
        if extended_lifespan and short_lifespan:
            raise ValueError("Extended Lifespan and Short Lifespan are mutually exclusive")

        bonus = tech_level - 3 + modifier
        if self_destruct:
            bonus -= SELF_DESTRUCT_PENALTY
        try:
            increment = LIFESPAN_MULTIPLIER ** (extended_lifespan - short_lifespan)
        except OverflowError:
            increment = math.inf
        if not (0 < increment < math.inf):
            raise ValueError(
                f"Lifespan levels (extended {extended_lifespan}, short {short_lifespan}) "
                "put the aging increment out of range"
            )

        return cls(
            starting_health=int(health),
            death_threshold=int(death),
            roll_bonus=int(bonus),
            age_increment=float(increment),
            has_longevity=bool(longevity),
            has_self_destruct=bool(self_destruct),
        )

    @property
    def starting_age(self):
        return self.age_increment * AGING_START

    @property
    def middle_age(self):
        return self.age_increment * AGING_MIDDLE

    @property
    def old_age(self):
        return self.age_increment * AGING_LATE


## --- HELPERS ---

def RollAgingDice(count, rng=None):
    """Roll `count` aging rolls (3d6). Returns a NumPy array when an RNG is provided, otherwise a list."""
    generator = rng if rng is not None else np.random.default_rng()
    draws = generator.integers(0, ROLL_WEIGHT_TOTAL, size=count)
    rolls = ROLL_VALUES[np.searchsorted(ROLL_CUMULATIVE, draws, side="right")]
    return rolls if rng is not None else rolls.tolist()


class _RollStream:
    """Hand out single rolls from blocks drawn off one generator."""

    def __init__(self, rng, block_size=ROLL_BLOCK_SIZE):
        if block_size <= 0:
            raise ValueError("block_size must be a positive integer")
        self._rng = rng
        self._block_size = block_size
        self._block = []
        self._position = 0

    def draw(self):
        if self._position >= len(self._block):
            self._block = RollAgingDice(self._block_size, self._rng).tolist()
            self._position = 0
        roll = self._block[self._position]
        self._position += 1
        return roll


def _health_loss(roll, effective, has_longevity):
    if has_longevity:
        # Longevity only fails on an 18, or a 17 against modified HT below 17.
        if roll == 18 or (roll == 17 and effective < 17):
            return 1
        return 0
    # 17 or 18, or failure by 10 or more.
    if roll > 16 or roll > effective + 9:
        return 2
    if roll > effective:
        return 1
    return 0


def _next_age(age, age_increment, has_self_destruct):
    if has_self_destruct:
        return age + 1.0 / DAYS_PER_YEAR
    if age < age_increment * AGING_MIDDLE:
        return age + age_increment
    if age < age_increment * AGING_LATE:
        return age + age_increment / 2.0
    return age + age_increment / 4.0


def _format_number(value):
    return np.format_float_positional(float(value), trim="-")


def _format_roll_line(health, effective, age, roll, loss, died):
    line = (
        f"Current HT is {health}, effective HT is {effective}, "
        f"current age is {_format_number(age)}. Rolled a {roll}."
    )
    if loss:
        line += f" Lost {loss} HT."
    if died:
        line += f" Dead at {_format_number(age)}."
    return line


def _format_trial_log(lines):
    return "\n".join(lines) + TRIAL_LOG_SEPARATOR


## --- NUMBA KERNELS ---

_health_loss_numba = njit(nogil=True)(_health_loss)
_next_age_numba = njit(nogil=True)(_next_age)


@njit(nogil=True)
def _roll_from_draw_numba(draw):
    for i in range(ROLL_CUMULATIVE.shape[0]):
        if draw < ROLL_CUMULATIVE[i]:
            return i + ROLL_MIN
    return ROLL_MAX


@njit(nogil=True)
def _simulate_life_numba(starting_health, death_threshold, roll_bonus, age_increment,
                         has_longevity, has_self_destruct):
    health = starting_health
    age = age_increment * AGING_START
    while True:
        roll = _roll_from_draw_numba(np.random.randint(0, ROLL_WEIGHT_TOTAL))
        health -= _health_loss_numba(roll, health + roll_bonus, has_longevity)
        if health <= death_threshold:
            return age
        age = _next_age_numba(age, age_increment, has_self_destruct)


@njit(parallel=True)
def _simulate_lives_numba(count, seed, starting_health, death_threshold, roll_bonus,
                          age_increment, has_longevity, has_self_destruct):
    np.random.seed(seed)
    ages = np.empty(count, dtype=np.float64)
    for i in prange(count):
        ages[i] = _simulate_life_numba(
            starting_health, death_threshold, roll_bonus, age_increment,
            has_longevity, has_self_destruct,
        )
    return ages


## --- AGING ---

def SimulateLife(config, rng=None, log=None, rolls=None):
    """Age one character until their HT falls to the death threshold.

    Returns the age at death. When `log` is a list, one human-readable line
    per aging roll is appended to it. `rolls` may supply any object with a
    `draw()` method. Without it, each roll is drawn from `rng` as it is
    needed, so callers running many lives should pass a shared `_RollStream`.
    """
    if rolls is None:
        rolls = _RollStream(rng if rng is not None else np.random.default_rng(), block_size=1)

    health = config.starting_health
    age = config.starting_age

    while True:
        roll = rolls.draw()
        effective = health + config.roll_bonus
        loss = _health_loss(roll, effective, config.has_longevity)
        dead = health - loss <= config.death_threshold
        if log is not None:
            log.append(_format_roll_line(health, effective, age, roll, loss, dead))
        health -= loss

        if dead:
            return age
        age = _next_age(age, config.age_increment, config.has_self_destruct)


@dataclass
class TrialBatch:
    ages: np.ndarray
    elapsed_ms: float = 0.0
    units: int = 0
    backend: str = "python"


def _simulate_chunk(task):
    config, count, seed, keep_log = task
    rolls = _RollStream(np.random.default_rng(seed))

    ages = np.empty(count, dtype=np.float64)
    log_parts = [] if keep_log else None
    for i in range(count):
        lines = [] if keep_log else None
        ages[i] = SimulateLife(config, log=lines, rolls=rolls)
        if keep_log:
            log_parts.append(_format_trial_log(lines))

    return ages, ("".join(log_parts) if keep_log else None)


def _chunk_sizes(count, chunk_size=TRIALS_PER_CHUNK):
    chunk_count = -(-count // chunk_size)
    base, extra = divmod(count, chunk_count)
    return [base + (1 if i < extra else 0) for i in range(chunk_count)]


def _simulate_python_backend(config, count, processes, seed, log_stream):
    available_cpus = os.cpu_count() or 1
    chunk_sizes = _chunk_sizes(count)
    if processes is None:
        processes = min(available_cpus, len(chunk_sizes))
    else:
        processes = max(1, min(processes, available_cpus, len(chunk_sizes)))

    # Chunking depends only on the count, so a seed gives the same ages for any worker count.
    seed_sequence = np.random.SeedSequence(seed)
    child_seeds = seed_sequence.spawn(len(chunk_sizes))
    keep_log = log_stream is not None
    tasks = [
        (config, size, int(child.generate_state(1)[0]), keep_log)
        for size, child in zip(chunk_sizes, child_seeds)
    ]

    start = time.time()
    chunk_ages = []
    with contextlib.ExitStack() as stack:
        if processes == 1:
            chunk_results = map(_simulate_chunk, tasks)
        else:
            pool = stack.enter_context(ProcessPoolExecutor(max_workers=processes))
            chunk_results = pool.map(_simulate_chunk, tasks)

        # Chunks arrive in submission order; each log is written and dropped on arrival.
        for ages, chunk_log in chunk_results:
            chunk_ages.append(ages)
            if keep_log:
                log_stream.write(chunk_log)
        if keep_log:
            log_stream.flush()
    elapsed_ms = (time.time() - start) * 1000

    return np.concatenate(chunk_ages), elapsed_ms, processes


def _simulate_numba_backend(config, count, processes, seed):
    if processes is not None:
        set_num_threads(max(1, min(processes, numba_config.NUMBA_NUM_THREADS)))

    seed_sequence = np.random.SeedSequence(seed)
    seed_value = int(seed_sequence.generate_state(1)[0])

    start = time.time()
    ages = _simulate_lives_numba(
        count,
        seed_value,
        config.starting_health,
        config.death_threshold,
        config.roll_bonus,
        config.age_increment,
        config.has_longevity,
        config.has_self_destruct,
    )
    elapsed_ms = (time.time() - start) * 1000

    return ages, elapsed_ms, get_num_threads()


def _resolve_backend(backend, keep_log):
    backend_normalized = backend.lower()
    if backend_normalized not in BACKENDS:
        raise ValueError(f"backend must be one of {', '.join(repr(b) for b in BACKENDS)}")
    if backend_normalized == "auto":
        return "python" if keep_log else "numba"
    if backend_normalized == "numba" and keep_log:
        raise ValueError("The numba backend cannot produce a verbose trial log; use the python backend.")
    return backend_normalized


def RunTrials(config, iterations, processes=DEFAULT_PROCESSES, backend="auto", seed=None, log_stream=None):
    """Run `iterations` independent lives and collect every age at death.

    Trials are split into chunks of at most TRIALS_PER_CHUNK; each chunk owns
    its own random stream and result buffer, and the buffers are joined in
    chunk order. When `log_stream` is given, each chunk's verbose trial log is
    written to it as the chunk comes back. With a fixed `seed` the python
    backend is reproducible regardless of the worker count.
    """
    if iterations < 0:
        raise ValueError("iterations cannot be negative")
    backend_normalized = _resolve_backend(backend, log_stream is not None)

    if iterations == 0:
        return TrialBatch(ages=np.empty(0, dtype=np.float64), backend=backend_normalized)

    if backend_normalized == "numba":
        ages, elapsed_ms, units = _simulate_numba_backend(config, iterations, processes, seed)
    else:
        ages, elapsed_ms, units = _simulate_python_backend(
            config, iterations, processes, seed, log_stream
        )

    return TrialBatch(ages=ages, elapsed_ms=elapsed_ms, units=units, backend=backend_normalized)


## --- STATISTICS ---

@dataclass(frozen=True)
class AgeSummary:
    count: int
    median: float
    mean: float
    std: float
    min_age: float
    max_age: float

    def summary_lines(self):
        return [
            f"Median age of death is {_format_number(self.median)} "
            f"(highest is {_format_number(self.max_age)}, lowest is {_format_number(self.min_age)}).",
            f"Mean is {_format_number(self.mean)}; StdDev is {_format_number(self.std)}.",
        ]

    def to_dict(self):
        return asdict(self)


def SummarizeAges(ages):
    """Median, mean, population standard deviation and extremes of the ages.

    The median of an even-sized set is the mean of the two central values.
    """
    sorted_ages = np.sort(np.asarray(ages, dtype=np.float64))
    if sorted_ages.size == 0:
        raise EmptyResultSetError("No trials were run; there are no ages to summarize.")

    return AgeSummary(
        count=int(sorted_ages.size),
        median=float(np.median(sorted_ages)),
        mean=float(np.mean(sorted_ages)),
        std=float(np.std(sorted_ages)),
        min_age=float(sorted_ages[0]),
        max_age=float(sorted_ages[-1]),
    )


## --- MAIN ---

def _export_artifacts(
    config,
    batch,
    summary,
    output_dir,
    run_start_unix,
    start_time,
    processes,
    seed,
    histogram_bins,
    save_plots,
    show_plots,
    save_run_metadata,
):
    output_root = Path(output_dir)
    output_root.mkdir(parents=True, exist_ok=True)

    run_basename = f"aging_{summary.count}_{run_start_unix}"
    run_dir = output_root / run_basename
    run_dir.mkdir(parents=True, exist_ok=True)

    counts = pd.Series(batch.ages).value_counts().sort_index()
    distribution_df = pd.DataFrame({
        "Age": counts.index.to_list(),
        "Count": counts.to_list(),
    })
    distribution_df["CumulativeFraction"] = distribution_df["Count"].cumsum() / summary.count

    distribution_path = run_dir / f"{run_basename}_distribution.csv"
    distribution_df.to_csv(distribution_path, index=False)
    print(f"Saved age distribution to: {distribution_path}")

    saved_plot_paths = []
    fig_hist, ax_hist = plt.subplots(figsize=(8, 4))
    ax_hist.hist(batch.ages, bins=histogram_bins, edgecolor="black", alpha=0.7)
    ax_hist.axvline(summary.median, color="red", linestyle="--", linewidth=2,
                    label=f"Median = {summary.median:.2f}")
    ax_hist.axvline(summary.mean, color="green", linestyle=":", linewidth=2,
                    label=f"Mean = {summary.mean:.2f}")
    ax_hist.set_title(f"Distribution of age at death ({summary.count} simulations)")
    ax_hist.set_xlabel("Age")
    ax_hist.set_ylabel("Characters")
    ax_hist.legend()
    ax_hist.grid(alpha=0.3)
    fig_hist.tight_layout()

    if save_plots:
        histogram_plot_path = run_dir / f"{run_basename}_age_distribution.png"
        fig_hist.savefig(histogram_plot_path, dpi=150)
        saved_plot_paths.append(histogram_plot_path)
        print(f"Saved age distribution plot to: {histogram_plot_path}")

    if show_plots:
        plt.show()
    else:
        plt.close(fig_hist)

    metadata_path = None
    if save_run_metadata:
        system_info = platform.uname()
        metadata_path = run_dir / f"{run_basename}_metadata.json"
        metadata = {
            "run": {
                "iterations": summary.count,
                "backend_used": batch.backend,
                "processes_requested": processes,
                "units_used": batch.units,
                "seed": seed,
                "histogram_bins": histogram_bins,
                "elapsed_ms": batch.elapsed_ms,
                "output_directory": str(run_dir),
                "run_timestamp_unix": run_start_unix,
            },
            "config": asdict(config),
            "summary": summary.to_dict(),
            "timing": {
                "started_at_utc": datetime.fromtimestamp(
                    start_time, tz=timezone.utc
                ).isoformat(timespec="seconds").replace("+00:00", "Z"),
                "simulation_ms": batch.elapsed_ms,
            },
            "system": {
                "platform": system_info.system,
                "platform_release": system_info.release,
                "machine": system_info.machine,
                "python_version": platform.python_version(),
                "python_implementation": platform.python_implementation(),
                "cpu_count": os.cpu_count(),
                "numba_threads": numba_config.NUMBA_NUM_THREADS,
            },
            "artifacts": {
                "distribution_csv": str(distribution_path),
                "plots": [str(path) for path in saved_plot_paths],
            },
        }
        with metadata_path.open("w", encoding="utf-8") as metadata_file:
            json.dump(metadata, metadata_file, indent=2)
        print(f"Saved metadata to: {metadata_path}")

    print(f"Artifacts saved under: {run_dir}")
    return run_dir


def SimulateLifetimes(
    config,
    iterations=DEFAULT_ITERATIONS,
    processes=DEFAULT_PROCESSES,
    backend="auto",
    seed=None,
    log_stream=None,
    output_dir=None,
    histogram_bins=40,
    save_plots=True,
    show_plots=False,
    save_run_metadata=True,
):
    if isinstance(histogram_bins, bool):
        raise ValueError("histogram_bins cannot be a boolean value")
    if isinstance(histogram_bins, (int, np.integer)) and histogram_bins <= 0:
        raise ValueError("histogram_bins must be a positive integer when provided as an int")

    start_time = time.time()
    batch = RunTrials(
        config,
        iterations,
        processes=processes,
        backend=backend,
        seed=seed,
        log_stream=log_stream,
    )

    summary = SummarizeAges(batch.ages)
    for line in summary.summary_lines():
        print(line)

    if output_dir:
        _export_artifacts(
            config,
            batch,
            summary,
            output_dir,
            int(start_time),
            start_time,
            processes,
            seed,
            histogram_bins,
            save_plots,
            show_plots,
            save_run_metadata,
        )

    return summary


def _parse_int(value):
    try:
        return int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Expected an integer, got {value!r}") from exc


def _parse_positive_int(value):
    parsed = _parse_int(value)
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"Expected a positive integer, got {value!r}")
    return parsed


def _parse_non_negative_int(value):
    parsed = _parse_int(value)
    if parsed < 0:
        raise argparse.ArgumentTypeError(f"Expected a non-negative integer, got {value!r}")
    return parsed


def _parse_lifespan_level(value):
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Expected a number, got {value!r}") from exc
    if parsed < 0:
        raise argparse.ArgumentTypeError(f"Lifespan levels cannot be negative, got {value!r}")
    return parsed


def _parse_histogram_bins_arg(value):
    lowered = value.lower()
    if lowered in {"auto", "sturges", "fd", "doane", "scott", "stone", "rice", "sqrt"}:
        return lowered
    return _parse_positive_int(value)


def _build_argument_parser():
    # -h belongs to HT, so help moves to -?.
    parser = argparse.ArgumentParser(
        prog="gurps-aging",
        description="Iterative calculator for the GURPS aging rules.",
        add_help=False,
    )
    parser.add_argument("-?", "--help", action="help", help="Show this help message and exit.")
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-h", "--ht",
        type=_parse_int,
        default=DEFAULT_HEALTH,
        help=f"The character's starting HT (default: {DEFAULT_HEALTH}).",
    )
    parser.add_argument(
        "-t", "--tl",
        type=_parse_int,
        default=DEFAULT_TECH_LEVEL,
        help=f"The character's lifetime medical TL (default: {DEFAULT_TECH_LEVEL}).",
    )
    parser.add_argument(
        "-a", "--add",
        type=_parse_int,
        default=DEFAULT_MODIFIER,
        help="Total additional optional modifiers to the aging roll (default: 0).",
    )
    parser.add_argument(
        "-d", "--death",
        type=_parse_int,
        default=DEFAULT_DEATH_THRESHOLD,
        help=f"The HT the character is considered dead at (default: {DEFAULT_DEATH_THRESHOLD}).",
    )
    parser.add_argument(
        "-l", "--longevity",
        action="store_true",
        help="The character has Longevity.",
    )
    parser.add_argument(
        "-D", "--self-destruct",
        dest="self_destruct",
        action="store_true",
        help="The character has Self-Destruct.",
    )
    lifespan = parser.add_mutually_exclusive_group()
    lifespan.add_argument(
        "-x", "--extended-lifespan",
        dest="extended_lifespan",
        type=_parse_lifespan_level,
        default=0.0,
        help="The character's level of Extended Lifespan (default: 0).",
    )
    lifespan.add_argument(
        "-s", "--short-lifespan",
        dest="short_lifespan",
        type=_parse_lifespan_level,
        default=0.0,
        help="The character's level of Short Lifespan (default: 0).",
    )
    parser.add_argument(
        "-p", "--max-procs",
        dest="max_procs",
        type=_parse_positive_int,
        default=DEFAULT_PROCESSES,
        help=f"The maximum number of workers to use (default: {DEFAULT_PROCESSES}).",
    )
    parser.add_argument(
        "-i", "--iterations",
        type=_parse_non_negative_int,
        default=DEFAULT_ITERATIONS,
        help=f"The number of iterations to calculate (default: {DEFAULT_ITERATIONS:,}).",
    )
    parser.add_argument(
        "-v", "--verbose",
        metavar="FILE",
        default=None,
        help="Log verbose output to the specified file ('-' indicates stdout).",
    )
    parser.add_argument(
        "--backend",
        choices=list(BACKENDS),
        default="auto",
        help="Simulation backend to use (default: auto; python when logging verbosely).",
    )
    parser.add_argument(
        "--seed",
        type=_parse_non_negative_int,
        default=None,
        help="Seed for the random streams (default: fresh entropy).",
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory where run artifacts are written (default: none are written).",
    )
    parser.add_argument(
        "--histogram-bins",
        type=_parse_histogram_bins_arg,
        default=40,
        help="Bins setting for the age distribution plot (int, 'auto', 'fd', 'sturges', etc.).",
    )
    parser.add_argument(
        "--no-save-plots",
        dest="save_plots",
        action="store_false",
        default=True,
        help="Disable saving plot images.",
    )
    parser.add_argument(
        "--show-plots",
        dest="show_plots",
        action="store_true",
        default=False,
        help="Display plots interactively (default: disabled).",
    )
    parser.add_argument(
        "--no-save-run-metadata",
        dest="save_run_metadata",
        action="store_false",
        default=True,
        help="Skip writing metadata JSON.",
    )
    return parser


def _config_from_args(args):
    return SimulationConfig.from_traits(
        health=args.ht,
        tech_level=args.tl,
        modifier=args.add,
        death=args.death,
        longevity=args.longevity,
        self_destruct=args.self_destruct,
        extended_lifespan=args.extended_lifespan,
        short_lifespan=args.short_lifespan,
    )


def _open_log_stream(destination):
    if destination is None:
        return None, False
    if destination == "-":
        return sys.stdout, False
    try:
        return open(destination, "w", encoding="utf-8"), True
    except OSError as exc:
        sys.exit(f"Error: Couldn't open {destination!r} for writing: {exc.strerror or exc}")


def main(argv=None):
    cli_parser = _build_argument_parser()
    cli_args = cli_parser.parse_args(argv)
    try:
        config = _config_from_args(cli_args)
    except ValueError as exc:
        sys.exit(f"Error: {exc}")

    log_stream, owns_log = _open_log_stream(cli_args.verbose)
    try:
        SimulateLifetimes(
            config,
            iterations=cli_args.iterations,
            processes=cli_args.max_procs,
            backend=cli_args.backend,
            seed=cli_args.seed,
            log_stream=log_stream,
            output_dir=cli_args.output_dir,
            histogram_bins=cli_args.histogram_bins,
            save_plots=cli_args.save_plots,
            show_plots=cli_args.show_plots,
            save_run_metadata=cli_args.save_run_metadata,
        )
    except ValueError as exc:
        sys.exit(f"Error: {exc}")
    finally:
        if owns_log:
            log_stream.close()


if __name__ == "__main__":
    main()

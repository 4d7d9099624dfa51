"""
CLI entry point for the image tournament system.

Parses arguments, validates config, wires components and runs one
King-of-the-Hill tournament per prompt with an automated voter.
"""

import argparse
import sys
from argparse import Namespace
from pathlib import Path
from typing import TypedDict

from prettytable import PrettyTable

from .controller import TournamentConfig, TournamentController
from .exceptions import ConfigurationError, TournamentError
from .fetchers.directory_source import DirectoryCandidateSource
from .interfaces import Voter
from .logging_config import get_logger, setup_logging
from .models import Candidate, RankingResult
from .runner import play_and_finalize
from .storage.jsonl_storage import JSONLStorage
from .voters.dummy_voter import DummyVoter
from .voters.sim_voter import SimulatedVoter


class CLIArgs(TypedDict):
    """Typed representation of parsed CLI arguments."""
    candidates_dir: str
    prompt_id: str | None
    output_dir: str
    user_id: str
    voter_type: str
    noise: float
    seed: int | None
    k_factor: float
    reset: bool
    debug: bool
    log_level: str


def parse_args(argv: list[str] | None = None) -> Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Image Tournament - blind King-of-the-Hill ranking of image models"
    )

    # Required arguments
    _ = parser.add_argument(
        "--candidates-dir",
        required=True,
        help="Directory with one sub-directory of images per prompt"
    )
    _ = parser.add_argument(
        "--output-dir",
        required=True,
        help="Directory for votes/sessions/results output"
    )

    # Optional arguments
    _ = parser.add_argument(
        "--prompt-id",
        help="Prompt to rank (default: every prompt in the candidates directory)"
    )
    _ = parser.add_argument(
        "--user-id",
        default="cli",
        help="Evaluator id the votes are recorded under (default: cli)"
    )
    _ = parser.add_argument(
        "--voter-type",
        choices=["simulated", "dummy"],
        default="simulated",
        help="Type of voter to use (default: simulated)"
    )
    _ = parser.add_argument(
        "--noise",
        type=float,
        default=0.1,
        help="Noise level for simulated voter (0-1, default: 0.1)"
    )
    _ = parser.add_argument(
        "--seed",
        type=int,
        help="Random seed for the voter"
    )
    _ = parser.add_argument(
        "--k-factor",
        type=float,
        default=32.0,
        help="Elo K-factor (default: 32)"
    )
    _ = parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete stored votes for the session before running"
    )
    _ = parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )
    _ = parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Set logging level (default: INFO)"
    )

    return parser.parse_args(argv)


def args_to_typed(ns: Namespace) -> CLIArgs:
    """Convert argparse Namespace to typed CLIArgs."""
    return CLIArgs(
        candidates_dir=ns.candidates_dir,
        prompt_id=ns.prompt_id,
        output_dir=ns.output_dir,
        user_id=ns.user_id,
        voter_type=ns.voter_type,
        noise=ns.noise,
        seed=ns.seed,
        k_factor=ns.k_factor,
        reset=ns.reset,
        debug=ns.debug,
        log_level=ns.log_level,
    )


def validate_config(args: CLIArgs) -> None:
    """Validate configuration parameters."""
    logger = get_logger("validate_config")

    if not (0.0 <= args["noise"] <= 1.0):
        raise ConfigurationError(f"noise must be between 0 and 1, got {args['noise']}")

    candidates_dir = Path(args["candidates_dir"])
    if not candidates_dir.is_dir():
        raise ConfigurationError(f"candidates directory does not exist: {candidates_dir}")
    logger.info(f"Candidates directory: {candidates_dir}")

    output_dir = Path(args["output_dir"])
    output_dir.mkdir(parents=True, exist_ok=True)
    logger.info(f"Output directory: {output_dir}")


def build_voter(args: CLIArgs, candidates: list[Candidate]) -> Voter:
    """Create the automated voter for one prompt."""
    if args["voter_type"] == "simulated":
        # Simple ground truth: later files score higher
        ground_truth = {c.id: float(i + 1) / len(candidates) for i, c in enumerate(candidates)}
        return SimulatedVoter(ground_truth, noise=args["noise"], seed=args["seed"])
    if args["voter_type"] == "dummy":
        return DummyVoter(mode="deterministic" if args["seed"] is None else "random", seed=args["seed"] or 42)
    raise ConfigurationError(f"Unknown voter type: {args['voter_type']}")


def print_result(result: RankingResult) -> None:
    """Print the ranked table and quality report."""
    table = PrettyTable()
    table.field_names = ["Rank", "Model", "Candidate ID", "Elo", "Wins", "In Cycle"]
    table.align["Rank"] = "r"
    table.align["Model"] = "l"
    table.align["Elo"] = "r"
    table.align["Wins"] = "r"

    for ranked in result.ranked:
        table.add_row([
            ranked.rank,
            ranked.candidate.label,
            ranked.candidate.id,
            ranked.elo,
            f"{ranked.wins:g}",
            "yes" if ranked.in_cycle else "",
        ])

    print(f"\nFinal Ranking for {result.prompt_id} ({result.vote_count} votes):")
    print(table)

    for ranked in result.top3:
        if ranked.h2h_relationships:
            record = ", ".join(
                f"{other}: {h2h.wins}-{h2h.losses}" for other, h2h in ranked.h2h_relationships.items()
            )
            print(f"  #{ranked.rank} {ranked.candidate.label} head-to-head: {record}")

    quality = result.quality
    print("\nVote Quality:")
    print(f"  Consistency score: {quality.consistency_score:.2f}")
    print(f"  Transitivity violations: {quality.transitivity_violations}")
    print(f"  Vote certainty: {quality.vote_certainty:.2f}%")
    print(f"  Average vote time: {quality.average_vote_time_seconds:.2f}s")
    print(f"  Flags: {', '.join(quality.flags) if quality.flags else 'none'}")
    if result.cycles:
        print(f"  Preference cycles: {[' > '.join(cycle) for cycle in result.cycles]}")


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    args = args_to_typed(parse_args(argv))

    setup_logging(level=args["log_level"], debug=args["debug"], log_dir=Path(args["output_dir"]))
    logger = get_logger("main")
    logger.info("Starting Image Tournament")

    try:
        validate_config(args)

        source = DirectoryCandidateSource(Path(args["candidates_dir"]))
        storage = JSONLStorage(Path(args["output_dir"]))
        config = TournamentConfig(k_factor=args["k_factor"])
        prompt_ids = [args["prompt_id"]] if args["prompt_id"] else source.list_prompts()
        if not prompt_ids:
            raise ConfigurationError(f"No prompts found in {args['candidates_dir']}")

        print("Image Tournament - blind King-of-the-Hill ranking")
        print("=" * 60)
        print(f"Candidates directory: {args['candidates_dir']}")
        print(f"Output directory: {args['output_dir']}")
        print(f"Prompts: {', '.join(prompt_ids)}")
        print(f"Voter type: {args['voter_type']}")
        print("=" * 60)

        for prompt_id in prompt_ids:
            candidates = source.list_candidates(prompt_id)
            controller = TournamentController(
                prompt_id=prompt_id,
                user_id=args["user_id"],
                candidates=candidates,
                vote_store=storage,
                session_store=storage,
                result_sink=storage,
                config=config,
            )
            if args["reset"]:
                _ = controller.reset()

            result = play_and_finalize(controller, build_voter(args, candidates))
            print_result(result)

        print("\nTournament completed successfully!")

    except TournamentError as e:
        logger.error(f"{type(e).__name__}: {e}")
        print(f"\nError: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.warning("Tournament interrupted by user")
        print("\nTournament interrupted by user")
        sys.exit(1)


if __name__ == "__main__":
    main()

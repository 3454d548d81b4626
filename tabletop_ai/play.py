"""
Command-line match runner.

Plays a series of games between MCTS and random agents on one of the
example games and prints a summary table.

Example usage:
    # 20 games of Nim, MCTS (500 iterations) against a random agent
    tabletop-play --game nim --agents mcts random --games 20 --budget 500

    # Three-player draft where MCTS gets 50ms per move
    tabletop-play --game draft --players 3 --agents mcts random random \\
        --budget-type time --budget 0.05
"""
import argparse
import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
from rich.console import Console
from rich.table import Table
from tqdm import tqdm

from tabletop_ai.core.interfaces import ForwardModel, StateHeuristic
from tabletop_ai.core.heuristics import RelativeScoreHeuristic
from tabletop_ai.core.game import Game
from tabletop_ai.core.agents import RandomAgent
from tabletop_ai.games import nim, draft
from tabletop_ai.mcts.agent import MCTSAgent
from tabletop_ai.mcts.config import MCTSConfig, BudgetType
from tabletop_ai.utils.logging import setup_logging, get_logger

logger = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="Play matches between tabletop AI agents")

    # Game
    parser.add_argument("--game", type=str, default="nim", choices=["nim", "draft"],
                        help="Game to play")
    parser.add_argument("--players", type=int, default=2,
                        help="Number of players (draft only; Nim is always two-player)")
    parser.add_argument("--heaps", type=int, nargs="+", default=[3, 4, 5],
                        help="Heap sizes for Nim")
    parser.add_argument("--cards", type=int, default=12,
                        help="Number of cards in the draft row")
    parser.add_argument("--agents", type=str, nargs="+", default=["mcts", "random"],
                        choices=["mcts", "random"],
                        help="Agent for each seat, in player order")
    parser.add_argument("--games", type=int, default=10,
                        help="Number of games to play")
    parser.add_argument("--max-turns", type=int, default=1000,
                        help="Stop a game unfinished after this many turns")

    # Search
    parser.add_argument("--budget-type", type=str, default="iterations",
                        choices=[b.value for b in BudgetType],
                        help="Resource limiting each MCTS decision")
    parser.add_argument("--budget", type=float, default=500,
                        help="Seconds, iterations or forward model calls per decision")
    parser.add_argument("--exploration", type=float, default=MCTSConfig.exploration_weight,
                        help="UCB1 exploration weight")
    parser.add_argument("--rollout-length", type=int, default=10,
                        help="Maximum rollout length")

    # Miscellaneous
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed for reproducibility")
    parser.add_argument("--verbose", action="store_true",
                        help="Log every MCTS decision")

    args = parser.parse_args(argv)
    if args.max_turns < 1:
        parser.error("--max-turns must be at least 1")
    num_players = 2 if args.game == "nim" else args.players
    if len(args.agents) != num_players:
        parser.error(f"--agents needs {num_players} entries for {args.game}")
    return args


def create_game(args: argparse.Namespace, seed: Optional[int]) -> Tuple[ForwardModel, StateHeuristic, Any]:
    """
    Build the forward model, heuristic and initial state for one game.

    Returns:
        Tuple of (forward model, heuristic, initial state)
    """
    if args.game == "nim":
        forward_model = nim.NimForwardModel()
        return forward_model, nim.NimSumHeuristic(forward_model), nim.initial_state(args.heaps)

    forward_model = draft.DraftForwardModel()
    state = draft.initial_state(num_players=args.players, num_cards=args.cards, seed=seed)
    return forward_model, RelativeScoreHeuristic(forward_model), state


def create_agent(kind: str, seat: int, forward_model: ForwardModel, heuristic: StateHeuristic,
                 args: argparse.Namespace, seed: Optional[int]):
    """Create the agent for one seat."""
    if kind == "random":
        return RandomAgent(forward_model, seed=seed, name=f"Random {seat}")

    config = MCTSConfig(
        budget_type=BudgetType(args.budget_type),
        budget=args.budget,
        exploration_weight=args.exploration,
        rollout_length=args.rollout_length,
        seed=seed,
    )
    return MCTSAgent(forward_model, heuristic, config, name=f"MCTS {seat}", verbose=args.verbose)


def play_match(args: argparse.Namespace, game_seed: Optional[int]) -> Dict[str, Any]:
    """Play one game and return its statistics."""
    forward_model, heuristic, state = create_game(args, game_seed)
    game = Game(forward_model, state)

    seat_seeds = np.random.SeedSequence(game_seed).spawn(len(args.agents))
    for seat, kind in enumerate(args.agents):
        agent = create_agent(kind, seat, forward_model, heuristic, args,
                             int(seat_seeds[seat].generate_state(1)[0]))
        game.register_agent(seat, agent.get_action_callback())

    game.run_game(args.max_turns)
    return game.get_game_statistics()


def run_matches(args: argparse.Namespace) -> List[Dict[str, Any]]:
    """Play all requested games with a progress bar."""
    rng = np.random.default_rng(args.seed)
    results = []
    for _ in tqdm(range(args.games), desc=f"Playing {args.game}"):
        results.append(play_match(args, int(rng.integers(2**32))))
    return results


def print_summary(args: argparse.Namespace, results: List[Dict[str, Any]]) -> None:
    """Print a table of wins and average scores per seat."""
    wins: Dict[Optional[int], int] = defaultdict(int)
    scores: Dict[int, List[float]] = defaultdict(list)
    unfinished = 0
    for stats in results:
        if not stats["game_over"]:
            unfinished += 1
        else:
            wins[stats.get("winner")] += 1
        for seat, score in enumerate(stats.get("scores", [])):
            scores[seat].append(score)

    table = Table(title=f"{args.game}: {len(results)} games")
    table.add_column("Seat", justify="right")
    table.add_column("Agent")
    table.add_column("Wins", justify="right")
    table.add_column("Win rate", justify="right")
    table.add_column("Avg score", justify="right")

    for seat, kind in enumerate(args.agents):
        avg = f"{np.mean(scores[seat]):.2f}" if scores[seat] else "-"
        table.add_row(str(seat), kind, str(wins[seat]),
                      f"{wins[seat] / max(1, len(results)):.2f}", avg)

    console = Console()
    console.print(table)
    if wins[None]:
        console.print(f"Draws: {wins[None]}")
    if unfinished:
        console.print(f"Unfinished after {args.max_turns} turns: {unfinished}")


def main(argv: Optional[List[str]] = None) -> None:
    """Main function."""
    args = parse_args(argv)
    setup_logging(logging.INFO if args.verbose else logging.WARNING)

    logger.info("Running %d games of %s with agents %s", args.games, args.game, args.agents)
    results = run_matches(args)
    print_summary(args, results)


if __name__ == "__main__":
    main()
